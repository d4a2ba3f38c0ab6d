from __future__ import annotations

from todochamp.cli import main

if __name__ == "__main__":
    main()
