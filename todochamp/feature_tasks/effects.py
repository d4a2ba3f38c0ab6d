from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ShowMessage:
    """Transient notice for the user, e.g. a snackbar or a status line."""

    message: str
    is_error: bool = False


TasksSideEffect = ShowMessage


__all__ = ["ShowMessage", "TasksSideEffect"]
