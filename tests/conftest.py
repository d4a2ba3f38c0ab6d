from __future__ import annotations

import os
import time
import uuid
from collections.abc import Callable, Generator
from functools import lru_cache

import pytest

from todochamp.observability import reset_metrics


def _wait_until(timeout_s: float, pause_s: float, check: Callable[[], bool]) -> bool:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        if check():
            return True
        time.sleep(pause_s)
    return False


def _redis_ping(url: str) -> bool:
    try:
        import redis

        r = redis.Redis.from_url(url)
        return bool(r.ping())
    except Exception:
        return False


@lru_cache(maxsize=1)
def _reachable_redis_url() -> str | None:
    """Prefer REDIS_URL when set, otherwise a local default instance."""
    env_url = os.getenv("REDIS_URL")
    if env_url and _wait_until(3.0, 0.2, lambda: _redis_ping(env_url)):
        return env_url
    local_url = "redis://localhost:6379/0"
    if _redis_ping(local_url):
        return local_url
    return None


@pytest.fixture(scope="session")
def redis_url() -> str:
    url = _reachable_redis_url()
    if url is None:
        pytest.skip("Redis not available; set REDIS_URL or start a local Redis")
    return url


@pytest.fixture()
def unique_collection() -> str:
    # Fresh key space per test so runs never see each other's documents
    return f"testtasks:{uuid.uuid4()}"


@pytest.fixture(autouse=True)
def _fresh_metrics() -> Generator[None, None, None]:
    reset_metrics()
    yield
    reset_metrics()


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip tests marked 'redis' or using the redis_url fixture when no server answers."""
    if _reachable_redis_url() is not None:
        return
    for item in items:
        fixtures = set(getattr(item, "fixturenames", []) or [])
        if "redis" in item.keywords or "redis_url" in fixtures:
            item.add_marker(
                pytest.mark.skip(reason="Redis not available; set REDIS_URL or start local Redis")
            )
