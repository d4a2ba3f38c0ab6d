from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from todochamp.common.constants import COLLECTION_PATH_NAME, DEFAULT_REDIS_URL, DEFAULT_TIMEOUT_S


@dataclass(slots=True)
class AppConfig:
    redis_url: str
    collection: str
    timeout_s: float


def _read_timeout(raw: str | None) -> float:
    value = (raw or "").strip()
    if not value:
        return DEFAULT_TIMEOUT_S
    try:
        parsed = float(value)
    except ValueError:
        return DEFAULT_TIMEOUT_S
    # Zero or negative would fail every call immediately
    return parsed if parsed > 0 else DEFAULT_TIMEOUT_S


def load_config(env: dict[str, str] | None = None) -> AppConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    collection = (e.get("TODOCHAMP_COLLECTION") or "").strip().rstrip(":")
    return AppConfig(
        redis_url=e.get("REDIS_URL") or DEFAULT_REDIS_URL,
        collection=collection or COLLECTION_PATH_NAME,
        timeout_s=_read_timeout(e.get("TODOCHAMP_TIMEOUT_S")),
    )


__all__ = ["AppConfig", "load_config"]
