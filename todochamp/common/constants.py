from __future__ import annotations

COLLECTION_PATH_NAME = "tasks"

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

# Upper bound for a single round trip to the document store
DEFAULT_TIMEOUT_S = 10.0

PLEASE_CHECK_INTERNET_CONNECTION = "Please check your internet connection"


__all__ = [
    "COLLECTION_PATH_NAME",
    "DEFAULT_REDIS_URL",
    "DEFAULT_TIMEOUT_S",
    "PLEASE_CHECK_INTERNET_CONNECTION",
]
