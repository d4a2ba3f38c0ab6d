from __future__ import annotations

from .errors import TaskNotFoundError, TaskStoreError, TaskStoreTimeoutError, error_message
from .result import Failure, Result, Success

__all__ = [
    "Failure",
    "Result",
    "Success",
    "TaskNotFoundError",
    "TaskStoreError",
    "TaskStoreTimeoutError",
    "error_message",
]
