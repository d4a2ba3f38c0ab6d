from __future__ import annotations

from .constants import PLEASE_CHECK_INTERNET_CONNECTION


class TaskStoreError(Exception):
    """Any failure raised while talking to the document store."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> TaskStoreError:
        err = cls(str(exc))
        err.__cause__ = exc
        return err


class TaskStoreTimeoutError(TaskStoreError):
    def __init__(self, message: str = PLEASE_CHECK_INTERNET_CONNECTION) -> None:
        super().__init__(message)


class TaskNotFoundError(TaskStoreError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"No task found with id '{task_id}'")
        self.task_id = task_id


def error_message(exc: BaseException, default: str) -> str:
    """Return the text carried by ``exc``, or ``default`` when it has none."""
    text = str(exc).strip()
    return text or default


__all__ = [
    "TaskNotFoundError",
    "TaskStoreError",
    "TaskStoreTimeoutError",
    "error_message",
]
