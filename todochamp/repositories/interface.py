from __future__ import annotations

from typing import Protocol

from todochamp.common.result import Result
from todochamp.models.task import Task


class TaskRepository(Protocol):
    """Async access to the remote task collection.

    Every operation returns a ``Result``; implementations must not let exceptions
    escape, and must bound each remote call by their timeout.
    """

    async def add_task(self, title: str, body: str) -> Result[None]:
        """Persist a new task. The store assigns its id and creation time."""

    async def get_all_tasks(self) -> Result[list[Task]]:
        """Fetch the whole collection ordered by creation time."""

    async def delete_task(self, task_id: str) -> Result[None]:
        """Remove one task. Unknown ids succeed without changes."""

    async def update_task(self, title: str, body: str, task_id: str) -> Result[None]:
        """Replace title and body of one task, both or neither."""


__all__ = ["TaskRepository"]
