from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from todochamp.models.task import Task


class TasksUiState(BaseModel):
    """Everything the tasks screen needs to render, as one immutable snapshot."""

    model_config = ConfigDict(frozen=True)

    is_loading: bool = False
    tasks: tuple[Task, ...] = ()
    error_message: str | None = None
    task_to_be_updated: Task | None = None
    is_show_add_task_dialog: bool = False
    is_show_update_task_dialog: bool = False
    current_title_input: str = ""
    current_body_input: str = ""


__all__ = ["TasksUiState"]
