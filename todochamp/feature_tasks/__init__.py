from __future__ import annotations

from .controller import TasksController
from .effects import ShowMessage, TasksSideEffect
from .events import (
    AddTask,
    DeleteTask,
    GetTasks,
    SetBodyInput,
    SetTaskToBeUpdated,
    SetTitleInput,
    TasksUiEvent,
    ToggleAddTaskDialog,
    ToggleUpdateTaskDialog,
    UpdateTask,
)
from .state import TasksUiState

__all__ = [
    "AddTask",
    "DeleteTask",
    "GetTasks",
    "SetBodyInput",
    "SetTaskToBeUpdated",
    "SetTitleInput",
    "ShowMessage",
    "TasksController",
    "TasksSideEffect",
    "TasksUiEvent",
    "TasksUiState",
    "ToggleAddTaskDialog",
    "ToggleUpdateTaskDialog",
    "UpdateTask",
]
