from __future__ import annotations

from dataclasses import dataclass

from todochamp.models.task import Task


@dataclass(frozen=True, slots=True)
class AddTask:
    title: str
    body: str


@dataclass(frozen=True, slots=True)
class GetTasks:
    pass


@dataclass(frozen=True, slots=True)
class DeleteTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class UpdateTask:
    """Commit the text inputs to the task selected for editing."""


@dataclass(frozen=True, slots=True)
class ToggleAddTaskDialog:
    show: bool


@dataclass(frozen=True, slots=True)
class ToggleUpdateTaskDialog:
    show: bool


@dataclass(frozen=True, slots=True)
class SetTitleInput:
    title: str


@dataclass(frozen=True, slots=True)
class SetBodyInput:
    body: str


@dataclass(frozen=True, slots=True)
class SetTaskToBeUpdated:
    task: Task


TasksUiEvent = (
    AddTask
    | GetTasks
    | DeleteTask
    | UpdateTask
    | ToggleAddTaskDialog
    | ToggleUpdateTaskDialog
    | SetTitleInput
    | SetBodyInput
    | SetTaskToBeUpdated
)


__all__ = [
    "AddTask",
    "DeleteTask",
    "GetTasks",
    "SetBodyInput",
    "SetTaskToBeUpdated",
    "SetTitleInput",
    "TasksUiEvent",
    "ToggleAddTaskDialog",
    "ToggleUpdateTaskDialog",
    "UpdateTask",
]
