from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, TypeVar

from todochamp.common.errors import error_message
from todochamp.common.result import Failure, Result, Success
from todochamp.models.task import Task
from todochamp.observability import get_json_logger, get_metrics, use_dispatch_context
from todochamp.repositories.interface import TaskRepository
from todochamp.streams import EffectChannel, StateFlow

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

T = TypeVar("T")

ADD_TASK_ERROR = "An error occurred when adding task"
GET_TASKS_ERROR = "An error occurred when getting your task"
DELETE_TASK_ERROR = "An error occurred when deleting task"
UPDATE_TASK_ERROR = "An error occurred when updating task"

TASK_ADDED = "Task added successfully"
TASK_DELETED = "Task deleted successfully"
TASK_UPDATED = "Task updated successfully"


class TasksController:
    """Turns UI events into state snapshots and one-shot effects.

    - ``send_event`` is the only entry point; input edits and dialog toggles apply
      immediately, store operations run as asyncio tasks.
    - Store operations are serialized per controller. Their inputs are taken when the
      event is sent; their writes land on whatever the state is when they finish, so
      edits made while a call is queued or in flight survive.
    - Successful mutations refresh the list by dispatching ``GetTasks``, which runs
      after the mutation that requested it. ``GetTasks`` never dispatches anything.

    Must be created inside a running event loop: construction dispatches ``GetTasks``.
    """

    def __init__(self, repository: TaskRepository) -> None:
        self._repository = repository
        self._state: StateFlow[TasksUiState] = StateFlow(TasksUiState())
        self._effects: EffectChannel[TasksSideEffect] = EffectChannel()
        self._lock = asyncio.Lock()
        self._inflight: set[asyncio.Task[None]] = set()
        self._logger = get_json_logger("todochamp.controller")
        self.send_event(GetTasks())

    @property
    def state(self) -> StateFlow[TasksUiState]:
        return self._state

    @property
    def effects(self) -> EffectChannel[TasksSideEffect]:
        return self._effects

    def send_event(self, event: TasksUiEvent) -> None:
        name = type(event).__name__
        get_metrics().increment("ui_events", {"event": name})
        self._logger.debug("ui event", extra={"event": "ui_event", "ui_event": name})

        if isinstance(event, AddTask):
            self._launch(name, partial(self._add_task, event.title, event.body))
        elif isinstance(event, GetTasks):
            self._launch(name, self._get_tasks)
        elif isinstance(event, DeleteTask):
            self._launch(name, partial(self._delete_task, event.task_id))
        elif isinstance(event, UpdateTask):
            # Inputs and selection are fixed when the user commits, not when the call runs
            state = self._state.value
            handler = partial(
                self._update_task,
                state.current_title_input,
                state.current_body_input,
                state.task_to_be_updated,
            )
            self._launch(name, handler)
        elif isinstance(event, ToggleAddTaskDialog):
            self._update(is_show_add_task_dialog=event.show)
        elif isinstance(event, ToggleUpdateTaskDialog):
            self._update(is_show_update_task_dialog=event.show)
        elif isinstance(event, SetTitleInput):
            self._update(current_title_input=event.title)
        elif isinstance(event, SetBodyInput):
            self._update(current_body_input=event.body)
        elif isinstance(event, SetTaskToBeUpdated):
            self._update(task_to_be_updated=event.task)
        else:
            raise TypeError(f"unsupported event: {event!r}")

    async def wait_idle(self) -> None:
        """Wait until no handler is running, including refreshes they dispatched."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel handlers still running; call when the owning UI goes away."""
        pending = list(self._inflight)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # ----------------------------
    # State and effect plumbing
    # ----------------------------
    def _update(self, **changes: Any) -> None:
        self._state.set(self._state.value.model_copy(update=changes))

    def _set_effect(self, effect: TasksSideEffect) -> None:
        self._effects.send(effect)

    def _fail(self, result: Failure, default: str) -> None:
        self._update(is_loading=False)
        self._set_effect(ShowMessage(error_message(result.error, default), is_error=True))

    def _launch(self, name: str, handler: Callable[[], Awaitable[None]]) -> None:
        task = asyncio.get_running_loop().create_task(self._serialized(name, handler))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _serialized(self, name: str, handler: Callable[[], Awaitable[None]]) -> None:
        async with self._lock:
            with use_dispatch_context(name):
                try:
                    await handler()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    # A broken handler must not leave the screen stuck on loading
                    self._logger.exception("handler failed", extra={"event": "handler_failed"})
                    get_metrics().increment("handler_errors", {"event": name})
                    self._update(is_loading=False)

    async def _call(self, call: Awaitable[Result[T]]) -> Result[T]:
        # Repositories report failures as values; anything raised is a bug in one
        try:
            return await call
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("repository raised", extra={"event": "repository_raised"})
            return Failure(exc)

    # ----------------------------
    # Handlers
    # ----------------------------
    async def _add_task(self, title: str, body: str) -> None:
        self._update(is_loading=True)

        result = await self._call(self._repository.add_task(title=title, body=body))
        if isinstance(result, Failure):
            self._fail(result, ADD_TASK_ERROR)
            return

        self._update(is_loading=False, current_title_input="", current_body_input="")
        self.send_event(ToggleAddTaskDialog(show=False))
        self.send_event(GetTasks())
        self._set_effect(ShowMessage(TASK_ADDED))

    async def _get_tasks(self) -> None:
        self._update(is_loading=True)

        result = await self._call(self._repository.get_all_tasks())
        if isinstance(result, Success):
            self._update(is_loading=False, tasks=tuple(result.data))
            self._logger.info(
                "tasks loaded",
                extra={"event": "tasks_loaded", "metadata": {"count": len(result.data)}},
            )
        else:
            self._fail(result, GET_TASKS_ERROR)

    async def _delete_task(self, task_id: str) -> None:
        self._update(is_loading=True)

        result = await self._call(self._repository.delete_task(task_id=task_id))
        if isinstance(result, Failure):
            self._fail(result, DELETE_TASK_ERROR)
            return

        self._update(is_loading=False)
        self._set_effect(ShowMessage(TASK_DELETED))
        self.send_event(GetTasks())

    async def _update_task(self, title: str, body: str, selected: Task | None) -> None:
        self._update(is_loading=True)

        if selected is None:
            # Passed through as-is; the store decides what an empty id means
            self._logger.warning(
                "update without a selected task", extra={"event": "update_without_selection"}
            )
        task_id = selected.id if selected is not None else ""

        result = await self._call(
            self._repository.update_task(
                title=title,
                body=body,
                task_id=task_id,
            )
        )
        if isinstance(result, Failure):
            self._fail(result, UPDATE_TASK_ERROR)
            return

        self._update(is_loading=False, current_title_input="", current_body_input="")
        self.send_event(ToggleUpdateTaskDialog(show=False))
        self._set_effect(ShowMessage(TASK_UPDATED))
        self.send_event(GetTasks())


__all__ = [
    "ADD_TASK_ERROR",
    "DELETE_TASK_ERROR",
    "GET_TASKS_ERROR",
    "TASK_ADDED",
    "TASK_DELETED",
    "TASK_UPDATED",
    "UPDATE_TASK_ERROR",
    "TasksController",
]
