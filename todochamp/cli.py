from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from typing import Any

from todochamp.config import AppConfig, load_config
from todochamp.feature_tasks import (
    AddTask,
    DeleteTask,
    SetBodyInput,
    SetTaskToBeUpdated,
    SetTitleInput,
    ShowMessage,
    TasksController,
    ToggleAddTaskDialog,
    ToggleUpdateTaskDialog,
    UpdateTask,
)
from todochamp.models.task import Task
from todochamp.observability import get_json_logger, get_metrics
from todochamp.repositories.interface import TaskRepository
from todochamp.repositories.redis_repository import RedisTaskRepository


def build_repository(cfg: AppConfig) -> TaskRepository:
    return RedisTaskRepository(cfg.redis_url, collection=cfg.collection, timeout_s=cfg.timeout_s)


def _print_tasks(tasks: Sequence[Task], *, as_json: bool) -> None:
    if as_json:
        sys.stdout.write(json.dumps([t.model_dump() for t in tasks]) + "\n")
        return
    if not tasks:
        sys.stdout.write("No tasks yet.\n")
        return
    for t in tasks:
        sys.stdout.write(f"{t.id}  {t.created_at or '-':<18}  {t.title}\n")
        if t.body:
            sys.stdout.write(f"    {t.body}\n")


def _report_effects(controller: TasksController) -> bool:
    """Print queued messages to stderr; return True if any of them was an error."""
    failed = False
    for effect in controller.effects.drain():
        if isinstance(effect, ShowMessage):
            prefix = "error: " if effect.is_error else ""
            sys.stderr.write(f"{prefix}{effect.message}\n")
            failed = failed or effect.is_error
    return failed


def _find_task(tasks: Sequence[Task], task_id: str) -> Task:
    for t in tasks:
        if t.id == task_id:
            return t
    # Unknown ids are still sent so the store reports them
    return Task(id=task_id)


def _apply_command(controller: TasksController, args: Any) -> None:
    cmd = args.cmd
    if cmd == "add":
        controller.send_event(ToggleAddTaskDialog(show=True))
        controller.send_event(SetTitleInput(args.title))
        controller.send_event(SetBodyInput(args.body))
        state = controller.state.value
        controller.send_event(AddTask(state.current_title_input, state.current_body_input))
    elif cmd == "update":
        current = _find_task(controller.state.value.tasks, args.task_id)
        controller.send_event(SetTaskToBeUpdated(current))
        controller.send_event(ToggleUpdateTaskDialog(show=True))
        title = args.title if args.title is not None else current.title
        body = args.body if args.body is not None else current.body
        controller.send_event(SetTitleInput(title))
        controller.send_event(SetBodyInput(body))
        controller.send_event(UpdateTask())
    elif cmd == "delete":
        controller.send_event(DeleteTask(args.task_id))


async def run(args: Any, repository: TaskRepository) -> int:
    """Drive one controller the way a screen would and print the outcome."""
    controller = TasksController(repository)
    try:
        await controller.wait_idle()
        failed = _report_effects(controller)
        if args.cmd != "list" and not failed:
            _apply_command(controller, args)
            await controller.wait_idle()
            failed = _report_effects(controller)
        if not args.quiet:
            _print_tasks(controller.state.value.tasks, as_json=args.json)
        return 1 if failed else 0
    finally:
        await controller.aclose()
        closer = getattr(repository, "aclose", None)
        if closer is not None:
            await closer()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("todochamp", description="Manage tasks in the shared store")
    parser.add_argument("--json", action="store_true", help="Print the task list as JSON")
    parser.add_argument("--quiet", action="store_true", help="Do not print the task list")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("list", help="List all tasks")

    p_add = sub.add_parser("add", help="Create a task")
    p_add.add_argument("title")
    p_add.add_argument("--body", default="")

    p_update = sub.add_parser("update", help="Change the title and/or body of a task")
    p_update.add_argument("task_id")
    p_update.add_argument("--title")
    p_update.add_argument("--body")

    p_delete = sub.add_parser("delete", help="Delete a task")
    p_delete.add_argument("task_id")

    args = parser.parse_args(argv)
    if not args.cmd:
        args.cmd = "list"
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    cfg = load_config()
    logger = get_json_logger("todochamp")
    logger.debug(
        "cli start",
        extra={
            "event": "cli_start",
            "collection": cfg.collection,
            "metadata": {"cmd": args.cmd, "timeout_s": cfg.timeout_s},
        },
    )
    code = asyncio.run(run(args, build_repository(cfg)))
    logger.debug(
        "cli done",
        extra={
            "event": "cli_done",
            "metadata": {"exit_code": code, "metrics": get_metrics().snapshot()},
        },
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
