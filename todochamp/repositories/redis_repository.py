from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable
from typing import Any, TypeVar

import redis
import redis.asyncio

from todochamp.common.constants import COLLECTION_PATH_NAME, DEFAULT_REDIS_URL, DEFAULT_TIMEOUT_S
from todochamp.common.dates import created_at_from_epoch
from todochamp.common.errors import TaskNotFoundError, TaskStoreError, TaskStoreTimeoutError
from todochamp.common.result import Failure, Result, Success
from todochamp.models.task import Task
from todochamp.observability import Tracer, get_json_logger, get_metrics

from .interface import TaskRepository

T = TypeVar("T")

# Checks for the document and writes both fields in one server-side step
_UPDATE_IF_EXISTS = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
redis.call('HSET', KEYS[1], 'title', ARGV[1], 'body', ARGV[2])
return 1
"""


class RedisTaskRepository(TaskRepository):
    """Redis-backed task collection.

    Data structures:
    - Hash per task: key `{collection}:doc:{id}` with fields `title`, `body`, `createdAt`
    - Sorted set `{collection}:index` ordering ids by creation time (score = epoch seconds)

    Creation timestamps come from the Redis server clock, ids are generated here, so
    callers only learn a task's id by listing the collection.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        collection: str = COLLECTION_PATH_NAME,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Any | None = None,
    ) -> None:
        if client is not None:
            self._redis = client
        else:
            # decode_responses=True returns str everywhere, matching Task fields
            self._redis = redis.asyncio.from_url(
                redis_url or DEFAULT_REDIS_URL, decode_responses=True
            )
        self._collection = collection.rstrip(":")
        self._timeout_s = timeout_s
        self._logger = get_json_logger("todochamp.store")
        self._tracer = Tracer(self._logger)

    @property
    def collection(self) -> str:
        return self._collection

    async def aclose(self) -> None:
        await self._redis.aclose()

    # key helpers
    def _doc_key(self, task_id: str) -> str:
        return f"{self._collection}:doc:{task_id}"

    def _index_key(self) -> str:
        return f"{self._collection}:index"

    # ----------------------------
    # Public API
    # ----------------------------
    async def add_task(self, title: str, body: str) -> Result[None]:
        return await self._guard("add_task", self._add(title, body))

    async def get_all_tasks(self) -> Result[list[Task]]:
        return await self._guard("get_all_tasks", self._fetch_all())

    async def delete_task(self, task_id: str) -> Result[None]:
        return await self._guard("delete_task", self._delete(task_id), task_id=task_id)

    async def update_task(self, title: str, body: str, task_id: str) -> Result[None]:
        return await self._guard("update_task", self._update(title, body, task_id), task_id=task_id)

    # ----------------------------
    # Remote operations
    # ----------------------------
    async def _add(self, title: str, body: str) -> None:
        seconds, micros = await self._redis.time()
        created = seconds + micros / 1_000_000
        task_id = uuid.uuid4().hex
        document = {"title": title, "body": body, "createdAt": created_at_from_epoch(created)}
        async with self._redis.pipeline(transaction=True) as p:
            p.hset(self._doc_key(task_id), mapping=document)
            p.zadd(self._index_key(), {task_id: created})
            await p.execute()
        self._logger.info(
            "task added",
            extra={"event": "task_added", "collection": self._collection, "task_id": task_id},
        )

    async def _fetch_all(self) -> list[Task]:
        task_ids: list[str] = await self._redis.zrange(self._index_key(), 0, -1)
        if not task_ids:
            return []
        async with self._redis.pipeline(transaction=False) as p:
            for tid in task_ids:
                p.hgetall(self._doc_key(tid))
            documents: list[dict[str, str]] = await p.execute()
        tasks: list[Task] = []
        stale: list[str] = []
        for tid, document in zip(task_ids, documents, strict=True):
            # Index entries can outlive a document removed by another client
            if not document:
                stale.append(tid)
                continue
            tasks.append(Task.from_document(tid, document))
        if stale:
            await self._redis.zrem(self._index_key(), *stale)
            self._logger.info(
                "stale index entries removed",
                extra={
                    "event": "index_pruned",
                    "collection": self._collection,
                    "metadata": {"count": len(stale)},
                },
            )
        self._logger.debug(
            "tasks fetched",
            extra={
                "event": "tasks_fetched",
                "collection": self._collection,
                "metadata": {"count": len(tasks)},
            },
        )
        return tasks

    async def _delete(self, task_id: str) -> None:
        async with self._redis.pipeline(transaction=True) as p:
            p.delete(self._doc_key(task_id))
            p.zrem(self._index_key(), task_id)
            await p.execute()

    async def _update(self, title: str, body: str, task_id: str) -> None:
        updated = await self._redis.eval(_UPDATE_IF_EXISTS, 1, self._doc_key(task_id), title, body)
        if not int(updated):
            raise TaskNotFoundError(task_id)

    # ----------------------------
    # Internal helpers
    # ----------------------------
    async def _guard(
        self, operation: str, call: Awaitable[T], *, task_id: str | None = None
    ) -> Result[T]:
        """Run one remote call under the timeout and fold its outcome into a Result."""
        metrics = get_metrics()
        labels = {"operation": operation, "collection": self._collection}
        metrics.increment("store_calls", labels)
        extra: dict[str, Any] = {"operation": operation, "collection": self._collection}
        if task_id is not None:
            extra["task_id"] = task_id
        with self._tracer.span(f"store.{operation}", extra):
            try:
                data = await asyncio.wait_for(call, timeout=self._timeout_s)
            except (TimeoutError, redis.exceptions.TimeoutError):
                self._logger.warning(
                    "store call timed out",
                    extra={
                        **extra,
                        "event": "store_timeout",
                        "metadata": {"timeout_s": self._timeout_s},
                    },
                )
                metrics.increment("store_timeouts", labels)
                return Failure(TaskStoreTimeoutError())
            except TaskStoreError as exc:
                self._log_error(extra, exc)
                metrics.increment("store_errors", labels)
                return Failure(exc)
            except Exception as exc:  # noqa: BLE001
                self._log_error(extra, exc)
                metrics.increment("store_errors", labels)
                return Failure(TaskStoreError.from_exception(exc))
        return Success(data)

    def _log_error(self, extra: dict[str, Any], exc: Exception) -> None:
        self._logger.error(
            "store call failed",
            extra={
                **extra,
                "event": "store_error",
                "metadata": {"error": str(exc)[:200], "err_type": type(exc).__name__},
            },
        )


__all__ = ["RedisTaskRepository"]
