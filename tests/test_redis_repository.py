from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
import redis
import redis.asyncio

from todochamp.common.errors import TaskNotFoundError, TaskStoreError, TaskStoreTimeoutError
from todochamp.common.result import Failure, Success
from todochamp.observability import get_metrics
from todochamp.repositories.redis_repository import RedisTaskRepository


class _SlowClient:
    """Client whose every call outlives any sensible timeout."""

    async def _hang(self, *args: Any, **kwargs: Any) -> Any:
        await asyncio.sleep(5)

    time = _hang
    zrange = _hang
    eval = _hang

    def pipeline(self, *args: Any, **kwargs: Any) -> Any:
        return _SlowPipeline()


class _SlowPipeline:
    async def __aenter__(self) -> _SlowPipeline:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    def __getattr__(self, name: str) -> Any:
        return lambda *args, **kwargs: self

    async def execute(self) -> list[Any]:
        await asyncio.sleep(5)
        return []


class _BrokenClient:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def zrange(self, *args: Any, **kwargs: Any) -> Any:
        raise self._exc

    async def time(self) -> Any:
        raise self._exc


class _MissingDocClient:
    async def eval(self, *args: Any, **kwargs: Any) -> int:
        return 0


class _StaleIndexClient:
    """Index lists two ids but only one document still exists."""

    def __init__(self) -> None:
        self.removed: list[str] = []

    async def zrange(self, *args: Any, **kwargs: Any) -> list[str]:
        return ["gone", "kept"]

    def pipeline(self, *args: Any, **kwargs: Any) -> Any:
        return _DocsPipeline([{}, {"title": "Kept", "body": "", "createdAt": ""}])

    async def zrem(self, key: str, *members: str) -> int:
        self.removed.extend(members)
        return len(members)


class _DocsPipeline:
    def __init__(self, documents: list[dict[str, str]]) -> None:
        self._documents = documents

    async def __aenter__(self) -> _DocsPipeline:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    def hgetall(self, key: str) -> _DocsPipeline:
        return self

    async def execute(self) -> list[dict[str, str]]:
        return self._documents


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["add", "list", "delete", "update"])
async def test_timeout_yields_check_connection_failure(operation: str) -> None:
    repo = RedisTaskRepository(client=_SlowClient(), timeout_s=0.05)
    calls = {
        "add": lambda: repo.add_task("t", "b"),
        "list": repo.get_all_tasks,
        "delete": lambda: repo.delete_task("id1"),
        "update": lambda: repo.update_task("t", "b", "id1"),
    }

    result = await asyncio.wait_for(calls[operation](), timeout=1.0)

    assert isinstance(result, Failure)
    assert isinstance(result.error, TaskStoreTimeoutError)
    assert str(result.error) == "Please check your internet connection"


@pytest.mark.asyncio
async def test_client_timeout_maps_to_timeout_kind() -> None:
    repo = RedisTaskRepository(client=_BrokenClient(redis.exceptions.TimeoutError("read timeout")))

    result = await repo.get_all_tasks()

    assert isinstance(result, Failure)
    assert isinstance(result.error, TaskStoreTimeoutError)
    assert get_metrics().value(
        "store_timeouts", {"operation": "get_all_tasks", "collection": "tasks"}
    ) == 1


@pytest.mark.asyncio
async def test_store_error_passes_message_through() -> None:
    cause = redis.exceptions.ConnectionError("Connection refused")
    repo = RedisTaskRepository(client=_BrokenClient(cause))

    result = await repo.add_task("t", "b")

    assert isinstance(result, Failure)
    assert type(result.error) is TaskStoreError
    assert str(result.error) == "Connection refused"
    assert result.error.__cause__ is cause
    labels = {"operation": "add_task", "collection": "tasks"}
    assert get_metrics().value("store_calls", labels) == 1
    assert get_metrics().value("store_errors", labels) == 1


@pytest.mark.asyncio
async def test_update_of_unknown_document_fails() -> None:
    repo = RedisTaskRepository(client=_MissingDocClient())

    result = await repo.update_task("t", "b", "")

    assert isinstance(result, Failure)
    assert isinstance(result.error, TaskNotFoundError)
    assert result.error.task_id == ""


@pytest.mark.asyncio
async def test_listing_prunes_index_entries_without_document() -> None:
    client = _StaleIndexClient()
    repo = RedisTaskRepository(client=client)

    result = await repo.get_all_tasks()

    assert isinstance(result, Success)
    assert [t.id for t in result.data] == ["kept"]
    assert client.removed == ["gone"]


# ----------------------------
# Against a live Redis
# ----------------------------


@asynccontextmanager
async def _live_repo(url: str, collection: str) -> AsyncIterator[RedisTaskRepository]:
    repo = RedisTaskRepository(url, collection=collection)
    try:
        yield repo
    finally:
        raw = redis.asyncio.from_url(url, decode_responses=True)
        keys = [k async for k in raw.scan_iter(match=f"{collection}:*")]
        if keys:
            await raw.delete(*keys)
        await raw.aclose()
        await repo.aclose()


@pytest.mark.asyncio
async def test_add_then_list_round_trip(redis_url: str, unique_collection: str) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        assert isinstance(await repo.add_task("A", "B"), Success)

        result = await repo.get_all_tasks()

        assert isinstance(result, Success)
        assert len(result.data) == 1
        task = result.data[0]
        assert task.title == "A"
        assert task.body == "B"
        assert task.id
        assert task.created_at


@pytest.mark.asyncio
async def test_list_empty_collection(redis_url: str, unique_collection: str) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        result = await repo.get_all_tasks()
        assert result == Success([])


@pytest.mark.asyncio
async def test_list_is_ordered_by_creation(redis_url: str, unique_collection: str) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        for title in ("First", "Second", "Third"):
            await repo.add_task(title, "")
            await asyncio.sleep(0.01)

        result = await repo.get_all_tasks()

        assert isinstance(result, Success)
        assert [t.title for t in result.data] == ["First", "Second", "Third"]


@pytest.mark.asyncio
async def test_update_changes_title_and_body_only(redis_url: str, unique_collection: str) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        await repo.add_task("Old", "old body")
        listed = await repo.get_all_tasks()
        assert isinstance(listed, Success)
        before = listed.data[0]

        assert isinstance(await repo.update_task("New", "new body", before.id), Success)

        after = await repo.get_all_tasks()
        assert isinstance(after, Success)
        assert after.data[0].id == before.id
        assert after.data[0].title == "New"
        assert after.data[0].body == "new body"
        assert after.data[0].created_at == before.created_at


@pytest.mark.asyncio
async def test_update_unknown_id_does_not_create_document(
    redis_url: str, unique_collection: str
) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        result = await repo.update_task("t", "b", "")

        assert isinstance(result, Failure)
        assert isinstance(result.error, TaskNotFoundError)
        assert await repo.get_all_tasks() == Success([])


@pytest.mark.asyncio
async def test_delete_removes_and_unknown_id_is_noop(
    redis_url: str, unique_collection: str
) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        await repo.add_task("Remove me", "")
        listed = await repo.get_all_tasks()
        assert isinstance(listed, Success)

        assert isinstance(await repo.delete_task(listed.data[0].id), Success)
        assert isinstance(await repo.delete_task("does-not-exist"), Success)
        assert await repo.get_all_tasks() == Success([])


@pytest.mark.asyncio
async def test_documents_with_missing_fields_default_to_empty(
    redis_url: str, unique_collection: str
) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        raw = redis.asyncio.from_url(redis_url, decode_responses=True)
        try:
            await raw.hset(f"{unique_collection}:doc:legacy", mapping={"title": "Only title"})
            await raw.zadd(f"{unique_collection}:index", {"legacy": 1.0})
        finally:
            await raw.aclose()

        result = await repo.get_all_tasks()

        assert isinstance(result, Success)
        assert len(result.data) == 1
        task = result.data[0]
        assert (task.id, task.title, task.body, task.created_at) == ("legacy", "Only title", "", "")


@pytest.mark.asyncio
async def test_orphaned_index_entry_is_removed(redis_url: str, unique_collection: str) -> None:
    async with _live_repo(redis_url, unique_collection) as repo:
        raw = redis.asyncio.from_url(redis_url, decode_responses=True)
        try:
            await raw.zadd(f"{unique_collection}:index", {"orphan": 1.0})

            assert await repo.get_all_tasks() == Success([])
            assert await raw.zcard(f"{unique_collection}:index") == 0
        finally:
            await raw.aclose()
