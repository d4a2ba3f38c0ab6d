from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

S = TypeVar("S")
E = TypeVar("E")


class StateFlow(Generic[S]):
    """Observable cell holding the latest value.

    - ``value`` is always the most recent snapshot
    - ``subscribe()`` yields the current value first, then every later replacement
    - setting a value equal to the current one is a no-op for subscribers
    """

    def __init__(self, initial: S) -> None:
        self._value = initial
        self._subscribers: set[asyncio.Queue[S]] = set()

    @property
    def value(self) -> S:
        return self._value

    def set(self, value: S) -> None:
        if value == self._value:
            return
        self._value = value
        for queue in list(self._subscribers):
            queue.put_nowait(value)

    async def subscribe(self) -> AsyncIterator[S]:
        queue: asyncio.Queue[S] = asyncio.Queue()
        queue.put_nowait(self._value)
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)


class EffectChannel(Generic[E]):
    """Unbounded single-consumer queue of one-shot effects.

    Each effect is handed out exactly once; nothing is replayed to late readers.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[E] = asyncio.Queue()

    def send(self, effect: E) -> None:
        self._queue.put_nowait(effect)

    async def receive(self) -> E:
        return await self._queue.get()

    def drain(self) -> list[E]:
        """Take every effect queued so far without waiting."""
        out: list[E] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return out

    def __aiter__(self) -> EffectChannel[E]:
        return self

    async def __anext__(self) -> E:
        return await self.receive()


__all__ = ["EffectChannel", "StateFlow"]
