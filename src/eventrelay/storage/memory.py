"""
Module: memory.py
Description: In-process queue and due-schedule.

Suitable for tests and single-process local runs. Nothing survives a
restart. Entries in the schedule are keyed by payload, so scheduling an
identical payload again moves it instead of duplicating it, which
matches the Redis sorted-set behaviour.
"""

import asyncio
from typing import Dict, List

from eventrelay.storage.base import DueSchedule, EventQueue


class InMemoryEventQueue(EventQueue):
    """asyncio.Queue backed event queue."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[bytes]" = asyncio.Queue()

    async def push(self, item: bytes) -> None:
        await self._queue.put(item)

    async def blocking_pop(self) -> bytes:
        return await self._queue.get()

    async def length(self) -> int:
        return self._queue.qsize()


class InMemoryDueSchedule(DueSchedule):
    """Dictionary backed due-schedule guarded by a single lock."""

    def __init__(self) -> None:
        self._entries: Dict[bytes, float] = {}
        self._lock = asyncio.Lock()

    async def add(self, priority: float, payload: bytes) -> None:
        async with self._lock:
            self._entries[payload] = priority

    async def pop_due(self, max_priority: float, limit: int) -> List[bytes]:
        if limit < 1:
            return []

        async with self._lock:
            due = sorted(
                (priority, payload)
                for payload, priority in self._entries.items()
                if priority <= max_priority
            )[:limit]
            for _, payload in due:
                del self._entries[payload]
            return [payload for _, payload in due]

    async def count(self) -> int:
        async with self._lock:
            return len(self._entries)

    async def priorities(self) -> Dict[bytes, float]:
        """Snapshot of payload -> priority, for inspection."""
        async with self._lock:
            return dict(self._entries)
