"""
Module: base.py
Description: Storage capabilities shared by the consumer and the retry workers.

The durable queue and the due-schedule are the only shared mutable state
in the pipeline. Every operation here must be indivisible on the backing
store; callers never combine two calls into a read-modify-write on the
same item.

Key Components:
- StoreError: Transient failure of the backing store
- EventQueue: FIFO of serialized events with a blocking pop
- DueSchedule: Time-ordered set of serialized retry envelopes
"""

from abc import ABC, abstractmethod
from typing import List


class StoreError(Exception):
    """The backing store could not be reached or rejected the operation."""


class EventQueue(ABC):
    """Durable FIFO queue of serialized events."""

    @abstractmethod
    async def push(self, item: bytes) -> None:
        """Append an item to the tail of the queue."""

    @abstractmethod
    async def blocking_pop(self) -> bytes:
        """
        Remove and return the head of the queue.

        Suspends until an item exists; there is no deadline.

        Raises:
            StoreError: If the store is unavailable
        """

    @abstractmethod
    async def length(self) -> int:
        """Number of items currently queued."""


class DueSchedule(ABC):
    """
    Ordered set of (priority, payload) entries.

    Priority is the absolute unix timestamp at which the payload becomes
    eligible for redelivery.
    """

    @abstractmethod
    async def add(self, priority: float, payload: bytes) -> None:
        """Insert payload with the given priority."""

    @abstractmethod
    async def pop_due(self, max_priority: float, limit: int) -> List[bytes]:
        """
        Atomically remove and return up to limit entries with
        priority <= max_priority, lowest priority first.

        No two concurrent callers ever receive the same entry. A limit
        below 1 claims nothing.

        Raises:
            StoreError: If the store is unavailable
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of entries currently scheduled."""
