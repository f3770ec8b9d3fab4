"""
Module: storage
Description: Package initialization for the durable queue and due-schedule.

This package contains the storage capabilities used by the pipeline:
- base: Abstract EventQueue and DueSchedule interfaces, StoreError
- memory: In-process implementations for tests and local runs
- redis_store: Redis list and sorted-set implementations

All storage implementations follow async interfaces for consistency.
"""

from .base import DueSchedule, EventQueue, StoreError

__all__ = [
    "DueSchedule",
    "EventQueue",
    "StoreError",
]
