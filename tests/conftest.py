"""
Module: conftest.py
Description: Shared pytest fixtures for eventrelay tests.

Provides in-memory stores, a controllable clock, scripted destinations
and a recording escalation sink so the consumer, workers and scheduler
can be exercised without a Redis server or real time passing.
"""

from typing import Iterable, List, Tuple

import pytest

from eventrelay.config.settings import Settings
from eventrelay.delivery.fanout import Fanout
from eventrelay.delivery.scheduler import RetryScheduler
from eventrelay.models.event import Event, RetryEnvelope
from eventrelay.storage.memory import InMemoryDueSchedule, InMemoryEventQueue


class FakeClock:
    """Unix clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedDestination:
    """
    Destination returning pre-set outcomes and recording every call.

    Once the script is exhausted the last outcome repeats.
    """

    def __init__(self, name: str, outcomes: Iterable[bool]):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: List[Event] = []

    async def send(self, event: Event) -> bool:
        index = min(len(self.calls), len(self.outcomes) - 1)
        self.calls.append(event)
        return self.outcomes[index]


class RecordingSink:
    """Escalation sink that remembers every notification."""

    def __init__(self):
        self.notifications: List[Tuple[str, str]] = []

    async def notify(self, subject: str, body: str) -> None:
        self.notifications.append((subject, body))


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading and removes every pause so loops can be
    driven step by step.
    """
    return Settings(
        _env_file=None,
        log_level="DEBUG",
        stage="test",
        poll_interval=0,
        error_backoff=0,
        retry_workers=3,
        destinations=["logging"],
        escalation_channel="log"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_queue():
    return InMemoryEventQueue()


@pytest.fixture
def due_schedule():
    return InMemoryDueSchedule()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def scheduler(due_schedule, sink, clock):
    return RetryScheduler(due_schedule, sink, max_retries=5, backoff_base=2, clock=clock)


@pytest.fixture
def make_destination():
    """Factory for ScriptedDestination instances."""
    return ScriptedDestination


@pytest.fixture
def make_fanout():
    """Factory building a Fanout from a list of outcome scripts."""
    def _make(*scripts: Iterable[bool]) -> Fanout:
        return Fanout([
            ScriptedDestination(f"dest{index}", script)
            for index, script in enumerate(scripts, start=1)
        ])
    return _make


@pytest.fixture
def sample_event():
    return Event(user_id="u1", payload="p1")


@pytest.fixture
def sample_envelope(sample_event):
    return RetryEnvelope(event=sample_event, retry_count=1)
