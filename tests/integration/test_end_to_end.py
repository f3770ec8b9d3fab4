"""
Module: test_end_to_end.py
Description: Integration tests from ingestion to delivery, retry and escalation.

Events enter through the FastAPI ingestion route onto a Redis queue
(fakeredis), are consumed by the primary consumer and redelivered by
retry workers against the Redis due-schedule. Time is driven by a fake
clock so the exponential backoff elapses instantly.
"""

import asyncio

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eventrelay.delivery.scheduler import ESCALATION_SUBJECT
from eventrelay.delivery.worker import RetryWorker
from eventrelay.handlers.ingest import get_event_queue, router as ingest_router
from eventrelay.models.event import DeliveryOutcome, Event, RetryEnvelope
from eventrelay.pipeline import build_pipeline
from eventrelay.storage.memory import InMemoryEventQueue
from eventrelay.storage.redis_store import RedisDueSchedule, RedisEventQueue


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def redis_queue(redis_client):
    return RedisEventQueue(redis_client, "events")


@pytest.fixture
def redis_schedule(redis_client):
    return RedisDueSchedule(redis_client, "retry_events")


async def _due_entries(redis_client):
    """Return [(envelope, due_at)] currently on the schedule."""
    entries = await redis_client.zrange("retry_events", 0, -1, withscores=True)
    return [(RetryEnvelope.from_bytes(member), score) for member, score in entries]


class TestIngestToDelivery:
    """Ingest {userID: u1, payload: p1} and follow it through the pipeline."""

    @pytest.mark.asyncio
    async def test_successful_delivery(
        self, test_settings, redis_queue, redis_schedule, make_destination, sink, clock
    ):
        destination = make_destination("all-ok", [True])
        pipeline = build_pipeline(
            test_settings, redis_queue, redis_schedule,
            destinations=[destination], escalation=sink, clock=clock
        )
        await redis_queue.push(Event(user_id="u1", payload="p1").to_bytes())

        assert await pipeline.consumer.process_one() is DeliveryOutcome.DELIVERED
        assert await redis_queue.length() == 0
        assert await redis_schedule.count() == 0
        assert destination.calls == [Event(user_id="u1", payload="p1")]

    @pytest.mark.asyncio
    async def test_failure_then_retry_success(
        self, test_settings, redis_client, redis_queue, redis_schedule,
        make_destination, sink, clock
    ):
        """Test a failed event is retried after 2s and then delivered."""
        destination = make_destination("fail-once", [False, True])
        pipeline = build_pipeline(
            test_settings, redis_queue, redis_schedule,
            destinations=[destination], escalation=sink, clock=clock
        )
        await redis_queue.push(Event(user_id="u1", payload="p1").to_bytes())

        assert await pipeline.consumer.process_one() is DeliveryOutcome.RESCHEDULED

        entries = await _due_entries(redis_client)
        assert len(entries) == 1
        envelope, due_at = entries[0]
        assert envelope.retry_count == 1
        assert due_at == pytest.approx(clock.now + 2)

        worker = pipeline.pool.workers[0]
        assert await worker.process_once() is DeliveryOutcome.IDLE

        clock.advance(2)
        assert await worker.process_once() is DeliveryOutcome.DELIVERED
        assert await redis_schedule.count() == 0
        assert sink.notifications == []

    @pytest.mark.asyncio
    async def test_always_failing_escalates_once(
        self, test_settings, redis_client, redis_queue, redis_schedule,
        make_destination, sink, clock
    ):
        """Test an undeliverable event escalates exactly once after 5 retries."""
        destination = make_destination("always-down", [False])
        pipeline = build_pipeline(
            test_settings, redis_queue, redis_schedule,
            destinations=[destination], escalation=sink, clock=clock
        )
        await redis_queue.push(Event(user_id="u1", payload="p1").to_bytes())
        assert await pipeline.consumer.process_one() is DeliveryOutcome.RESCHEDULED

        worker = pipeline.pool.workers[0]
        outcomes = []
        for expected_count in range(1, 6):
            entries = await _due_entries(redis_client)
            assert [envelope.retry_count for envelope, _ in entries] == [expected_count]
            clock.advance(2 ** expected_count)
            outcomes.append(await worker.process_once())

        assert outcomes == [DeliveryOutcome.RESCHEDULED] * 4 + [DeliveryOutcome.ESCALATED]
        assert await redis_schedule.count() == 0
        assert len(destination.calls) == 6
        assert len(sink.notifications) == 1
        subject, body = sink.notifications[0]
        assert subject == ESCALATION_SUBJECT
        assert "5 attempts" in body
        assert "user_id=u1" in body


class TestConcurrentWorkers:

    @pytest.mark.asyncio
    async def test_single_due_entry_claimed_once(
        self, test_settings, redis_schedule, make_destination, sink, clock
    ):
        """Test N workers racing for one due entry deliver it exactly once."""
        destination = make_destination("ok", [True])
        pipeline = build_pipeline(
            test_settings, InMemoryEventQueue(), redis_schedule,
            destinations=[destination], escalation=sink, clock=clock
        )
        await pipeline.scheduler.schedule_retry(
            RetryEnvelope(event=Event(user_id="u1", payload="p1"), retry_count=0)
        )
        clock.advance(2)

        workers = [
            RetryWorker(index, pipeline.scheduler, pipeline.fanout, poll_interval=0)
            for index in range(5)
        ]
        outcomes = await asyncio.gather(*[worker.process_once() for worker in workers])

        assert outcomes.count(DeliveryOutcome.DELIVERED) == 1
        assert outcomes.count(DeliveryOutcome.IDLE) == 4
        assert len(destination.calls) == 1


class TestRunningPipeline:

    @pytest.mark.asyncio
    async def test_started_pipeline_delivers_ingested_events(
        self, test_settings, make_destination, sink
    ):
        """Test the running consumer task picks up events pushed onto the queue."""
        from eventrelay.storage.memory import InMemoryDueSchedule

        settings = test_settings.model_copy(update={"poll_interval": 0.01})
        queue = InMemoryEventQueue()
        destination = make_destination("ok", [True])
        pipeline = build_pipeline(
            settings, queue, InMemoryDueSchedule(),
            destinations=[destination], escalation=sink
        )
        tasks = pipeline.start()
        assert len(tasks) == 1 + test_settings.retry_workers

        try:
            await queue.push(Event(user_id="u1", payload="p1").to_bytes())
            await queue.push(Event(user_id="u2", payload="p2").to_bytes())
            for _ in range(100):
                if len(destination.calls) == 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            await pipeline.stop()

        assert [event.user_id for event in destination.calls] == ["u1", "u2"]
        assert await queue.length() == 0


class TestIngestionRoute:

    def test_ingested_event_lands_on_queue(self):
        """Test POST /ingest writes the serialized event to the queue."""
        queue = InMemoryEventQueue()
        app = FastAPI()
        app.include_router(ingest_router)
        app.dependency_overrides[get_event_queue] = lambda: queue

        response = TestClient(app).post("/ingest", json={"userID": "u1", "payload": "p1"})

        assert response.status_code == 200
        assert queue._queue.qsize() == 1
        assert Event.from_bytes(queue._queue.get_nowait()) == Event(user_id="u1", payload="p1")
