"""
Module: consumer.py
Description: Primary consumer of freshly ingested events.

A single loop blocks on the event queue, fans each event out and hands
failures to the retry scheduler with retry_count 0. Malformed items are
dropped since they can never be delivered. A queue failure pauses the
loop for error_backoff seconds.
"""

import asyncio

from pydantic import ValidationError

from eventrelay.delivery.fanout import Fanout
from eventrelay.delivery.retry import persist_retry
from eventrelay.delivery.scheduler import RetryScheduler
from eventrelay.models.event import DeliveryOutcome, Event, RetryEnvelope
from eventrelay.storage.base import EventQueue, StoreError
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


class PrimaryConsumer:
    """Drains the event queue into the fanout."""

    def __init__(
        self,
        queue: EventQueue,
        fanout: Fanout,
        scheduler: RetryScheduler,
        error_backoff: float = 5.0
    ):
        self.queue = queue
        self.fanout = fanout
        self.scheduler = scheduler
        self.error_backoff = error_backoff

    async def run(self) -> None:
        """Process events until the task is cancelled."""
        logger.info("Primary consumer started")

        while True:
            try:
                await self.process_one()

            except StoreError as e:
                logger.error(
                    "Error fetching event from queue",
                    error=str(e),
                    backoff_seconds=self.error_backoff
                )
                await asyncio.sleep(self.error_backoff)

            except Exception as e:
                logger.error(
                    "Unexpected error in primary consumer",
                    error=str(e),
                    error_type=type(e).__name__
                )
                await asyncio.sleep(self.error_backoff)

    async def process_one(self) -> DeliveryOutcome:
        """
        Pop one event, deliver it and schedule a retry on failure.

        Returns:
            Outcome of this event

        Raises:
            StoreError: If the queue could not be read
        """
        raw = await self.queue.blocking_pop()

        try:
            event = Event.from_bytes(raw)
        except ValidationError as e:
            logger.error(
                "Dropping malformed event",
                raw=raw[:200].decode("utf-8", errors="replace"),
                error=str(e)
            )
            return DeliveryOutcome.DROPPED

        if await self.fanout.deliver(event):
            logger.info("Event delivered successfully", user_id=event.user_id)
            return DeliveryOutcome.DELIVERED

        logger.warning("Failed to deliver event", user_id=event.user_id)
        return await persist_retry(
            self.scheduler,
            RetryEnvelope(event=event, retry_count=0),
            interval=self.error_backoff
        )
