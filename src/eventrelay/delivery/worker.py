"""
Module: delivery/worker.py
Description: Retry workers redelivering envelopes from the due-schedule.

Each worker polls the scheduler for one due envelope, waits
poll_interval seconds when nothing is due or the store fails, and
otherwise re-runs the fanout. A failure goes back through the
scheduler, which either reschedules with a longer delay or escalates.

Workers share nothing but the due-schedule. The atomic claim in
poll_due is what keeps two workers from processing the same envelope.
"""

import asyncio
from typing import List, Optional

from pydantic import ValidationError

from eventrelay.delivery.fanout import Fanout
from eventrelay.delivery.retry import persist_retry
from eventrelay.delivery.scheduler import RetryScheduler
from eventrelay.models.event import DeliveryOutcome, RetryEnvelope
from eventrelay.storage.base import StoreError
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


class RetryWorker:
    """One polling loop over the due-schedule."""

    def __init__(
        self,
        worker_id: int,
        scheduler: RetryScheduler,
        fanout: Fanout,
        poll_interval: float = 5.0
    ):
        self.worker_id = worker_id
        self.scheduler = scheduler
        self.fanout = fanout
        self.poll_interval = poll_interval

    async def run(self) -> None:
        """Poll and redeliver until the task is cancelled."""
        logger.info("Retry worker started", worker_id=self.worker_id)

        while True:
            try:
                outcome = await self.process_once()

            except StoreError as e:
                logger.error(
                    "Failed to fetch events for retry",
                    worker_id=self.worker_id,
                    error=str(e)
                )
                outcome = DeliveryOutcome.IDLE

            except Exception as e:
                logger.error(
                    "Unexpected error in retry worker",
                    worker_id=self.worker_id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                outcome = DeliveryOutcome.IDLE

            if outcome is DeliveryOutcome.IDLE:
                await asyncio.sleep(self.poll_interval)

    async def process_once(self) -> DeliveryOutcome:
        """
        Claim at most one due envelope and attempt redelivery.

        Returns:
            IDLE when nothing was due, otherwise the outcome of the attempt

        Raises:
            StoreError: If the schedule could not be polled
        """
        payloads = await self.scheduler.poll_due(1)
        if not payloads:
            return DeliveryOutcome.IDLE

        try:
            envelope = RetryEnvelope.from_bytes(payloads[0])
        except ValidationError as e:
            logger.error(
                "Error unmarshalling failed event",
                worker_id=self.worker_id,
                error=str(e)
            )
            return DeliveryOutcome.DROPPED

        if await self.fanout.deliver(envelope.event):
            logger.info(
                "Event delivered successfully on retry",
                worker_id=self.worker_id,
                user_id=envelope.event.user_id,
                retry_count=envelope.retry_count
            )
            return DeliveryOutcome.DELIVERED

        logger.warning(
            "Retry failed for event, rescheduling",
            worker_id=self.worker_id,
            user_id=envelope.event.user_id,
            retry_count=envelope.retry_count
        )
        return await persist_retry(self.scheduler, envelope, interval=self.poll_interval)


class RetryWorkerPool:
    """
    Fixed number of identical retry workers running as asyncio tasks.

    Args:
        scheduler: Shared retry scheduler
        fanout: Shared fanout
        size: Number of workers
        poll_interval: Idle / error pause of each worker in seconds
    """

    def __init__(
        self,
        scheduler: RetryScheduler,
        fanout: Fanout,
        size: int = 5,
        poll_interval: float = 5.0
    ):
        if size < 1:
            raise ValueError("size must be at least 1")

        self.workers = [
            RetryWorker(worker_id, scheduler, fanout, poll_interval=poll_interval)
            for worker_id in range(size)
        ]
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> List[asyncio.Task]:
        """Create one task per worker on the running loop."""
        if self.running:
            raise RuntimeError("Retry worker pool already started")

        self._tasks = [
            asyncio.create_task(worker.run(), name=f"retry-worker-{worker.worker_id}")
            for worker in self.workers
        ]
        logger.info("Retry worker pool started", size=len(self.workers))
        return list(self._tasks)

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel every worker; in-flight attempts are not drained."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.wait(self._tasks, timeout=timeout)
        self._tasks = []
        logger.info("Retry worker pool stopped")
