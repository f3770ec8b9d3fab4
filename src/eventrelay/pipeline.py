"""
Module: pipeline.py
Description: Composition root for the consumer and the retry workers.

Builds the fanout, scheduler, primary consumer and retry worker pool
around one shared queue and one shared due-schedule, and runs them as
independent asyncio tasks.
"""

import asyncio
import time
from typing import Callable, List, Optional, Sequence

from eventrelay.config.settings import Settings
from eventrelay.delivery.consumer import PrimaryConsumer
from eventrelay.delivery.destinations import Destination, build_destinations
from eventrelay.delivery.fanout import Fanout
from eventrelay.delivery.scheduler import RetryScheduler
from eventrelay.delivery.worker import RetryWorkerPool
from eventrelay.notify.escalation import EscalationSink, build_escalation_sink
from eventrelay.storage.base import DueSchedule, EventQueue
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


class DeliveryPipeline:
    """Primary consumer plus retry worker pool."""

    def __init__(
        self,
        queue: EventQueue,
        fanout: Fanout,
        scheduler: RetryScheduler,
        workers: int = 5,
        poll_interval: float = 5.0,
        error_backoff: float = 5.0
    ):
        self.fanout = fanout
        self.scheduler = scheduler
        self.consumer = PrimaryConsumer(queue, fanout, scheduler, error_backoff=error_backoff)
        self.pool = RetryWorkerPool(scheduler, fanout, size=workers, poll_interval=poll_interval)
        self._consumer_task: Optional[asyncio.Task] = None

    def start(self) -> List[asyncio.Task]:
        """Start the consumer and every retry worker."""
        if self._consumer_task is not None and not self._consumer_task.done():
            raise RuntimeError("Delivery pipeline already started")

        self._consumer_task = asyncio.create_task(self.consumer.run(), name="primary-consumer")
        tasks = [self._consumer_task] + self.pool.start()
        logger.info("Delivery pipeline started", tasks=len(tasks))
        return tasks

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel all tasks without draining in-flight deliveries."""
        if self._consumer_task is not None:
            self._consumer_task.cancel()
            await asyncio.wait([self._consumer_task], timeout=timeout)
            self._consumer_task = None
        await self.pool.stop(timeout=timeout)
        logger.info("Delivery pipeline stopped")


def build_pipeline(
    settings: Settings,
    queue: EventQueue,
    schedule: DueSchedule,
    destinations: Optional[Sequence[Destination]] = None,
    escalation: Optional[EscalationSink] = None,
    clock: Callable[[], float] = time.time
) -> DeliveryPipeline:
    """
    Wire a pipeline from settings.

    Args:
        settings: Application settings
        queue: Shared event queue
        schedule: Shared due-schedule
        destinations: Override of the destinations named in settings
        escalation: Override of the sink named in settings
        clock: Unix time source for the scheduler

    Returns:
        Pipeline ready to start()
    """
    if destinations is None:
        destinations = build_destinations(
            settings.destinations,
            settings.webhook_urls,
            webhook_timeout=settings.delivery_timeout or 10.0
        )
    if escalation is None:
        escalation = build_escalation_sink(settings)

    fanout = Fanout(destinations, timeout=settings.delivery_timeout)
    scheduler = RetryScheduler(
        schedule,
        escalation,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base,
        clock=clock
    )

    logger.info(
        "Delivery pipeline configured",
        destinations=[destination.name for destination in fanout.destinations],
        workers=settings.retry_workers,
        max_retries=settings.max_retries,
        poll_interval=settings.poll_interval
    )

    return DeliveryPipeline(
        queue,
        fanout,
        scheduler,
        workers=settings.retry_workers,
        poll_interval=settings.poll_interval,
        error_backoff=settings.error_backoff
    )
