"""
Module: delivery/retry.py
Description: Persist a retry through store outages.

Once an event has been popped from the queue or claimed from the
schedule, the store no longer holds it. If writing its retry entry
fails, the write is retried at a fixed interval until the store comes
back instead of dropping the event.
"""

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_never,
    wait_fixed,
)

from eventrelay.delivery.scheduler import RetryScheduler
from eventrelay.models.event import DeliveryOutcome, RetryEnvelope
from eventrelay.storage.base import StoreError
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


def _log_store_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.error(
        "Store unavailable while scheduling retry, will try again",
        attempt=retry_state.attempt_number,
        error=str(exc)
    )


async def persist_retry(
    scheduler: RetryScheduler,
    envelope: RetryEnvelope,
    interval: float = 5.0
) -> DeliveryOutcome:
    """
    Call scheduler.schedule_retry until the store accepts it.

    Args:
        scheduler: Retry scheduler
        envelope: Envelope of the failed attempt
        interval: Seconds between attempts while the store is failing

    Returns:
        Outcome reported by schedule_retry
    """
    async for attempt in AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(StoreError),
        before_sleep=_log_store_retry,
        reraise=True,
    ):
        with attempt:
            return await scheduler.schedule_retry(envelope)
