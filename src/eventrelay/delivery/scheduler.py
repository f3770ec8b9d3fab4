"""
Module: scheduler.py
Description: Exponential backoff retry schedule with an escalation ceiling.

An envelope moves Fresh-failure -> Scheduled(k) -> Scheduled(k + 1) until
it is either delivered by a retry worker or its count exceeds the
ceiling, at which point the operator is notified and the envelope is
never scheduled again.

Key Components:
- RetryScheduler.schedule_retry(): Increment, then reschedule or escalate
- RetryScheduler.poll_due(): Atomically claim entries that are due
- RetryScheduler.backoff_delay(): base ** retry_count seconds

Backoff has no jitter and no cap: with the defaults the delays are
2, 4, 8, 16 and 32 seconds.

Dependencies: time
"""

import time
from typing import Callable, List

from eventrelay.models.event import DeliveryOutcome, RetryEnvelope
from eventrelay.notify.escalation import EscalationSink
from eventrelay.storage.base import DueSchedule
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)

ESCALATION_SUBJECT = "Event Delivery Failed"


class RetryScheduler:
    """
    Owns the due-schedule between a failed attempt and the next due-check.

    Args:
        schedule: Shared due-schedule store
        escalation: Sink notified when retries are exhausted
        max_retries: Retry ceiling; a count above it is terminal
        backoff_base: Base of the exponential delay
        clock: Source of unix time in seconds
    """

    def __init__(
        self,
        schedule: DueSchedule,
        escalation: EscalationSink,
        max_retries: int = 5,
        backoff_base: int = 2,
        clock: Callable[[], float] = time.time
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if backoff_base < 2:
            raise ValueError("backoff_base must be at least 2")

        self.schedule = schedule
        self.escalation = escalation
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.clock = clock

    def backoff_delay(self, retry_count: int) -> float:
        """Seconds to wait before attempt number retry_count is eligible."""
        return float(self.backoff_base ** retry_count)

    async def schedule_retry(self, envelope: RetryEnvelope) -> DeliveryOutcome:
        """
        Schedule the next attempt for envelope or escalate it.

        The count is incremented first. Above the ceiling the envelope is
        escalated and dropped; otherwise it is stored with priority
        now + backoff_delay(count).

        Returns:
            DeliveryOutcome.RESCHEDULED or DeliveryOutcome.ESCALATED

        Raises:
            StoreError: If the schedule could not be written
        """
        attempt = envelope.next_attempt()

        if attempt.retry_count > self.max_retries:
            await self._escalate(attempt)
            return DeliveryOutcome.ESCALATED

        due_at = self.clock() + self.backoff_delay(attempt.retry_count)
        await self.schedule.add(due_at, attempt.to_bytes())

        logger.info(
            "Event scheduled for retry",
            user_id=attempt.event.user_id,
            retry_count=attempt.retry_count,
            due_at=due_at
        )
        return DeliveryOutcome.RESCHEDULED

    async def poll_due(self, max_count: int = 1) -> List[bytes]:
        """
        Claim up to max_count serialized envelopes whose due time has passed.

        Claimed entries are already removed from the schedule; the caller
        owns them.

        Raises:
            ValueError: If max_count is less than 1
            StoreError: If the schedule could not be read
        """
        if max_count < 1:
            raise ValueError("max_count must be at least 1")
        return await self.schedule.pop_due(self.clock(), max_count)

    async def _escalate(self, envelope: RetryEnvelope) -> None:
        body = f"Failed to deliver event after {self.max_retries} attempts: {envelope.event}"

        logger.error(
            "Retries exhausted, escalating",
            user_id=envelope.event.user_id,
            retry_count=envelope.retry_count,
            max_retries=self.max_retries
        )

        try:
            await self.escalation.notify(ESCALATION_SUBJECT, body)
        except Exception as e:
            logger.error(
                "Escalation sink failed",
                user_id=envelope.event.user_id,
                error=str(e),
                error_type=type(e).__name__
            )
