"""
Module: fanout.py
Description: Send one event to an ordered list of destinations.

Destinations are invoked strictly in order and the first failure
short-circuits the rest. A partially delivered event counts as failed
and is retried from the first destination.
"""

import asyncio
from typing import List, Optional, Sequence

from eventrelay.delivery.destinations import Destination
from eventrelay.models.event import Event
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


class Fanout:
    """
    All-or-nothing delivery of an event to every destination.

    Args:
        destinations: Delivery targets in invocation order
        timeout: Optional bound in seconds on each send; a timeout is a failure
    """

    def __init__(self, destinations: Sequence[Destination], timeout: Optional[float] = None):
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")

        self.destinations: List[Destination] = list(destinations)
        self.timeout = timeout

    async def deliver(self, event: Event) -> bool:
        """
        Deliver event to every destination in order.

        Returns:
            True only if every destination returned True
        """
        for destination in self.destinations:
            if not await self._send(destination, event):
                logger.warning(
                    "Fanout stopped at failed destination",
                    destination=destination.name,
                    user_id=event.user_id
                )
                return False
        return True

    async def _send(self, destination: Destination, event: Event) -> bool:
        try:
            if self.timeout is None:
                return bool(await destination.send(event))
            return bool(await asyncio.wait_for(destination.send(event), timeout=self.timeout))

        except asyncio.TimeoutError:
            logger.warning(
                "Destination timed out",
                destination=destination.name,
                user_id=event.user_id,
                timeout_seconds=self.timeout
            )
            return False

        except Exception as e:
            logger.error(
                "Destination raised during send",
                destination=destination.name,
                user_id=event.user_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return False
