"""
Module: destinations.py
Description: Delivery targets an event is fanned out to.

A destination is anything with an async send(event) -> bool. Returning
False is an ordinary delivery failure and is handled by the retry
schedule; destinations are expected to be idempotent because a failed
fanout is re-attempted from the first destination.

Key Components:
- Destination: Protocol every delivery target satisfies
- FlakyDestination: Succeeds with a fixed probability
- SlowDestination: Succeeds after a random delay
- LoggingDestination: Always succeeds and logs the event
- WebhookDestination: HTTP POST of the event JSON via httpx
- build_destinations(): Compose the ordered list from settings

Dependencies: httpx, random, asyncio
"""

import asyncio
import random
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import httpx

from eventrelay.models.event import Event
from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Destination(Protocol):
    """A delivery target."""

    name: str

    async def send(self, event: Event) -> bool:
        ...


class FlakyDestination:
    """Destination that succeeds success_rate of the time."""

    def __init__(self, success_rate: float = 0.8, rng: Optional[random.Random] = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")

        self.name = "flaky"
        self.success_rate = success_rate
        self._rng = rng or random.Random()

    async def send(self, event: Event) -> bool:
        if self._rng.random() < self.success_rate:
            logger.info("Destination received event", destination=self.name, user_id=event.user_id)
            return True

        logger.warning("Destination rejected event", destination=self.name, user_id=event.user_id)
        return False


class SlowDestination:
    """Destination that always succeeds after up to max_delay seconds."""

    def __init__(self, max_delay: float = 2.0, rng: Optional[random.Random] = None):
        if max_delay < 0:
            raise ValueError("max_delay must be non-negative")

        self.name = "slow"
        self.max_delay = max_delay
        self._rng = rng or random.Random()

    async def send(self, event: Event) -> bool:
        delay = self._rng.uniform(0, self.max_delay)
        await asyncio.sleep(delay)
        logger.info(
            "Destination received event",
            destination=self.name,
            user_id=event.user_id,
            delay_seconds=round(delay, 3)
        )
        return True


class LoggingDestination:
    """Destination that always succeeds and logs the full event."""

    def __init__(self) -> None:
        self.name = "logging"

    async def send(self, event: Event) -> bool:
        logger.info(
            "Destination received event",
            destination=self.name,
            user_id=event.user_id,
            payload=event.payload
        )
        return True


class WebhookDestination:
    """
    HTTP client pushing events to a webhook.

    Handles delivery attempts with proper timeout and error handling
    for network issues. Any non-2xx response is a failure.
    """

    def __init__(self, webhook_url: str, timeout_seconds: float = 10.0):
        """
        Initialize webhook destination.

        Args:
            webhook_url: URL receiving a JSON POST per event
            timeout_seconds: HTTP timeout in seconds

        Raises:
            ValueError: If webhook_url is invalid
        """
        if not webhook_url or not isinstance(webhook_url, str):
            raise ValueError("webhook_url must be a non-empty string")
        if not webhook_url.startswith(('http://', 'https://')):
            raise ValueError("webhook_url must be a valid HTTP/HTTPS URL")

        self.name = f"webhook:{webhook_url}"
        self.webhook_url = webhook_url
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)

    async def send(self, event: Event) -> bool:
        """
        Deliver event via HTTP POST.

        Args:
            event: Event to deliver

        Returns:
            True if delivery successful, False otherwise
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    self.webhook_url,
                    content=event.to_bytes(),
                    headers={'Content-Type': 'application/json'}
                )
                response.raise_for_status()

                logger.info(
                    "Event delivered to webhook",
                    user_id=event.user_id,
                    webhook_url=self.webhook_url,
                    status_code=response.status_code
                )
                return True

            except httpx.TimeoutException:
                logger.warning(
                    "Webhook delivery timeout",
                    user_id=event.user_id,
                    webhook_url=self.webhook_url
                )
                return False

            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Webhook delivery HTTP error",
                    user_id=event.user_id,
                    status_code=e.response.status_code,
                    response=e.response.text[:500]  # Truncate large responses
                )
                return False

            except httpx.HTTPError as e:
                logger.warning(
                    "Webhook delivery network error",
                    user_id=event.user_id,
                    webhook_url=self.webhook_url,
                    error=str(e)
                )
                return False


def build_destinations(
    kinds: Sequence[str],
    webhook_urls: Sequence[str] = (),
    webhook_timeout: float = 10.0
) -> List[Destination]:
    """
    Compose the ordered destination list.

    Args:
        kinds: Destination kinds in fanout order (flaky, slow, logging)
        webhook_urls: Webhook URLs appended after the kinds
        webhook_timeout: HTTP timeout for webhook destinations

    Returns:
        Destinations in the order they are invoked

    Raises:
        ValueError: If a kind is unknown
    """
    factories = {
        "flaky": FlakyDestination,
        "slow": SlowDestination,
        "logging": LoggingDestination,
    }

    destinations: List[Destination] = []
    for kind in kinds:
        if kind not in factories:
            raise ValueError(f"Unknown destination kind: {kind}")
        destinations.append(factories[kind]())

    for url in webhook_urls:
        destinations.append(WebhookDestination(url, timeout_seconds=webhook_timeout))

    return destinations
