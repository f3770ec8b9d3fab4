"""
Module: event.py
Description: Event data models for the delivery pipeline.

Defines the immutable Event submitted by producers and the
RetryEnvelope that carries a failed event through the retry schedule.

Key Components:
- Event: user id plus opaque payload, serialized as {"userID", "payload"}
- RetryEnvelope: Event plus retry_count, serialized as {"Event", "RetryCount"}
- DeliveryOutcome: Enum of the terminal and intermediate attempt results

Events carry no identifier. Two events with the same user id and payload
are indistinguishable once serialized.

Dependencies: pydantic, enum
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeliveryOutcome(str, Enum):
    """Result of processing one queue item or due entry."""

    DELIVERED = "delivered"
    RESCHEDULED = "rescheduled"
    ESCALATED = "escalated"
    DROPPED = "dropped"
    IDLE = "idle"


class Event(BaseModel):
    """
    Event model representing an ingested event.

    Attributes:
        user_id: Identity of the user the event belongs to
        payload: Opaque event payload
    """

    model_config = ConfigDict(frozen=True, validate_by_name=True, validate_by_alias=True)

    user_id: str = Field(..., alias="userID", description="User identity")
    payload: str = Field(..., description="Opaque event payload")

    def to_bytes(self) -> bytes:
        """Serialize to the JSON wire format."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw) -> "Event":
        """
        Deserialize from the JSON wire format.

        Only the wire keys are accepted; field names such as user_id are not.

        Raises:
            pydantic.ValidationError: If raw is not a well-formed event
        """
        return cls.model_validate_json(raw, by_alias=True, by_name=False)

    def __str__(self) -> str:
        return f"user_id={self.user_id} payload={self.payload}"


class RetryEnvelope(BaseModel):
    """
    A failed event and the number of times it has been scheduled for retry.

    Envelopes are immutable; next_attempt() returns a new envelope.
    """

    model_config = ConfigDict(frozen=True, validate_by_name=True, validate_by_alias=True)

    event: Event = Field(..., alias="Event")
    retry_count: int = Field(default=0, ge=0, alias="RetryCount")

    def next_attempt(self) -> "RetryEnvelope":
        """Return a copy with retry_count incremented by one."""
        return self.model_copy(update={"retry_count": self.retry_count + 1})

    def to_bytes(self) -> bytes:
        """Serialize to the JSON wire format."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw) -> "RetryEnvelope":
        """
        Deserialize from the JSON wire format.

        Raises:
            pydantic.ValidationError: If raw is not a well-formed envelope
        """
        return cls.model_validate_json(raw, by_alias=True, by_name=False)
