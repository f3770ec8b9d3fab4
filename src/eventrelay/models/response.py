"""
Module: response.py
Description: API response models for the delivery pipeline.

Key Components:
- IngestResponse: Acknowledgement for POST /ingest
- StatsResponse: Queue and retry-schedule depth for GET /stats
- HealthResponse: Body of GET /health

Dependencies: pydantic
"""

from pydantic import BaseModel, Field


class IngestResponse(BaseModel):
    """Acknowledgement returned once an event is on the queue."""

    message: str = Field(..., description="Human-readable status message")


class StatsResponse(BaseModel):
    """
    Point-in-time depth of the shared stores.

    Attributes:
        queue_length: Events waiting for the primary consumer
        scheduled_retries: Envelopes waiting on the retry schedule
    """

    queue_length: int = Field(..., ge=0)
    scheduled_retries: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Basic application health information."""

    status: str
    message: str
    version: str
    environment: str
