"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the delivery pipeline:
- Event: Immutable event submitted by producers
- RetryEnvelope: Failed event plus its retry count
- DeliveryOutcome: Result of one processing step
- IngestResponse, StatsResponse, HealthResponse: API response models

All models are exported here for convenient importing.
"""

from .event import DeliveryOutcome, Event, RetryEnvelope
from .response import HealthResponse, IngestResponse, StatsResponse

__all__ = [
    "DeliveryOutcome",
    "Event",
    "RetryEnvelope",
    "HealthResponse",
    "IngestResponse",
    "StatsResponse",
]
