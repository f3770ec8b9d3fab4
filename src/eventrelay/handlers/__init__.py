"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for the delivery pipeline:
- ingest: Event ingestion endpoint
- stats: Queue and retry-schedule depth

All handlers use dependency injection for the shared store handles.
"""

__all__ = []
