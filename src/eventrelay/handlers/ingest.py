"""
Module: ingest.py
Description: Event ingestion endpoint.

Accepts {"userID": str, "payload": str} via POST and appends the event
to the durable queue. Delivery happens asynchronously and its result is
never reported back to the caller.

Key Components:
- ingest_event(): POST /ingest
- get_event_queue(): Dependency returning the shared queue handle

Responses:
- 200: event queued
- 400: body is not a well-formed event
- 405: method other than POST
- 500: queue push failed

Dependencies: FastAPI, pydantic
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi import status as status_codes
from pydantic import ValidationError

from eventrelay.models.event import Event
from eventrelay.models.response import IngestResponse
from eventrelay.storage.base import EventQueue
from eventrelay.utils.logger import get_logger

router = APIRouter(prefix="/ingest", tags=["ingest"])
logger = get_logger(__name__)


def get_event_queue(request: Request) -> EventQueue:
    """Dependency to get the shared event queue."""
    return request.app.state.event_queue


@router.post("", response_model=IngestResponse)
async def ingest_event(
    request: Request,
    queue: EventQueue = Depends(get_event_queue)
) -> IngestResponse:
    """
    Ingest one event.

    Example:
        POST /ingest
        {"userID": "u1", "payload": "p1"}

        Response (200):
        {"message": "Event ingested successfully"}
    """
    body = await request.body()

    try:
        event = Event.from_bytes(body)
    except ValidationError as e:
        logger.warning("Event validation failed", error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail="Error parsing event"
        )

    try:
        await queue.push(event.to_bytes())
    except Exception as e:
        logger.error("Failed to queue event", user_id=event.user_id, error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving event to queue"
        )

    logger.info("Event ingested", user_id=event.user_id)
    return IngestResponse(message="Event ingested successfully")
