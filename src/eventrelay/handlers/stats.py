"""
Module: stats.py
Description: Depth of the event queue and the retry schedule.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi import status as status_codes

from eventrelay.handlers.ingest import get_event_queue
from eventrelay.models.response import StatsResponse
from eventrelay.storage.base import DueSchedule, EventQueue
from eventrelay.utils.logger import get_logger

router = APIRouter(prefix="/stats", tags=["stats"])
logger = get_logger(__name__)


def get_due_schedule(request: Request) -> DueSchedule:
    """Dependency to get the shared due-schedule."""
    return request.app.state.due_schedule


@router.get("", response_model=StatsResponse)
async def get_stats(
    queue: EventQueue = Depends(get_event_queue),
    schedule: DueSchedule = Depends(get_due_schedule)
) -> StatsResponse:
    """Return the number of queued events and scheduled retries."""
    try:
        return StatsResponse(
            queue_length=await queue.length(),
            scheduled_retries=await schedule.count()
        )
    except Exception as e:
        logger.error("Failed to read store depth", error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read store depth"
        )
