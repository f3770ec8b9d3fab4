"""
Module: main.py
Description: FastAPI application entry point for the delivery pipeline.

Connects to Redis at startup (fatal if unreachable), exposes the
ingestion, stats and health routes, and runs the primary consumer and
retry workers in the same event loop as the API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from eventrelay.config.settings import settings
from eventrelay.handlers.ingest import router as ingest_router
from eventrelay.handlers.stats import router as stats_router
from eventrelay.models.response import HealthResponse
from eventrelay.pipeline import build_pipeline
from eventrelay.storage.redis_store import RedisDueSchedule, RedisEventQueue, connect_redis
from eventrelay.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared store, start the pipeline, and tear both down."""
    configure_logging(settings.log_level)
    logger.info("Starting eventrelay", version=settings.app_version, stage=settings.stage)

    client = await connect_redis(settings.redis_url, attempts=settings.store_connect_attempts)
    app.state.event_queue = RedisEventQueue(client, settings.queue_key)
    app.state.due_schedule = RedisDueSchedule(client, settings.schedule_key)

    pipeline = None
    if settings.run_workers:
        pipeline = build_pipeline(settings, app.state.event_queue, app.state.due_schedule)
        pipeline.start()

    try:
        yield
    finally:
        logger.info("Shutting down eventrelay")
        if pipeline is not None:
            await pipeline.stop()
        await client.aclose()


app = FastAPI(
    title="eventrelay",
    description="At-least-once event ingestion and fanout delivery",
    version=settings.app_version,
    lifespan=lifespan
)

app.include_router(ingest_router)
app.include_router(stats_router)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        message="eventrelay is healthy",
        version=settings.app_version,
        environment=settings.stage
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global HTTP exception handler.

    Logs HTTP exceptions and returns structured error responses.
    """
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "type": "http_exception"
            }
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "message": "Internal server error",
                "type": "internal_error"
            }
        }
    )
