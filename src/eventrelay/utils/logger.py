"""
Module: logger.py
Description: Structured logging configuration for the delivery pipeline.

Configures structlog for JSON output, one object per line. Provides
consistent logging across all modules with proper context and
structured data.

Key Components:
- JSON output for log aggregation
- Timestamp and log level processors
- Level filtering driven by settings.log_level
- get_logger() helper function

Dependencies: structlog, logging, datetime
"""

import logging
from datetime import datetime, timezone

import structlog
from structlog.typing import FilteringBoundLogger


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog with JSON rendering and a minimum level.

    Safe to call more than once; the last call wins.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            # Add timestamp and log level
            _add_timestamp,
            _add_log_level,
            # Add exception information
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Event delivered", user_id="u1")
        {"user_id": "u1", "event": "Event delivered", "timestamp": "2024-01-15T10:30:00+00:00", "level": "INFO"}
    """
    return structlog.get_logger(name)
