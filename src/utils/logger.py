"""
Module: logger.py
Description: Structured logging configuration for the delivery harness.

Configures structlog for JSON output so that pump workers, drains
and exchanges running on different threads emit one parseable line
per event, with the thread name attached for correlation.

Key Components:
- JSON output with timestamp, level and thread processors
- Level filtering driven by settings.log_level
- get_logger() helper function

Dependencies: structlog, logging, threading, datetime
"""

import logging
import threading
from datetime import datetime, timezone

import structlog

from config.settings import settings


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
    """Add upper-cased log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def _add_thread_name(logger, method_name, event_dict):
    # Workers are named after the pump that owns them
    event_dict["thread"] = threading.current_thread().name
    return event_dict


structlog.configure(
    processors=[
        _add_timestamp,
        _add_log_level,
        _add_thread_name,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.WriteLoggerFactory(),
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level)
    ),
    cache_logger_on_first_use=True,
)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Exchange completed", outcome="delivered", attempts=3)
        {"event": "Exchange completed", "outcome": "delivered", "attempts": 3, "timestamp": "...", "level": "INFO", "thread": "MainThread"}
    """
    return structlog.get_logger(name)
