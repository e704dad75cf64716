"""Structured logging setup for the settlement backend."""

from __future__ import annotations

import logging

import structlog


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog with a JSON renderer for production or a console renderer for development."""
    level = getattr(logging, log_level.upper())
    if json_logs:
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=level, force=True)


def safe_log_id(raw_id: str | None) -> str:
    """Keep alphanumerics and dashes and truncate to 8 characters so ids cannot inject log content."""
    if not raw_id:
        return "[empty]"
    sanitized = "".join(char for char in raw_id if char.isalnum() or char == "-")
    if len(sanitized) > 8:
        return sanitized[:8] + "..."
    return sanitized
