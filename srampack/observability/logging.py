"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV_VAR = "SRAMKIT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "warning"
LOG_LEVELS: tuple[str, ...] = ("debug", "info", "warning", "error")


def default_log_level() -> str:
    """Return the log level from ``SRAMKIT_LOG_LEVEL`` or the default."""
    value = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).strip().lower()
    return value if value in LOG_LEVELS else DEFAULT_LOG_LEVEL


def _stderr_logger_factory(*_args: Any) -> structlog.PrintLogger:
    # Resolved per logger so redirected stderr streams are honoured.
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(level: str | None = None) -> None:
    """Configure structlog for JSON output to stderr."""
    resolved = (level or default_log_level()).lower()
    if resolved not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {set(LOG_LEVELS)}")
    log_level = getattr(logging, resolved.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
