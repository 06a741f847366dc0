"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

from jobsprint_autofill.config import settings


def configure_logging(level: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """
    Configure structured logging with rich output.

    Logs go to stderr so command output on stdout stays readable.

    Args:
        level: Log level name, defaults to ``settings.log_level``
        debug: Human-readable console rendering instead of JSON, defaults to ``settings.debug``
    """
    level_name = (level or settings.log_level).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    debug = settings.debug if debug is None else debug

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, markup=False)],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_session_state(session: Any) -> Dict[str, Any]:
    """Create a log context for an autofill session."""
    return {
        "session_state": {
            "state": session.state.value,
            "current_index": session.current_index,
            "field_count": len(session.fields),
            "processed_count": len(session.processed),
            "skipped_count": len(session.skipped),
        }
    }
