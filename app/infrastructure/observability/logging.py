"""
Structured logging setup for the proximity graph service.
Provides JSON-formatted logs with consistent fields for the API and workers.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service_context,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


def _add_service_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", "putrace-graph")
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_job_context(job: str, run_id: str) -> None:
    """Attach job identifiers to every log line emitted by the current task."""
    structlog.contextvars.bind_contextvars(job=job, run_id=run_id)


def clear_job_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_job_result(job: str, result: dict[str, Any], duration_seconds: float) -> None:
    """Log a background job outcome with consistent fields."""
    logger = get_logger("jobs")

    log_data = {
        "job": job,
        "duration_seconds": round(duration_seconds, 3),
        "result": result,
    }

    if result.get("success", True):
        logger.info("Background job completed", **log_data)
    else:
        logger.error("Background job failed", **log_data)
