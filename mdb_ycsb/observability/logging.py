"""
Enhanced logging utilities for MDB_YCSB.

Provides structured logging carrying the harness worker context, so that
messages from many concurrent adapter instances can be told apart.
"""

import contextvars
import logging
import threading
from datetime import datetime
from typing import Any

# Context variable for the worker issuing operations
_worker_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "worker_context", default=None
)


def set_worker_context(worker_id: Any | None = None, **kwargs: Any) -> None:
    """
    Set worker context for logging.

    Args:
        worker_id: Identifier of the harness worker (defaults to the thread name)
        **kwargs: Additional context (table, endpoint, etc.)
    """
    if worker_id is None:
        worker_id = threading.current_thread().name
    _worker_context.set({"worker_id": worker_id, **kwargs})


def clear_worker_context() -> None:
    """Clear worker context."""
    _worker_context.set(None)


def get_logging_context() -> dict[str, Any]:
    """
    Get current logging context.

    Returns:
        Dictionary with a timestamp and any worker context
    """
    context: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
    }

    worker_context = _worker_context.get()
    if worker_context:
        context.update(worker_context)

    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically adds worker context to log records.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add context to log records."""
        context = get_logging_context()

        extra = kwargs.get("extra", {})
        if extra:
            context.update(extra)

        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """
    Get a contextual logger that automatically adds worker context.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextualLoggerAdapter instance
    """
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.DEBUG,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log a workload operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name
        level: Log level
        success: Whether operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional context (table, key, endpoint)
    """
    log_context = get_logging_context()
    log_context.update(
        {
            "operation": operation,
            "success": success,
        }
    )

    if duration_ms is not None:
        log_context["duration_ms"] = round(duration_ms, 2)

    if context:
        log_context.update(context)

    message = f"Operation: {operation}"
    if not success:
        message = f"Operation failed: {operation}"
    if duration_ms is not None:
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=log_context)
