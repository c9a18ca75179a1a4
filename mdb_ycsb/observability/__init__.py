"""
Observability components.

Provides structured logging, operation metrics and endpoint health checks.
"""

from .health import (
    HealthCheckResult,
    HealthStatus,
    check_endpoint_health,
    health_report,
    overall_status,
)
from .logging import (
    ContextualLoggerAdapter,
    clear_worker_context,
    get_logger,
    get_logging_context,
    log_operation,
    set_worker_context,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "set_worker_context",
    "clear_worker_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
    # Health
    "HealthStatus",
    "HealthCheckResult",
    "check_endpoint_health",
    "health_report",
    "overall_status",
]
