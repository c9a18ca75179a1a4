"""
Metrics collection for MDB_YCSB.

Records count, latency and error rate of every workload operation issued
through the binding. The harness keeps its own latency histograms; these
metrics describe what the binding itself saw (errors, not-found results).
"""

import functools
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..constants import METRIC_PREFIX
from .logging import log_operation

logger = logging.getLogger(__name__)


@dataclass
class OperationMetrics:
    """Metrics for a single operation."""

    operation_name: str
    count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0
    error_count: int = 0
    last_execution: datetime | None = None

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average duration in milliseconds."""
        return self.total_duration_ms / self.count if self.count > 0 else 0.0

    @property
    def error_rate(self) -> float:
        """Calculate error rate as percentage."""
        return (self.error_count / self.count * 100) if self.count > 0 else 0.0

    def record(self, duration_ms: float, success: bool = True) -> None:
        """Record a single operation execution."""
        self.count += 1
        self.total_duration_ms += duration_ms
        self.min_duration_ms = min(self.min_duration_ms, duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if not success:
            self.error_count += 1
        self.last_execution = datetime.now()

    def merge(self, other: "OperationMetrics") -> None:
        """Fold another metric for the same operation into this one."""
        self.count += other.count
        self.total_duration_ms += other.total_duration_ms
        self.min_duration_ms = min(self.min_duration_ms, other.min_duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, other.max_duration_ms)
        self.error_count += other.error_count
        if other.last_execution and (
            not self.last_execution or other.last_execution > self.last_execution
        ):
            self.last_execution = other.last_execution

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "operation": self.operation_name,
            "count": self.count,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "min_duration_ms": (
                round(self.min_duration_ms, 2) if self.min_duration_ms != float("inf") else 0.0
            ),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "error_count": self.error_count,
            "error_rate_percent": round(self.error_rate, 2),
            "last_execution": (self.last_execution.isoformat() if self.last_execution else None),
        }


class MetricsCollector:
    """
    Thread-safe metrics collector shared by all adapter instances.

    Metrics are keyed by operation name plus tags (e.g. the table), and the
    number of distinct keys is bounded with LRU eviction.
    """

    def __init__(self, max_metrics: int = 10000):
        """
        Initialize the metrics collector.

        Args:
            max_metrics: Maximum number of metric keys kept before evicting
                        the least recently used one.
        """
        self._metrics: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self, operation_name: str, duration_ms: float, success: bool = True, **tags: Any
    ) -> None:
        """
        Record an operation execution.

        Args:
            operation_name: Name of the operation (e.g., "ycsb.read")
            duration_ms: Duration in milliseconds
            success: Whether the operation succeeded
            **tags: Additional tags (table, etc.)
        """
        key = operation_name
        if tags:
            tag_str = "_".join(f"{k}={v}" for k, v in sorted(tags.items()))
            key = f"{operation_name}[{tag_str}]"

        with self._lock:
            is_new = key not in self._metrics

            if is_new and len(self._metrics) >= self._max_metrics:
                self._metrics.popitem(last=False)

            if is_new:
                self._metrics[key] = OperationMetrics(operation_name=operation_name)
            else:
                self._metrics.move_to_end(key)

            self._metrics[key].record(duration_ms, success)

    def get_metrics(self, operation_name: str | None = None) -> dict[str, Any]:
        """
        Get metrics for operations.

        Args:
            operation_name: Optional operation name prefix to filter by

        Returns:
            Dictionary of metrics
        """
        with self._lock:
            metrics = {
                k: v.to_dict()
                for k, v in self._metrics.items()
                if not operation_name or k.startswith(operation_name)
            }
            total_operations = len(self._metrics)

        return {
            "timestamp": datetime.now().isoformat(),
            "metrics": metrics,
            "total_operations": total_operations,
        }

    def get_summary(self) -> dict[str, Any]:
        """
        Get a summary of all metrics, aggregated by operation name.

        Returns:
            Summary dictionary with aggregated statistics
        """
        with self._lock:
            aggregated: dict[str, OperationMetrics] = {}
            for metric in self._metrics.values():
                base_name = metric.operation_name
                if base_name not in aggregated:
                    aggregated[base_name] = OperationMetrics(operation_name=base_name)
                aggregated[base_name].merge(metric)

            total_operations = len(self._metrics)

        return {
            "timestamp": datetime.now().isoformat(),
            "total_operations": total_operations,
            "summary": {name: m.to_dict() for name, m in aggregated.items()},
        }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._metrics.clear()

    def get_operation_count(self, operation_name: str) -> int:
        """Get the count of executions for an operation."""
        with self._lock:
            return sum(
                m.count for m in self._metrics.values() if m.operation_name == operation_name
            )


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        with _collector_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str, duration_ms: float, success: bool = True, **tags: Any
) -> None:
    """
    Record an operation in the global metrics collector.

    Args:
        operation_name: Name of the operation
        duration_ms: Duration in milliseconds
        success: Whether the operation succeeded
        **tags: Additional tags
    """
    get_metrics_collector().record_operation(operation_name, duration_ms, success, **tags)


def timed_operation(operation: str) -> Callable[[Callable], Callable]:
    """
    Decorator that times a workload method and records its status.

    The wrapped method must take the table name as its first argument and
    return a status code where zero means success.

    Usage:
        @timed_operation("read")
        def read(self, table, key, fields, result):
            ...
    """
    operation_name = f"{METRIC_PREFIX}.{operation}"

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, table: str, *args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            success = False
            try:
                status = func(self, table, *args, **kwargs)
                success = int(status) == 0
                return status
            finally:
                duration_ms = (time.perf_counter() - start_time) * 1000
                record_operation(operation_name, duration_ms, success, table=table)
                if logger.isEnabledFor(logging.DEBUG):
                    log_operation(
                        logger,
                        operation_name,
                        success=success,
                        duration_ms=duration_ms,
                        table=table,
                    )

        return wrapper

    return decorator
