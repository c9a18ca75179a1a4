"""
Health check utilities for MDB_YCSB.

Pings each configured endpoint and folds the results into an overall status.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


def check_endpoint_health(name: str, mongo_client: Any | None) -> HealthCheckResult:
    """
    Check a single endpoint by sending it a ``ping``.

    Args:
        name: Endpoint label (its URL)
        mongo_client: MongoClient for the endpoint

    Returns:
        HealthCheckResult
    """
    if mongo_client is None:
        return HealthCheckResult(
            name=name,
            status=HealthStatus.UNHEALTHY,
            message="MongoDB client not initialized",
        )

    try:
        mongo_client.admin.command("ping")
        return HealthCheckResult(
            name=name,
            status=HealthStatus.HEALTHY,
            message="MongoDB endpoint is healthy",
        )
    except PyMongoError as e:
        logger.warning(f"Health check for {name} failed: {e}")
        return HealthCheckResult(
            name=name,
            status=HealthStatus.UNHEALTHY,
            message=f"MongoDB health check failed: {str(e)}",
        )


def overall_status(results: Sequence[HealthCheckResult]) -> HealthStatus:
    """
    Combine endpoint results.

    All healthy is healthy, none healthy is unhealthy, anything in between is
    degraded since round-robin traffic still reaches some endpoints.
    """
    if not results:
        return HealthStatus.UNKNOWN
    healthy = sum(1 for r in results if r.status == HealthStatus.HEALTHY)
    if healthy == len(results):
        return HealthStatus.HEALTHY
    if healthy == 0:
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


def health_report(results: Sequence[HealthCheckResult]) -> dict[str, Any]:
    """Build the report dictionary for a set of endpoint results."""
    return {
        "status": overall_status(results).value,
        "timestamp": datetime.now().isoformat(),
        "checks": [r.to_dict() for r in results],
    }
