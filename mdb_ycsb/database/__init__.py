"""
Database connection layer.

Provides the process-wide, reference-counted set of MongoDB endpoints the
binding round-robins over.
"""

from .connection import (
    ConnectionPool,
    Endpoint,
    RoundRobinSelector,
    client_options,
    get_pool_state,
    get_shared_pool,
    release_shared_pool,
)

__all__ = [
    "ConnectionPool",
    "Endpoint",
    "RoundRobinSelector",
    "client_options",
    "get_pool_state",
    "get_shared_pool",
    "release_shared_pool",
]
