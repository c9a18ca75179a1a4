"""
Shared MongoDB Connection Pool

Holds the process-wide set of endpoints the binding round-robins over. One
MongoClient (with its own driver connection pool) is opened per configured
URL; all adapter instances in the process share them through a
reference-counted handle, so the clients close only when the last adapter
cleans up.

This module is part of MDB_YCSB - MongoDB binding for YCSB.

Usage:
    from mdb_ycsb.database import get_shared_pool, release_shared_pool

    pool = get_shared_pool(lambda: AdapterConfig.from_properties(properties))
    index, endpoint = pool.select()
    endpoint.database[table].find_one({"_id": key})
    release_shared_pool(pool)
"""

import logging
import threading
import time
from typing import Any, Callable
from urllib.parse import urlsplit

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo.uri_parser import split_options

from ..config import AdapterConfig
from ..constants import APP_NAME, URI_SCHEMES
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class Endpoint:
    """One configured server: its client and the target database handle."""

    def __init__(self, url: str, client: MongoClient, database: Database) -> None:
        self.url = url
        self.client = client
        self.database = database

    def start_session(self) -> ClientSession:
        """Start a causally consistent session on this endpoint's client."""
        return self.client.start_session(causal_consistency=True)

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"Endpoint({self.url!r}, database={self.database.name!r})"


class RoundRobinSelector:
    """
    Cycles through ``0..size-1``.

    The counter is advanced under a lock, so concurrent callers see an exactly
    uniform distribution.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"size must be >= 1, got {size}")
        self._size = size
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    @property
    def position(self) -> int:
        """Number of selections made so far."""
        return self._counter

    def next_index(self) -> int:
        with self._lock:
            index = self._counter % self._size
            self._counter += 1
        return index


def client_options(url: str, config: AdapterConfig) -> dict[str, Any]:
    """
    Driver options for one endpoint.

    Options already present in a ``mongodb://`` or ``mongodb+srv://``
    connection string are left to the string; bare host:port endpoints get all
    configured options.
    """
    options: dict[str, Any] = {
        "appname": APP_NAME,
        "maxPoolSize": config.max_connections,
    }
    if not url.startswith(URI_SCHEMES):
        return options

    query = urlsplit(url).query
    if not query:
        return options
    # Case-insensitive; parsing the query alone avoids the SRV lookup
    uri_options = split_options(query)
    return {k: v for k, v in options.items() if k not in uri_options}


class ConnectionPool:
    """
    The ordered set of endpoints shared by every adapter in the process.

    The pool keeps the configuration it was opened with; adapters that attach
    later reuse it. Reference counting is done by ``get_shared_pool`` and
    ``release_shared_pool`` under the module lock.
    """

    def __init__(self, config: AdapterConfig) -> None:
        self.config = config
        self._endpoints: list[Endpoint] = []
        self._selector: RoundRobinSelector | None = None
        self._ref_count = 0
        self._closed = False

    @property
    def endpoints(self) -> list[Endpoint]:
        return list(self._endpoints)

    @property
    def size(self) -> int:
        return len(self._endpoints)

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_open(self) -> bool:
        return bool(self._endpoints) and not self._closed

    def open(self) -> None:
        """
        Open one client per configured URL.

        Raises:
            InitializationError: If any endpoint cannot be set up. Endpoints
                opened before the failure are closed again.
        """
        start_time = time.time()
        url = None
        try:
            for url in self.config.urls:
                logger.info(f"Found server connection string {url}")
                client = MongoClient(url, **client_options(url, self.config))
                database = client.get_database(
                    self.config.database,
                    write_concern=self.config.write_concern,
                    read_preference=self.config.read_preference,
                )
                self._endpoints.append(Endpoint(url, client, database))
                logger.info(f"mongo connection created with {url}")
        except (PyMongoError, ValueError, TypeError) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.open", duration_ms, success=False)
            contextual_logger.error(
                "Could not initialize MongoDB connection pool",
                extra={
                    "error_type": type(e).__name__,
                    "error": str(e),
                    "url": url,
                },
                exc_info=True,
            )
            self.close()
            raise InitializationError(
                f"Could not initialize MongoDB connection pool: {e}",
                mongo_uri=url,
                db_name=self.config.database,
                context={"error_type": type(e).__name__},
            ) from e

        self._selector = RoundRobinSelector(len(self._endpoints))
        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.open", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection pool initialized",
            extra={
                "endpoint_count": len(self._endpoints),
                "db_name": self.config.database,
                "max_pool_size": self.config.max_connections,
                "write_concern": self.config.write_concern_mode,
                "read_preference": self.config.read_preference_mode,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def select(self) -> tuple[int, Endpoint]:
        """Pick the next endpoint in round-robin order."""
        if not self.is_open or self._selector is None:
            raise InitializationError(
                "MongoDB connection pool is not open", db_name=self.config.database
            )
        index = self._selector.next_index()
        return index, self._endpoints[index]

    def start_sessions(self) -> list[ClientSession]:
        """Start one session per endpoint, in endpoint order."""
        return [endpoint.start_session() for endpoint in self._endpoints]

    def acquire(self) -> int:
        self._ref_count += 1
        return self._ref_count

    def release(self) -> int:
        self._ref_count = max(self._ref_count - 1, 0)
        return self._ref_count

    def close(self) -> None:
        """Close every client. Errors while closing are ignored."""
        for endpoint in self._endpoints:
            try:
                endpoint.close()
            except PyMongoError as e:
                logger.debug(f"Error closing MongoDB client for {endpoint.url}: {e}")
        self._endpoints = []
        self._selector = None
        self._closed = True

    def describe(self) -> dict[str, Any]:
        """Pool state for health reports."""
        return {
            "endpoints": [endpoint.url for endpoint in self._endpoints],
            "db_name": self.config.database,
            "max_pool_size": self.config.max_connections,
            "ref_count": self._ref_count,
            "selections": self._selector.position if self._selector else 0,
        }


# Global shared pool
_shared_pool: ConnectionPool | None = None
# Guards pool creation and reference counting across worker threads
_init_lock = threading.Lock()


def get_shared_pool(load_config: Callable[[], AdapterConfig]) -> ConnectionPool:
    """
    Gets or creates the shared connection pool and takes a reference on it.

    Connection setup runs at most once however many threads call this
    concurrently. A caller arriving after setup attaches to the existing pool
    without loading its own configuration; the first caller's configuration
    stays in effect.

    Args:
        load_config: Called under the lock, only if the pool has to be created

    Returns:
        Shared ConnectionPool

    Raises:
        InitializationError: If the pool has to be created and cannot be opened
        ConfigurationError: Propagated from ``load_config``
    """
    global _shared_pool

    with _init_lock:
        if _shared_pool is None or not _shared_pool.is_open:
            pool = ConnectionPool(load_config())
            pool.open()
            _shared_pool = pool
        else:
            logger.debug("Attaching to existing MongoDB connection pool")

        _shared_pool.acquire()
        return _shared_pool


def release_shared_pool(pool: ConnectionPool) -> bool:
    """
    Drops a reference on a pool, closing it when none remain.

    Returns:
        True if this call closed the pool
    """
    global _shared_pool

    with _init_lock:
        if pool.release() > 0:
            return False

        pool.close()
        if _shared_pool is pool:
            _shared_pool = None
        logger.info("Shared MongoDB connection pool closed")
        return True


def get_pool_state() -> dict[str, Any]:
    """State of the shared pool, or ``{"status": "no_pool"}``."""
    with _init_lock:
        if _shared_pool is None:
            return {"status": "no_pool"}
        return {"status": "open" if _shared_pool.is_open else "closed", **_shared_pool.describe()}
