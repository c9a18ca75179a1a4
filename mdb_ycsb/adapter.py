"""
MongoDB binding for the YCSB workload interface.

Translates insert, read, update, delete and scan calls on records
(table, string key, field -> bytes) into pymongo operations against one of
the configured endpoints, chosen round-robin.

Properties (all optional):

    mongodb.url=mongodb://localhost:27017
    mongodb.database=ycsb
    mongodb.writeConcern=acknowledged
    mongodb.readPreference=primary
    batchsize=1
    compressibility=1
    threadcount=100

For a replica set use ``mongodb.url=mongodb://host:27017/?replicaSet=rs0``.
To round-robin between several mongos routers, separate their connection
strings with ``|``.

This module is part of MDB_YCSB - MongoDB binding for YCSB.
"""

import logging
import sys
from collections.abc import MutableSequence
from typing import Any, Mapping

from pymongo import ASCENDING
from pymongo.client_session import ClientSession
from pymongo.errors import BulkWriteError, PyMongoError

from .compressibility import apply_compressibility
from .config import AdapterConfig
from .constants import ID_FIELD, INCLUDE
from .database import ConnectionPool, Endpoint, get_shared_pool, release_shared_pool
from .db import DB, ByteArrayByteIterator, ByteIterator, Result, Status, Values, to_bytes
from .exceptions import ConfigurationError, InitializationError
from .observability import (
    HealthCheckResult,
    HealthStatus,
    check_endpoint_health,
    health_report,
    set_worker_context,
    timed_operation,
)

logger = logging.getLogger(__name__)


def fill_map(document: Mapping[str, Any]) -> dict[str, ByteIterator]:
    """Copy the binary fields of a document into a result map."""
    return {
        name: ByteArrayByteIterator(value)
        for name, value in document.items()
        if isinstance(value, (bytes, bytearray))
    }


def projection_for(fields: set[str] | None) -> dict[str, int] | None:
    """Projection including only ``fields``, or None for whole documents."""
    if fields is None:
        return None
    return {field: INCLUDE for field in fields}


class MongoDbClient(DB):
    """
    MongoDB client for the benchmark harness.

    One instance per harness worker thread. All instances share the endpoint
    clients opened by the first ``init``; each instance starts its own
    session on every endpoint.

    Example:
        client = MongoDbClient({"mongodb.url": "localhost:27017"})
        client.init()
        client.insert("usertable", "user1", {"field0": b"value"})
        client.read("usertable", "user1", None, {})
        client.cleanup()
    """

    def __init__(self, properties: Mapping[str, str] | None = None) -> None:
        super().__init__(properties)
        self._pool: ConnectionPool | None = None
        self._config: AdapterConfig | None = None
        self._sessions: list[ClientSession] = []
        self._pending: dict[str, list[dict[str, Any]]] = {}
        self._insert_count = 0

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    @property
    def config(self) -> AdapterConfig | None:
        """Configuration in effect (the shared pool's), once initialized."""
        return self._config

    @property
    def insert_count(self) -> int:
        """Inserts acknowledged since the last insert failure."""
        return self._insert_count

    @property
    def pending_inserts(self) -> int:
        """Documents buffered for the next bulk insert."""
        return sum(len(docs) for docs in self._pending.values())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> None:
        """
        Initialize the shared connection pool and this instance's sessions.

        The instance that creates the pool reads its properties; an unknown
        write concern or read preference, or a non-numeric value, ends the
        process with status 1. Instances attaching to an open pool use its
        configuration and ignore their own properties. A connection failure
        is logged and leaves this instance uninitialized; its operations then
        report errors.
        """
        if self._pool is not None:
            return

        set_worker_context()

        try:
            pool = get_shared_pool(lambda: AdapterConfig.from_properties(self.properties))
        except ConfigurationError as e:
            logger.critical(str(e))
            sys.exit(1)
        except InitializationError as e:
            logger.error(f"Could not initialize MongoDB connection pool for Loader: {e}")
            return

        try:
            self._sessions = pool.start_sessions()
        except PyMongoError as e:
            logger.error(f"Could not start MongoDB sessions: {e}", exc_info=True)
            release_shared_pool(pool)
            return

        self._pool = pool
        self._config = pool.config

    def cleanup(self) -> None:
        """
        Flush buffered inserts, end this instance's sessions and release the
        shared pool. The last instance to clean up closes the clients.
        """
        if self._pool is None:
            return

        if self._pending:
            self.flush_inserts()

        for session in self._sessions:
            try:
                session.end_session()
            except PyMongoError as e:
                logger.debug(f"Error ending MongoDB session: {e}")
        self._sessions = []

        pool, self._pool = self._pool, None
        release_shared_pool(pool)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _select(self) -> tuple[Endpoint, ClientSession]:
        """Next endpoint in round-robin order with this instance's session on it."""
        if self._pool is None:
            raise InitializationError("MongoDB client is not initialized")
        index, endpoint = self._pool.select()
        return endpoint, self._sessions[index]

    def _write_session(self, session: ClientSession) -> ClientSession | None:
        # The driver refuses explicit sessions on unacknowledged writes
        if self._config is not None and not self._config.acknowledged:
            return None
        return session

    def _shape(self, value: Any) -> bytes:
        return apply_compressibility(to_bytes(value), self._config.compressibility)

    def _to_document(self, key: str, values: Values) -> dict[str, Any]:
        document: dict[str, Any] = {ID_FIELD: key}
        for field, value in values.items():
            document[field] = self._shape(value)
        return document

    # ------------------------------------------------------------------
    # Workload operations
    # ------------------------------------------------------------------

    @timed_operation("delete")
    def delete(self, table: str, key: str) -> Status:
        """
        Delete a record. No existence check is made, so deleting a missing
        key succeeds.
        """
        try:
            endpoint, _session = self._select()
            endpoint.database[table].delete_one({ID_FIELD: key})
            return Status.OK
        except (PyMongoError, InitializationError) as e:
            logger.error(f"Couldn't delete key {key}: {e}", exc_info=True)
            return Status.ERROR

    @timed_operation("insert")
    def insert(self, table: str, key: str, values: Values) -> Status:
        """
        Insert a record. Each value is passed through the compressibility
        transform. With ``batchsize`` above 1 the document is buffered and
        written with the batch that fills the buffer.
        """
        try:
            endpoint, session = self._select()
            document = self._to_document(key, values)
            if self._config.batching:
                return self._buffer_insert(table, document, endpoint, session)

            endpoint.database[table].insert_one(document, session=self._write_session(session))
            self._insert_count += 1
            return Status.OK
        except (PyMongoError, InitializationError) as e:
            logger.error(f"Couldn't insert key {key}: {e}", exc_info=True)
            self._insert_count = 0
            return Status.ERROR

    def _buffer_insert(
        self,
        table: str,
        document: dict[str, Any],
        endpoint: Endpoint,
        session: ClientSession,
    ) -> Status:
        pending = self._pending.setdefault(table, [])
        pending.append(document)
        if len(pending) < self._config.batch_size:
            return Status.OK
        return self._flush(table, endpoint, session)

    def _flush(self, table: str, endpoint: Endpoint, session: ClientSession) -> Status:
        documents = self._pending.pop(table, [])
        if not documents:
            return Status.OK
        try:
            endpoint.database[table].insert_many(
                documents, ordered=False, session=self._write_session(session)
            )
            self._insert_count += len(documents)
            return Status.OK
        except BulkWriteError as e:
            write_errors = e.details.get("writeErrors", [])
            logger.error(
                f"Bulk insert into {table} failed for {len(write_errors)} "
                f"of {len(documents)} documents"
            )
        except PyMongoError as e:
            logger.error(f"Bulk insert into {table} failed: {e}", exc_info=True)
        self._insert_count = 0
        return Status.ERROR

    def flush_inserts(self) -> Status:
        """Write every buffered document now; ERROR if any batch failed."""
        status = Status.OK
        for table in list(self._pending):
            try:
                endpoint, session = self._select()
            except InitializationError as e:
                logger.error(f"Dropping {self.pending_inserts} buffered inserts: {e}")
                self._pending.clear()
                return Status.ERROR
            if self._flush(table, endpoint, session) != Status.OK:
                status = Status.ERROR
        return status

    @timed_operation("read")
    def read(
        self,
        table: str,
        key: str,
        fields: set[str] | None,
        result: Result,
    ) -> Status:
        """
        Read a record, projected to ``fields`` when given.

        Returns OK when the record exists. The fields are not copied into
        ``result``.
        """
        try:
            endpoint, session = self._select()
            document = endpoint.database[table].find_one(
                {ID_FIELD: key}, projection_for(fields), session=session
            )
            if document is not None:
                return Status.OK
            logger.warning(f"No results returned for key {key}")
            return Status.ERROR
        except (PyMongoError, InitializationError) as e:
            logger.error(f"Couldn't read key {key}: {e}")
            return Status.ERROR

    @timed_operation("update")
    def update(self, table: str, key: str, values: Values) -> Status:
        """
        Set the given fields on an existing record.

        ERROR when no document was modified. A driver exception is reported
        as OK.
        """
        try:
            endpoint, session = self._select()
            fields_to_set = {field: self._shape(value) for field, value in values.items()}
            update_result = endpoint.database[table].update_one(
                {ID_FIELD: key},
                {"$set": fields_to_set},
                session=self._write_session(session),
            )
            if update_result.modified_count == 0:
                logger.warning(f"Nothing updated for key {key}")
                return Status.ERROR
            return Status.OK
        except (PyMongoError, InitializationError) as e:
            logger.debug(f"Update of key {key} raised {type(e).__name__}: {e}")
            return Status.OK

    @timed_operation("scan")
    def scan(
        self,
        table: str,
        start_key: str,
        record_count: int,
        fields: set[str] | None,
        result: MutableSequence[dict[str, ByteIterator]],
    ) -> Status:
        """
        Read up to ``record_count`` records with key >= ``start_key`` in
        ascending key order, appending one field map per record to ``result``.
        """
        if record_count <= 0:
            logger.warning(f"Scan for key {start_key} requested {record_count} records")
            return Status.ERROR

        try:
            endpoint, session = self._select()
            cursor = (
                endpoint.database[table]
                .find({ID_FIELD: {"$gte": start_key}}, projection_for(fields), session=session)
                .sort(ID_FIELD, ASCENDING)
                .limit(record_count)
            )
            found = 0
            with cursor:
                for document in cursor:
                    result.append(fill_map(document))
                    found += 1
            if found == 0:
                logger.warning(f"Nothing found in scan for key {start_key}")
                return Status.ERROR
            return Status.OK
        except (PyMongoError, InitializationError) as e:
            logger.error(f"Couldn't scan from key {start_key}: {e}")
            return Status.ERROR

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def health_check(self) -> dict[str, Any]:
        """Ping every endpoint and report overall and per-endpoint status."""
        if self._pool is None:
            report = health_report(
                [
                    HealthCheckResult(
                        name="mongodb",
                        status=HealthStatus.UNHEALTHY,
                        message="MongoDB client not initialized",
                    )
                ]
            )
            report["pool"] = None
            return report

        results = [
            check_endpoint_health(endpoint.url, endpoint.client)
            for endpoint in self._pool.endpoints
        ]
        report = health_report(results)
        report["pool"] = self._pool.describe()
        return report
