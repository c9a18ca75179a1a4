"""
Pytest configuration and shared fixtures for MDB_YCSB tests.

This module provides:
- Mock pymongo client fixtures (one mock client per configured endpoint)
- Reset of the process-wide connection pool and metrics between tests
- Testcontainers fixtures for integration tests against a real MongoDB
"""

from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import pytest

import mdb_ycsb.database.connection as connection_module
import mdb_ycsb.observability.metrics as metrics_module


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that need a real MongoDB")


# ============================================================================
# GLOBAL STATE
# ============================================================================


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Drop the shared connection pool and metrics collector around each test."""
    connection_module._shared_pool = None
    metrics_module._metrics_collector = None
    yield
    connection_module._shared_pool = None
    metrics_module._metrics_collector = None


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Clear environment fallbacks used by the configuration."""
    for var in ("MONGO_URI", "DB_NAME"):
        monkeypatch.delenv(var, raising=False)
    yield


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_collection(name: str) -> MagicMock:
    """Create a mock collection with pymongo-like result objects."""
    collection = MagicMock()
    collection.name = name
    collection.insert_one.return_value = MagicMock(inserted_id="test_id")
    collection.insert_many.return_value = MagicMock(inserted_ids=["id1", "id2"])
    collection.find_one.return_value = None
    collection.update_one.return_value = MagicMock(modified_count=1, matched_count=1)
    collection.delete_one.return_value = MagicMock(deleted_count=1)
    return collection


def make_client(url: str) -> MagicMock:
    """Create a mock MongoClient whose databases hand out cached collections."""
    client = MagicMock(name=f"MongoClient({url})")
    client.url = url
    client.admin.command.return_value = {"ok": 1}
    databases: Dict[str, MagicMock] = {}

    def get_database(name, **kwargs):
        if name not in databases:
            db = MagicMock(name=f"Database({name})")
            db.name = name
            db.client = client
            db.options = kwargs
            collections: Dict[str, MagicMock] = {}
            db.__getitem__.side_effect = lambda coll: collections.setdefault(
                coll, make_collection(coll)
            )
            db.collections = collections
            databases[name] = db
        return databases[name]

    client.get_database.side_effect = get_database
    client.databases = databases
    client.start_session.side_effect = lambda **kwargs: MagicMock(
        name=f"ClientSession({url})", client=client
    )
    return client


class MockClientFactory:
    """Stands in for ``MongoClient`` and remembers every client it created."""

    def __init__(self) -> None:
        self.clients: List[MagicMock] = []
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, url: str, **options: Any) -> MagicMock:
        client = make_client(url)
        self.clients.append(client)
        self.calls.append({"url": url, "options": options})
        return client

    def collection(self, index: int, table: str, db_name: str = "ycsb") -> MagicMock:
        return self.clients[index].get_database(db_name)[table]


@pytest.fixture
def mock_client_builder():
    """Builder for individual mock clients."""
    return make_client


@pytest.fixture
def mock_client_factory():
    """Patch the driver client used by the connection pool."""
    factory = MockClientFactory()
    with patch.object(connection_module, "MongoClient", side_effect=factory):
        yield factory


@pytest.fixture
def single_endpoint_properties() -> Dict[str, str]:
    return {"mongodb.url": "mongodb://localhost:27017"}


@pytest.fixture
def multi_endpoint_properties() -> Dict[str, str]:
    return {"mongodb.url": "mongodb://a:27017|mongodb://b:27017|c:27017"}


@pytest.fixture
def mongo_adapter(mock_client_factory, single_endpoint_properties):
    """Initialized adapter over a single mocked endpoint."""
    from mdb_ycsb.adapter import MongoDbClient

    client = MongoDbClient(single_endpoint_properties)
    client.init()
    yield client
    client.cleanup()


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: the container starts once and is reused.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongodb/mongodb-atlas-local:latest") as container:
        yield container


@pytest.fixture
def mongodb_connection_string(mongodb_container):
    """Connection string for the container's exposed port."""
    exposed_port = mongodb_container.get_exposed_port(27017)
    return f"mongodb://localhost:{exposed_port}/?directConnection=true"


@pytest.fixture
def real_properties(mongodb_connection_string):
    """
    Harness properties pointing at the container, with a database unique to
    this test. The database is dropped afterwards.
    """
    import os
    import uuid

    from pymongo import MongoClient

    db_name = f"ycsb_test_{os.getpid()}_{uuid.uuid4().hex[:8]}"
    yield {"mongodb.url": mongodb_connection_string, "mongodb.database": db_name}

    client = MongoClient(mongodb_connection_string)
    try:
        client.drop_database(db_name)
    finally:
        client.close()
