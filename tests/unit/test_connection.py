"""
Unit tests for the shared connection pool.

Tests endpoint setup, round-robin selection, reference counting and
error handling during initialization.
"""

import threading
from collections import Counter
from unittest.mock import MagicMock, patch

import pytest
from pymongo import WriteConcern
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import PyMongoError

import mdb_ycsb.database.connection as conn_module
from mdb_ycsb.config import AdapterConfig
from mdb_ycsb.database.connection import (
    ConnectionPool,
    RoundRobinSelector,
    client_options,
    get_pool_state,
    get_shared_pool,
    release_shared_pool,
)
from mdb_ycsb.exceptions import ConfigurationError, InitializationError


@pytest.fixture
def three_endpoint_config():
    return AdapterConfig.from_properties(
        {
            "mongodb.url": "mongodb://a:27017|mongodb://b:27017|c:27017",
            "mongodb.database": "bench",
            "mongodb.writeConcern": "majority",
            "threadcount": "8",
        },
        environ={},
    )


class TestRoundRobinSelector:
    """Test endpoint index selection."""

    def test_cycles_in_order(self):
        selector = RoundRobinSelector(3)

        assert [selector.next_index() for _ in range(7)] == [0, 1, 2, 0, 1, 2, 0]
        assert selector.position == 7

    def test_single_endpoint(self):
        selector = RoundRobinSelector(1)

        assert {selector.next_index() for _ in range(5)} == {0}

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            RoundRobinSelector(0)

    def test_uniform_under_concurrency(self):
        selector = RoundRobinSelector(4)
        num_threads = 8
        per_thread = 500
        barrier = threading.Barrier(num_threads)
        counts = Counter()
        counts_lock = threading.Lock()

        def select_many():
            barrier.wait()
            local = Counter(selector.next_index() for _ in range(per_thread))
            with counts_lock:
                counts.update(local)

        threads = [threading.Thread(target=select_many) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(counts.values()) == num_threads * per_thread
        assert set(counts.values()) == {num_threads * per_thread // 4}


class TestClientOptions:
    """Test driver option building per endpoint."""

    def test_host_port_gets_all_options(self, three_endpoint_config):
        options = client_options("c:27017", three_endpoint_config)

        assert options["maxPoolSize"] == 8
        assert options["appname"] == "MDB_YCSB"

    def test_uri_options_take_precedence(self, three_endpoint_config):
        options = client_options("mongodb://a:27017/?maxPoolSize=3", three_endpoint_config)

        assert "maxPoolSize" not in options
        assert options["appname"] == "MDB_YCSB"

    def test_plain_uri_gets_configured_pool_size(self, three_endpoint_config):
        options = client_options("mongodb://a:27017", three_endpoint_config)

        assert options["maxPoolSize"] == 8

    def test_srv_uri_options_take_precedence(self, three_endpoint_config):
        options = client_options(
            "mongodb+srv://cluster0.example.net/?maxPoolSize=5", three_endpoint_config
        )

        assert "maxPoolSize" not in options
        assert options["appname"] == "MDB_YCSB"

    def test_srv_uri_without_options(self, three_endpoint_config):
        options = client_options("mongodb+srv://cluster0.example.net/", three_endpoint_config)

        assert options == {"appname": "MDB_YCSB", "maxPoolSize": 8}

    def test_uri_option_names_are_case_insensitive(self, three_endpoint_config):
        options = client_options(
            "mongodb://a:27017/?maxpoolsize=3&appName=bench", three_endpoint_config
        )

        assert options == {}


class TestConnectionPoolOpen:
    """Test opening the endpoint set."""

    def test_one_client_per_url(self, mock_client_factory, three_endpoint_config):
        pool = ConnectionPool(three_endpoint_config)
        pool.open()

        assert pool.size == 3
        assert [call["url"] for call in mock_client_factory.calls] == [
            "mongodb://a:27017",
            "mongodb://b:27017",
            "c:27017",
        ]
        assert [e.url for e in pool.endpoints] == three_endpoint_config.urls
        assert pool.is_open

    def test_database_uses_write_concern_and_read_preference(
        self, mock_client_factory, three_endpoint_config
    ):
        pool = ConnectionPool(three_endpoint_config)
        pool.open()

        client = mock_client_factory.clients[0]
        client.get_database.assert_called_once_with(
            "bench",
            write_concern=WriteConcern(w="majority"),
            read_preference=three_endpoint_config.read_preference,
        )

    def test_select_round_robins_over_endpoints(self, mock_client_factory, three_endpoint_config):
        pool = ConnectionPool(three_endpoint_config)
        pool.open()

        selected = [pool.select() for _ in range(4)]

        assert [index for index, _ in selected] == [0, 1, 2, 0]
        assert selected[3][1] is selected[0][1]

    def test_failure_closes_opened_clients(self, mock_client_builder, three_endpoint_config):
        created = []

        def factory(url, **options):
            if url == "c:27017":
                raise PyMongoConfigurationError("bad endpoint")
            client = mock_client_builder(url)
            created.append(client)
            return client

        with patch.object(conn_module, "MongoClient", side_effect=factory):
            pool = ConnectionPool(three_endpoint_config)
            with pytest.raises(InitializationError) as exc_info:
                pool.open()

        assert exc_info.value.mongo_uri == "c:27017"
        assert exc_info.value.context["error_type"] == "ConfigurationError"
        assert len(created) == 2
        for client in created:
            client.close.assert_called_once()
        assert not pool.is_open

    def test_select_on_unopened_pool_raises(self, three_endpoint_config):
        pool = ConnectionPool(three_endpoint_config)

        with pytest.raises(InitializationError):
            pool.select()

    def test_close_swallows_errors(self, mock_client_factory, three_endpoint_config):
        pool = ConnectionPool(three_endpoint_config)
        pool.open()
        mock_client_factory.clients[0].close.side_effect = PyMongoError("boom")

        pool.close()

        for client in mock_client_factory.clients:
            client.close.assert_called_once()
        assert not pool.is_open

    def test_start_sessions_one_per_endpoint(self, mock_client_factory, three_endpoint_config):
        pool = ConnectionPool(three_endpoint_config)
        pool.open()

        sessions = pool.start_sessions()

        assert len(sessions) == 3
        for session, client in zip(sessions, mock_client_factory.clients):
            assert session.client is client
            client.start_session.assert_called_once_with(causal_consistency=True)


class TestSharedPool:
    """Test the process-wide reference-counted pool."""

    def test_created_once_and_shared(self, mock_client_factory, three_endpoint_config):
        first = get_shared_pool(lambda: three_endpoint_config)
        second = get_shared_pool(lambda: three_endpoint_config)

        assert first is second
        assert first.ref_count == 2
        assert len(mock_client_factory.clients) == 3

    def test_closed_only_by_last_release(self, mock_client_factory, three_endpoint_config):
        pool = get_shared_pool(lambda: three_endpoint_config)
        get_shared_pool(lambda: three_endpoint_config)

        assert release_shared_pool(pool) is False
        for client in mock_client_factory.clients:
            client.close.assert_not_called()

        assert release_shared_pool(pool) is True
        for client in mock_client_factory.clients:
            client.close.assert_called_once()
        assert get_pool_state() == {"status": "no_pool"}

    def test_first_configuration_wins(self, mock_client_factory, three_endpoint_config):
        pool = get_shared_pool(lambda: three_endpoint_config)
        load_other = MagicMock(
            return_value=AdapterConfig.from_properties({"mongodb.database": "other"}, environ={})
        )

        assert get_shared_pool(load_other) is pool
        assert pool.config.database == "bench"
        load_other.assert_not_called()

    def test_config_loaded_only_when_creating(self, mock_client_factory, three_endpoint_config):
        load_config = MagicMock(return_value=three_endpoint_config)

        pool = get_shared_pool(load_config)
        get_shared_pool(load_config)

        load_config.assert_called_once_with()
        assert pool.ref_count == 2

    def test_config_error_leaves_no_pool(self, mock_client_factory):
        load_config = MagicMock(side_effect=ConfigurationError("bad", config_key="batchsize"))

        with pytest.raises(ConfigurationError):
            get_shared_pool(load_config)

        assert get_pool_state() == {"status": "no_pool"}
        assert mock_client_factory.clients == []

    def test_concurrent_initialization_opens_once(
        self, mock_client_factory, three_endpoint_config
    ):
        num_threads = 10
        barrier = threading.Barrier(num_threads)
        pools = []

        def init():
            barrier.wait()
            pools.append(get_shared_pool(lambda: three_endpoint_config))

        threads = [threading.Thread(target=init) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(p) for p in pools}) == 1
        assert pools[0].ref_count == num_threads
        assert len(mock_client_factory.clients) == 3

    def test_failed_creation_leaves_no_pool(self, three_endpoint_config):
        with patch.object(
            conn_module, "MongoClient", side_effect=PyMongoConfigurationError("bad")
        ):
            with pytest.raises(InitializationError):
                get_shared_pool(lambda: three_endpoint_config)

        assert get_pool_state() == {"status": "no_pool"}

    def test_pool_state_describes_open_pool(self, mock_client_factory, three_endpoint_config):
        pool = get_shared_pool(lambda: three_endpoint_config)
        pool.select()

        state = get_pool_state()

        assert state["status"] == "open"
        assert state["endpoints"] == three_endpoint_config.urls
        assert state["ref_count"] == 1
        assert state["selections"] == 1
