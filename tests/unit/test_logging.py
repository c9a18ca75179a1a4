"""
Unit tests for contextual logging.
"""

import logging
import threading

from mdb_ycsb.observability.logging import (
    clear_worker_context,
    get_logger,
    get_logging_context,
    log_operation,
    set_worker_context,
)


class TestWorkerContext:
    def teardown_method(self):
        clear_worker_context()

    def test_context_defaults_to_thread_name(self):
        set_worker_context()

        assert get_logging_context()["worker_id"] == threading.current_thread().name

    def test_context_carries_extra_fields(self):
        set_worker_context(worker_id=3, table="usertable")

        context = get_logging_context()
        assert context["worker_id"] == 3
        assert context["table"] == "usertable"
        assert "timestamp" in context

    def test_cleared_context(self):
        set_worker_context(worker_id=3)
        clear_worker_context()

        assert "worker_id" not in get_logging_context()


class TestContextualLogger:
    def teardown_method(self):
        clear_worker_context()

    def test_records_include_worker_context(self, caplog):
        set_worker_context(worker_id=7)
        logger = get_logger("mdb_ycsb.test")

        with caplog.at_level(logging.INFO, logger="mdb_ycsb.test"):
            logger.info("hello", extra={"endpoint": "a:27017"})

        record = caplog.records[-1]
        assert record.worker_id == 7
        assert record.endpoint == "a:27017"

    def test_log_operation_failure_message(self, caplog):
        logger = logging.getLogger("mdb_ycsb.test.ops")

        with caplog.at_level(logging.DEBUG, logger="mdb_ycsb.test.ops"):
            log_operation(logger, "ycsb.read", success=False, duration_ms=1.234, table="t")

        record = caplog.records[-1]
        assert record.getMessage() == "Operation failed: ycsb.read (duration: 1.23ms)"
        assert record.table == "t"
        assert record.duration_ms == 1.23
