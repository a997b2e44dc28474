"""Tests for the logging setup and correlation id injection."""

import logging

import pytest

from order_api.core.logging import LoggingContextFilter, configure_logging, correlation_id_var


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record() -> logging.LogRecord:
    return logging.LogRecord("order_api.test", logging.INFO, __file__, 1, "hello", None, None)


class TestLoggingContextFilter:
    def test_placeholder_outside_request(self):
        record = _record()
        assert LoggingContextFilter().filter(record)
        assert record.correlation_id == "-"

    def test_uses_current_correlation_id(self):
        token = correlation_id_var.set("req-42")
        try:
            record = _record()
            LoggingContextFilter().filter(record)
        finally:
            correlation_id_var.reset(token)
        assert record.correlation_id == "req-42"


class TestConfigureLogging:
    def test_reconfiguring_replaces_only_own_handler(self, restore_root_logger):
        root = restore_root_logger
        foreign = logging.NullHandler()
        root.addHandler(foreign)

        configure_logging("debug")
        configure_logging(logging.WARNING)

        own = [h for h in root.handlers if h.get_name() == "order_api"]
        assert len(own) == 1
        assert foreign in root.handlers
        assert root.level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_level_from_settings(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        configure_logging()
        assert restore_root_logger.level == logging.ERROR
