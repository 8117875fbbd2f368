"""Tests for teamsync.logging_config."""

import logging

import pytest

from teamsync.logging_config import CorrelationIdFilter, configure_logging

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_root_level(monkeypatch):
    monkeypatch.delenv("TEAMSYNC_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TEAMSYNC_DEBUG", raising=False)
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


class TestConfigureLogging:
    def test_default_is_info(self):
        assert configure_logging() == logging.INFO
        assert logging.getLogger().level == logging.INFO

    def test_level_name_from_config(self):
        assert configure_logging("warning") == logging.WARNING

    def test_unknown_level_name_uses_info(self):
        assert configure_logging("LOUD") == logging.INFO

    def test_env_level_wins_over_config(self, monkeypatch):
        monkeypatch.setenv("TEAMSYNC_LOG_LEVEL", "error")
        assert configure_logging("DEBUG") == logging.ERROR

    def test_debug_env_forces_debug(self, monkeypatch):
        monkeypatch.setenv("TEAMSYNC_DEBUG", "yes")
        assert configure_logging("ERROR") == logging.DEBUG

    def test_force_debug_argument(self, monkeypatch):
        monkeypatch.setenv("TEAMSYNC_DEBUG", "1")
        assert configure_logging(force_debug=False) == logging.INFO

    def test_noisy_loggers_quieted(self):
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiohttp.access").level == logging.WARNING

    def test_filter_attached_once(self):
        configure_logging()
        configure_logging()
        for handler in logging.getLogger().handlers:
            filters = [f for f in handler.filters if isinstance(f, CorrelationIdFilter)]
            assert len(filters) == 1


class TestCorrelationIdFilter:
    def test_outside_request_uses_placeholder(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert CorrelationIdFilter().filter(record) is True
        assert record.request_id == "no-request-id"
