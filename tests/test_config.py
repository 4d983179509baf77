"""Tests for configuration and logging setup."""

import json
import logging

import pytest
import structlog

from ssestream.config import ClientConfig
from ssestream.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig()
        assert config.reconnect_delay_ms == 3000
        assert config.follow_redirects is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SSESTREAM_RECONNECT_DELAY_MS", "750")
        monkeypatch.setenv("SSESTREAM_JSON_LOGS", "true")
        config = ClientConfig()
        assert config.reconnect_delay_ms == 750
        assert config.json_logs is True


class TestSetupLogging:
    def test_json_output(self, capsys):
        setup_logging(ClientConfig(log_level="debug", json_logs=True))
        structlog.get_logger().info("sse_connected", url="http://test.com")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "sse_connected"
        assert record["level"] == "info"
        assert record["url"] == "http://test.com"
        assert "timestamp" in record

    def test_level_filtering(self, capsys):
        setup_logging(ClientConfig(log_level="WARNING"))
        log = structlog.get_logger()
        log.debug("sse_connecting")
        log.warning("sse_connection_error", error="boom")
        err = capsys.readouterr().err
        assert "sse_connecting" not in err
        assert "sse_connection_error" in err

    def test_reads_environment_when_config_omitted(self, capsys, monkeypatch):
        monkeypatch.setenv("SSESTREAM_LOG_LEVEL", "info")
        monkeypatch.setenv("SSESTREAM_JSON_LOGS", "1")
        setup_logging()
        structlog.get_logger().info("sse_open")
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "sse_open"
