"""Tests for dual console + file logging setup."""

import json
import logging

import pytest
import structlog

from fleet_stacks.core.logging_config import (
    get_middleware_logger,
    get_server_logger,
    setup_logging,
)


@pytest.fixture
def temp_log_dir(tmp_path):
    """Create temporary log directory for testing."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def setup_logging_config(temp_log_dir):
    """Configure logging into a temp directory and restore defaults afterwards."""
    setup_logging(log_dir=temp_log_dir, log_level="DEBUG", max_file_size_mb=1)
    yield temp_log_dir

    for name in (None, "server", "middleware"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    structlog.reset_defaults()


def read_json_lines(path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestSetupLogging:
    def test_creates_both_log_files(self, setup_logging_config):
        assert (setup_logging_config / "fleet_stacks.log").exists()
        assert (setup_logging_config / "middleware.log").exists()

    def test_initialization_is_logged(self, setup_logging_config):
        entries = read_json_lines(setup_logging_config / "fleet_stacks.log")
        assert entries[0]["event"] == "Logging system initialized"
        assert entries[0]["log_level"] == "DEBUG"

    def test_loggers_write_to_their_own_file(self, setup_logging_config):
        get_server_logger().info("Listed stacks", stacks=2)
        get_middleware_logger().info("MCP request started", method="tools/call")

        server_events = [
            e["event"] for e in read_json_lines(setup_logging_config / "fleet_stacks.log")
        ]
        middleware_events = [
            e["event"] for e in read_json_lines(setup_logging_config / "middleware.log")
        ]

        assert "Listed stacks" in server_events
        assert "MCP request started" not in server_events
        assert middleware_events == ["MCP request started"]

    def test_console_only_without_log_dir(self, tmp_path):
        try:
            setup_logging(log_dir=None, log_level="INFO")
            assert logging.getLogger().handlers
            assert not list(tmp_path.iterdir())
        finally:
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()
