"""Tests for logging configuration."""

import logging

import orjson
import pytest
import structlog

from mapbot_app.config.defaults import LoggingParams
from mapbot_app.logging.config import configure_logging, get_device_logger, get_task_logger, log_transition


@pytest.fixture
def restore_logging():
    """Undo global logging changes made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def _read_records(path):
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [orjson.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestConfigureLogging:
    """Test structlog setup from the logging settings."""

    def test_file_records_carry_run_context(self, tmp_path, restore_logging):
        log_file = tmp_path / "run.log"
        configure_logging(LoggingParams(level="DEBUG", log_file=str(log_file)))
        structlog.contextvars.bind_contextvars(run_id="abc123")

        logger = get_device_logger("mapbot_app.device.protocol")
        log_transition(logger, "Device state transition", "closed", "opening", trigger="interact")

        record = _read_records(log_file)[-1]
        assert record["event"] == "Device state transition"
        assert record["from_state"] == "closed"
        assert record["to_state"] == "opening"
        assert record["trigger"] == "interact"
        assert record["subsystem"] == "device_protocol"
        assert record["run_id"] == "abc123"
        assert record["level"] == "info"
        assert record["logger"] == "mapbot_app.device.protocol"
        assert "timestamp" in record

    def test_level_filters_records(self, tmp_path, restore_logging):
        log_file = tmp_path / "run.log"
        configure_logging(LoggingParams(level="WARNING", log_file=str(log_file)))

        logger = get_task_logger("mapbot_app.tasks.orchestrator")
        logger.info("Task transition")
        logger.warning("Task exceeded maximum duration", task="explore")

        records = _read_records(log_file)
        assert [r["event"] for r in records] == ["Task exceeded maximum duration"]
        assert records[0]["subsystem"] == "orchestrator"

    def test_missing_state_logged_as_none(self, tmp_path, restore_logging):
        log_file = tmp_path / "run.log"
        configure_logging(LoggingParams(log_file=str(log_file)))

        log_transition(get_task_logger("mapbot_app.tasks.orchestrator"), "Task transition", None, "loot")

        record = _read_records(log_file)[-1]
        assert record["from_state"] == "none"
        assert record["to_state"] == "loot"

    def test_reconfiguring_replaces_installed_handlers(self, restore_logging):
        configure_logging()
        configure_logging(LoggingParams(format_json=True))

        installed = [
            handler for handler in logging.getLogger().handlers
            if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        assert len(installed) == 1
