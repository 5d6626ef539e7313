"""Tests for logging configuration."""

import json
import logging

from ports_core.logging_config import ConsoleFormatter, JSONFormatter, setup_logging


def make_record(msg: str = "Killed process", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="ports_core.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJSONFormatter:
    def test_basic_format(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "ports_core.test"
        assert data["message"] == "Killed process"
        assert "timestamp" in data

    def test_extra_fields(self):
        data = json.loads(JSONFormatter().format(make_record(pid="42", count=3)))
        assert data["pid"] == "42"
        assert data["count"] == 3


class TestConsoleFormatter:
    def test_contains_level_and_extras(self):
        out = ConsoleFormatter().format(make_record(pid="42"))
        assert "INFO" in out
        assert "Killed process" in out
        assert "pid=42" in out


class TestSetupLogging:
    def test_replaces_handlers(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("DEBUG")
            setup_logging("WARNING", json_logs=True)
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_unknown_level_falls_back_to_info(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("LOUD")
            assert root.level == logging.INFO
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
