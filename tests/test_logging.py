"""Tests for logging configuration."""

import io
import json
import logging
from unittest.mock import patch

import pytest

from anonyflow.logging.setup import (
    CustomJsonFormatter,
    SessionContextFilter,
    get_logger,
    get_session_id,
    session_context,
    session_id_var,
    set_session_id,
    setup_logging,
)


def make_record(msg="test message"):
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestSessionContextFilter:
    """Tests for SessionContextFilter."""

    def test_adds_session_id_to_record(self):
        """Test that session_id is added to log records."""
        filter_ = SessionContextFilter()
        record = make_record()

        token = session_id_var.set("session_abc")
        try:
            assert filter_.filter(record) is True
            assert record.session_id == "session_abc"
        finally:
            session_id_var.reset(token)

    def test_default_session_id(self):
        """Test that default session_id is '-' when not set."""
        filter_ = SessionContextFilter()
        record = make_record()

        token = session_id_var.set("")
        try:
            filter_.filter(record)
            assert record.session_id == "-"
        finally:
            session_id_var.reset(token)


class TestCustomJsonFormatter:
    """Tests for CustomJsonFormatter."""

    def test_adds_service_field(self):
        formatter = CustomJsonFormatter()
        record = make_record()
        record.session_id = "session_abc"

        log_record = {}
        formatter.add_fields(log_record, record, {})

        assert log_record.get("service") == "anonyflow"
        assert log_record.get("session_id") == "session_abc"

    def test_renames_levelname_to_level(self):
        formatter = CustomJsonFormatter()
        record = make_record()

        log_record = {"levelname": "INFO"}
        formatter.add_fields(log_record, record, {})

        assert "levelname" not in log_record
        assert log_record.get("level") == "INFO"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_json_output(self):
        """Test that JSON lines are written with the extra fields."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        stream = io.StringIO()
        with patch("sys.stdout", stream):
            setup_logging(level="INFO", json_format=True)

        get_logger("test_json").info("Batch done", extra={"event": "batch_processed"})

        line = stream.getvalue().strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "Batch done"
        assert payload["event"] == "batch_processed"
        assert payload["level"] == "INFO"
        assert payload["service"] == "anonyflow"

    def test_setup_text_format(self):
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        setup_logging(level="DEBUG", json_format=False)

        assert len(root_logger.handlers) == 1
        assert not isinstance(root_logger.handlers[0].formatter, CustomJsonFormatter)

    def test_setup_from_environment(self):
        """Test that logging reads from environment variables."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        with patch.dict(
            "os.environ",
            {"ANONYFLOW_LOG_LEVEL": "WARNING", "ANONYFLOW_LOG_FORMAT": "text"},
        ):
            setup_logging()

        assert root_logger.level == logging.WARNING

    def test_handler_has_session_filter(self):
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        setup_logging()

        filter_names = [type(f).__name__ for f in root_logger.handlers[0].filters]
        assert "SessionContextFilter" in filter_names


class TestSessionIdHelpers:
    """Tests for session ID helper functions."""

    def test_set_and_get_session_id(self):
        token = session_id_var.set("")
        try:
            set_session_id("session_123")
            assert get_session_id() == "session_123"
        finally:
            session_id_var.reset(token)

    def test_get_logger(self):
        logger = get_logger("anonyflow.test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "anonyflow.test"


class TestSessionContext:
    """Tests for the session_context manager."""

    def test_sets_and_restores(self):
        token = session_id_var.set("")
        try:
            with session_context("session_inner"):
                assert get_session_id() == "session_inner"
            assert get_session_id() == ""
        finally:
            session_id_var.reset(token)

    def test_restores_on_error(self):
        token = session_id_var.set("session_outer")
        try:
            with pytest.raises(RuntimeError):
                with session_context("session_inner"):
                    raise RuntimeError("boom")
            assert get_session_id() == "session_outer"
        finally:
            session_id_var.reset(token)

    def test_json_lines_carry_session_id(self):
        """Test records logged inside a cycle are attributed to its session."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        stream = io.StringIO()
        setup_logging(level="info", json_format=True, stream=stream)

        with session_context("session_xyz"):
            get_logger("test_session").info("Processed batch")
        get_logger("test_session").info("Idle")

        first, second = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert first["session_id"] == "session_xyz"
        assert second["session_id"] == "-"
