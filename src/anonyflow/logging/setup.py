"""Structured logging for ANONYFLOW.

Log lines are JSON by default. Every record carries the id of the session
whose batch cycle emitted it, taken from session_id_var, so the output of
concurrent sessions can be told apart. Outside a cycle the id is "-".

Environment variables:
    ANONYFLOW_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO).
    ANONYFLOW_LOG_FORMAT: "json" or "text" (default json).
"""

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional, TextIO

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "anonyflow"

session_id_var: ContextVar[str] = ContextVar("session_id", default="")

# Third-party loggers that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore")


class SessionContextFilter(logging.Filter):
    """Stamp records with the session running in the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_var.get() or "-"
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter using level/timestamp keys and a service field."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        for source, target in (("levelname", "level"), ("asctime", "timestamp")):
            if source in log_record:
                log_record[target] = log_record.pop(source)

        log_record["service"] = SERVICE_NAME
        session_id = getattr(record, "session_id", None)
        if session_id is not None:
            log_record["session_id"] = session_id


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Replace the root handlers with a single session-aware handler.

    Args:
        level: Log level name. Falls back to ANONYFLOW_LOG_LEVEL, then INFO.
        json_format: JSON output when true, plain text otherwise. Falls back
            to ANONYFLOW_LOG_FORMAT.
        stream: Destination stream, sys.stdout by default.
    """
    if level is None:
        level = os.getenv("ANONYFLOW_LOG_LEVEL", "INFO")
    level = level.upper()
    if json_format is None:
        json_format = os.getenv("ANONYFLOW_LOG_FORMAT", "json").lower() == "json"

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setLevel(level)
    handler.addFilter(SessionContextFilter())
    if json_format:
        handler.setFormatter(
            CustomJsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S%z",
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)-8s [%(session_id)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """Attribute every record logged inside the block to session_id."""
    token = session_id_var.set(session_id)
    try:
        yield
    finally:
        session_id_var.reset(token)


def set_session_id(session_id: str) -> None:
    """Set the session ID for the current context until changed again."""
    session_id_var.set(session_id)


def get_session_id() -> str:
    """Current session ID, or an empty string outside a batch cycle."""
    return session_id_var.get()
