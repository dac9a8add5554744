"""Logging configuration module for ANONYFLOW."""

from anonyflow.logging.setup import get_logger, session_context, setup_logging

__all__ = ["get_logger", "session_context", "setup_logging"]
