"""Configuration module for ANONYFLOW."""

from anonyflow.config.session_loader import (
    load_sessions_from_yaml,
    load_sessions_from_yaml_safe,
)
from anonyflow.config.settings import Settings

__all__ = [
    "Settings",
    "load_sessions_from_yaml",
    "load_sessions_from_yaml_safe",
]
