"""Runtime settings for ANONYFLOW read from environment variables.

Environment variables:
    ANONYFLOW_DEFAULT_POLL_INTERVAL_MS: Poll interval for sources without
        their own (default 5000).
    ANONYFLOW_ERROR_THRESHOLD: Errors a session may accumulate before it
        is moved to the error state (default 10).
    ANONYFLOW_FILE_BATCH_SIZE: Records read per poll from files (default 100).
    ANONYFLOW_HTTP_TIMEOUT: HTTP connector timeout in seconds (default 30).
    ANONYFLOW_METRICS_PORT: Port of the Prometheus exporter; 0 disables it
        (default 0).
    ANONYFLOW_LOG_LEVEL / ANONYFLOW_LOG_FORMAT: See anonyflow.logging.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

VALID_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}
VALID_LOG_FORMATS = {"json", "text"}


@dataclass
class Settings:
    default_poll_interval_ms: int = 5000
    error_threshold: int = 10
    file_batch_size: int = 100
    http_timeout: float = 30.0
    metrics_port: int = 0
    log_level: str = "info"
    log_format: str = "json"
    _parse_errors: list[str] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from the environment.

        Values that cannot be parsed keep their default and are reported
        by validate().
        """
        env = os.environ if environ is None else environ
        settings = cls()

        def read(name: str, convert, default):
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            try:
                return convert(raw)
            except ValueError:
                kind = "an integer" if convert is int else "a number"
                settings._parse_errors.append(f"{name} must be {kind}, got: {raw}")
                return default

        settings.default_poll_interval_ms = read(
            "ANONYFLOW_DEFAULT_POLL_INTERVAL_MS", int, settings.default_poll_interval_ms
        )
        settings.error_threshold = read("ANONYFLOW_ERROR_THRESHOLD", int, settings.error_threshold)
        settings.file_batch_size = read("ANONYFLOW_FILE_BATCH_SIZE", int, settings.file_batch_size)
        settings.http_timeout = read("ANONYFLOW_HTTP_TIMEOUT", float, settings.http_timeout)
        settings.metrics_port = read("ANONYFLOW_METRICS_PORT", int, settings.metrics_port)
        settings.log_level = env.get("ANONYFLOW_LOG_LEVEL", settings.log_level).lower()
        settings.log_format = env.get("ANONYFLOW_LOG_FORMAT", settings.log_format).lower()
        return settings

    def validate(self) -> list[str]:
        """Check the settings.

        Returns:
            List of validation error messages (empty if all valid).
        """
        errors = list(self._parse_errors)

        if self.default_poll_interval_ms <= 0:
            errors.append(
                f"ANONYFLOW_DEFAULT_POLL_INTERVAL_MS must be positive, got: {self.default_poll_interval_ms}"
            )
        if self.error_threshold < 0:
            errors.append(f"ANONYFLOW_ERROR_THRESHOLD must not be negative, got: {self.error_threshold}")
        if self.file_batch_size <= 0:
            errors.append(f"ANONYFLOW_FILE_BATCH_SIZE must be positive, got: {self.file_batch_size}")
        if self.http_timeout <= 0:
            errors.append(f"ANONYFLOW_HTTP_TIMEOUT must be positive, got: {self.http_timeout}")
        if not (0 <= self.metrics_port <= 65535):
            errors.append(f"ANONYFLOW_METRICS_PORT must be between 0 and 65535, got: {self.metrics_port}")
        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(
                f"ANONYFLOW_LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}, got: {self.log_level}"
            )
        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(
                f"ANONYFLOW_LOG_FORMAT must be one of {sorted(VALID_LOG_FORMATS)}, got: {self.log_format}"
            )
        return errors
