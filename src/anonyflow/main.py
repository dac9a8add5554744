"""
ANONYFLOW Runner

Run with: python -m anonyflow.main sessions.yaml

Creates and starts every session defined in the YAML file and keeps them
polling until SIGINT or SIGTERM.
"""

import asyncio
import signal
import sys
from typing import Optional

from prometheus_client import start_http_server

from anonyflow import __version__
from anonyflow.config.session_loader import load_sessions_from_yaml_safe
from anonyflow.config.settings import Settings
from anonyflow.core.registry import create_default_registry
from anonyflow.errors import AnonyflowError
from anonyflow.execution.connectors import ConnectorFactory
from anonyflow.execution.models import SessionConfig
from anonyflow.execution.session_manager import SessionManager
from anonyflow.logging.setup import get_logger, setup_logging

logger = get_logger(__name__)


def build_manager(settings: Settings) -> SessionManager:
    """Create a SessionManager wired from settings."""
    return SessionManager(
        registry=create_default_registry(),
        connectors=ConnectorFactory(
            file_batch_size=settings.file_batch_size,
            http_timeout=settings.http_timeout,
        ),
        default_poll_interval_ms=settings.default_poll_interval_ms,
        error_threshold=settings.error_threshold,
    )


async def run(configs: list[SessionConfig], settings: Settings) -> int:
    """Start the sessions and wait for a shutdown signal.

    Returns:
        Process exit code.
    """
    manager = build_manager(settings)
    shutdown = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(shutdown.set))

    started = 0
    for config in configs:
        session = manager.create_session(config)
        try:
            await manager.start_session(session.id)
            started += 1
        except AnonyflowError as e:
            logger.error(
                "Could not start session %s: %s",
                session.name,
                e.message,
                extra={"event": "session_start_failed", "error_kind": e.kind.value},
            )

    if started == 0:
        logger.error("No session could be started", extra={"event": "no_sessions"})
        await manager.cleanup()
        return 1

    logger.info(
        "Running %d sessions",
        started,
        extra={"event": "runner_started", "version": __version__},
    )
    try:
        await shutdown.wait()
    finally:
        logger.info("Shutting down", extra={"event": "runner_stopping"})
        await manager.cleanup()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run the ANONYFLOW session runner."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python -m anonyflow.main <sessions.yaml>", file=sys.stderr)
        return 2

    settings = Settings.from_env()
    validation_errors = settings.validate()
    setup_logging(
        level=settings.log_level.upper() if not validation_errors else "INFO",
        json_format=settings.log_format == "json",
    )
    if validation_errors:
        for error in validation_errors:
            logger.error(error, extra={"event": "config_error"})
        print("\nConfiguration errors detected:", file=sys.stderr)
        for error in validation_errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    configs, error = load_sessions_from_yaml_safe(args[0])
    if error:
        logger.error(error, extra={"event": "config_error"})
        return 1
    if not configs:
        logger.error("No sessions defined in %s", args[0], extra={"event": "config_error"})
        return 1

    if settings.metrics_port:
        start_http_server(settings.metrics_port)
        logger.info(
            "Prometheus exporter listening on port %d",
            settings.metrics_port,
            extra={"event": "metrics_started"},
        )

    return asyncio.run(run(configs, settings))


if __name__ == "__main__":
    sys.exit(main())
