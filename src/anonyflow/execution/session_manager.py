"""
Session Manager

Orchestrates streaming anonymization sessions. Each running session owns a
PollingTask that wakes up every poll interval and runs one batch cycle:

    fetch -> anonymize sensitive fields -> send -> update metrics

Cycles of one session never overlap; different sessions run independently.
Every cycle failure increments the session's error_count, and a session
whose error_count goes over the error threshold is moved to the terminal
error state.

Example:
    >>> manager = SessionManager(create_default_registry())
    >>> session = manager.create_session(config)
    >>> await manager.start_session(session.id)
    >>> ...
    >>> await manager.cleanup()
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from anonyflow.core.registry import TechniqueRegistry, create_default_registry
from anonyflow.core.techniques.base import as_text
from anonyflow.errors import (
    AnonyflowError,
    InvalidSessionState,
    SessionNotFound,
    SinkFailure,
    SourceUnavailable,
    TransformFailure,
)
from anonyflow.execution.alerts import AlertMonitor
from anonyflow.execution.connectors import (
    ConnectorFactory,
    InputConnector,
    OutputConnector,
    Record,
)
from anonyflow.execution.metrics import MetricsCollector
from anonyflow.execution.models import (
    MetricsSample,
    RealTimeAlert,
    Session,
    SessionConfig,
    SessionStatus,
)
from anonyflow.logging.setup import get_logger, session_context
from anonyflow.metrics.collectors import (
    ACTIVE_SESSIONS,
    BATCH_DURATION,
    BATCH_ERRORS,
    RECORDS_PROCESSED,
    SESSION_TRANSITIONS,
)

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_ERROR_THRESHOLD = 10
DEFAULT_SHUTDOWN_TIMEOUT = 30.0


class PollingTask:
    """Cancellable periodic loop driving one session.

    The loop waits one interval, runs a cycle to completion, and repeats
    until stop() is called. Stopping is cooperative: a cycle in progress
    finishes, but no new cycle starts afterwards.
    """

    def __init__(
        self,
        session_id: str,
        interval_ms: int,
        cycle: Callable[[], Awaitable[Any]],
    ) -> None:
        self.session_id = session_id
        self.interval_ms = interval_ms
        self._cycle = cycle
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"anonyflow-poll-{self.session_id}")

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    async def wait(self) -> None:
        """Wait for the loop to exit after stop()."""
        if self._task is not None and self._task is not asyncio.current_task():
            await asyncio.shield(self._task)

    async def cancel(self) -> None:
        """Stop the loop and abort a cycle in progress.

        Only for shutdowns where waiting for the cycle timed out.
        """
        self.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        interval = self.interval_ms / 1000
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            await self._cycle()


class SessionManager:
    """Owns sessions, their polling tasks and their connectors.

    Args:
        registry: Technique registry used for every session. A default
            registry with the built-in techniques is created when omitted.
        connectors: Factory resolving input/output connectors.
        metrics: Collector for per-session metrics samples.
        alerts: Monitor raising threshold alerts.
        default_poll_interval_ms: Interval for sources without poll_interval.
        error_threshold: Sessions with more errors than this enter the
            error state.
        shutdown_timeout: Seconds cleanup() waits for an in-flight cycle
            before aborting it.
    """

    def __init__(
        self,
        registry: Optional[TechniqueRegistry] = None,
        connectors: Optional[ConnectorFactory] = None,
        metrics: Optional[MetricsCollector] = None,
        alerts: Optional[AlertMonitor] = None,
        default_poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        error_threshold: int = DEFAULT_ERROR_THRESHOLD,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ) -> None:
        self.registry = registry if registry is not None else create_default_registry()
        self.connectors = connectors or ConnectorFactory()
        self.metrics = metrics or MetricsCollector()
        self.alerts = alerts or AlertMonitor()
        self.default_poll_interval_ms = default_poll_interval_ms
        self.error_threshold = error_threshold
        self.shutdown_timeout = shutdown_timeout

        self._sessions: dict[str, Session] = {}
        self._tasks: dict[str, PollingTask] = {}
        self._inputs: dict[str, InputConnector] = {}
        self._outputs: dict[str, OutputConnector] = {}
        self._cycle_locks: dict[str, asyncio.Lock] = {}
        self._lifecycle_locks: dict[str, asyncio.Lock] = {}

    # Lifecycle

    def create_session(self, config: Union[SessionConfig, Mapping[str, Any]]) -> Session:
        """Register a new stopped session.

        Args:
            config: A SessionConfig or a mapping validated into one.

        Raises:
            pydantic.ValidationError: If a mapping does not describe a
                valid session.
        """
        if not isinstance(config, SessionConfig):
            config = SessionConfig.model_validate(config)

        session = Session.from_config(config)
        self._sessions[session.id] = session
        self.metrics.initialize(session.id)

        if session.technique_id not in self.registry:
            logger.warning(
                "Session %s uses unregistered technique %s",
                session.id,
                session.technique_id,
                extra={"event": "unknown_technique", "technique_id": session.technique_id},
            )
        logger.info(
            "Created session %s (%s)",
            session.id,
            session.name,
            extra={"event": "session_created", "session": session.id},
        )
        return session

    async def start_session(self, session_id: str) -> Session:
        """Validate the source and start polling.

        Raises:
            SessionNotFound: If the id is unknown.
            InvalidSessionState: If the session is running or in error.
            SourceUnavailable: If the input source fails validation. The
                session status is left unchanged.
            SinkFailure: If no connector can be built for the target.
        """
        session = self._require(session_id)
        async with self._lifecycle_lock(session_id):
            if session.status in (SessionStatus.RUNNING, SessionStatus.ERROR):
                raise InvalidSessionState(
                    f"Cannot start session {session_id} in status {session.status.value}"
                )

            source = self._input_for(session)
            self._output_for(session)
            try:
                reachable = await source.validate()
            except Exception as e:
                raise SourceUnavailable(
                    f"Input source '{session.input_source.name}' validation failed: {e}"
                ) from e
            if not reachable:
                raise SourceUnavailable(
                    f"Input source '{session.input_source.name}' ({session.input_source.type}) is not reachable"
                )

            # A cycle of the previous loop may still be finishing
            previous = self._tasks.pop(session_id, None)
            if previous is not None:
                previous.stop()
                await previous.wait()

            self._set_status(session, SessionStatus.RUNNING)
            session.start_time = datetime.now(timezone.utc)
            session.end_time = None

            interval_ms = session.poll_interval_ms or self.default_poll_interval_ms
            task = PollingTask(session_id, interval_ms, lambda: self._poll(session_id))
            self._tasks[session_id] = task
            task.start()

        logger.info(
            "Started session %s polling every %d ms",
            session_id,
            interval_ms,
            extra={"event": "session_started", "session": session_id},
        )
        return session

    async def pause_session(self, session_id: str) -> Session:
        """Stop scheduling cycles and mark the session paused.

        Raises:
            SessionNotFound: If the id is unknown.
            InvalidSessionState: If the session is not running.
        """
        session = self._require(session_id)
        async with self._lifecycle_lock(session_id):
            if session.status != SessionStatus.RUNNING:
                raise InvalidSessionState(
                    f"Cannot pause session {session_id} in status {session.status.value}"
                )
            self._stop_polling(session_id)
            self._set_status(session, SessionStatus.PAUSED)
        logger.info(
            "Paused session %s",
            session_id,
            extra={"event": "session_paused", "session": session_id},
        )
        return session

    async def stop_session(self, session_id: str) -> Session:
        """Stop scheduling cycles, mark the session stopped and stamp end_time.

        Stopping an already stopped session does nothing.

        Raises:
            SessionNotFound: If the id is unknown.
            InvalidSessionState: If the session is in error.
        """
        session = self._require(session_id)
        async with self._lifecycle_lock(session_id):
            if session.status == SessionStatus.STOPPED:
                return session
            if session.status == SessionStatus.ERROR:
                raise InvalidSessionState(f"Session {session_id} is in error and cannot be stopped")

            self._stop_polling(session_id)
            self._set_status(session, SessionStatus.STOPPED)
            session.end_time = datetime.now(timezone.utc)
        logger.info(
            "Stopped session %s after %d records",
            session_id,
            session.records_processed,
            extra={"event": "session_stopped", "session": session_id},
        )
        return session

    async def run_batch_cycle(self, session_id: str) -> int:
        """Run one batch cycle now, outside the polling schedule.

        Cycle failures are handled exactly as in a scheduled cycle and are
        not raised.

        Returns:
            Number of records delivered, 0 for an empty or failed cycle.

        Raises:
            SessionNotFound: If the id is unknown.
            InvalidSessionState: If the session is not running.
        """
        session = self._require(session_id)
        if session.status != SessionStatus.RUNNING:
            raise InvalidSessionState(
                f"Cannot run a cycle for session {session_id} in status {session.status.value}"
            )
        return await self._poll(session_id)

    async def cleanup(self) -> None:
        """Stop every polling task, close connectors and forget all sessions.

        Cycles in progress are allowed to finish. A cycle still running
        after shutdown_timeout seconds is cancelled.
        """
        tasks = list(self._tasks.values())
        for task in tasks:
            task.stop()
        for task in tasks:
            try:
                await asyncio.wait_for(task.wait(), timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Cycle of session %s did not finish within %.1f s, cancelling",
                    task.session_id,
                    self.shutdown_timeout,
                    extra={"event": "cycle_cancelled", "session": task.session_id},
                )
                await task.cancel()

        for session in self._sessions.values():
            if session.status in (SessionStatus.RUNNING, SessionStatus.PAUSED):
                self._set_status(session, SessionStatus.STOPPED)
                session.end_time = datetime.now(timezone.utc)

        for connector in [*self._inputs.values(), *self._outputs.values()]:
            try:
                await connector.close()
            except Exception as e:
                logger.warning(
                    "Error closing connector: %s",
                    e,
                    extra={"event": "connector_close_failed"},
                )

        self._tasks.clear()
        self._inputs.clear()
        self._outputs.clear()
        self._cycle_locks.clear()
        self._lifecycle_locks.clear()
        self._sessions.clear()
        self.metrics.clear()
        self.alerts.clear()
        logger.info("Session manager cleaned up", extra={"event": "cleanup"})

    # Queries

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def list_active_sessions(self) -> list[Session]:
        return [session for session in self._sessions.values() if session.is_active]

    def get_session_metrics(self, session_id: str) -> Optional[MetricsSample]:
        return self.metrics.get(session_id)

    def list_all_metrics(self) -> list[MetricsSample]:
        return self.metrics.list_all()

    def list_alerts(self, session_id: Optional[str] = None) -> list[RealTimeAlert]:
        return self.alerts.list(session_id)

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.alerts.acknowledge(alert_id)

    # Batch cycle

    async def _poll(self, session_id: str) -> int:
        session = self._sessions.get(session_id)
        if session is None or not session.is_active:
            return 0

        lock = self._cycle_locks.setdefault(session_id, asyncio.Lock())
        async with lock:
            if not session.is_active:
                return 0
            with session_context(session_id):
                return await self._process_batch(session)

    async def _process_batch(self, session: Session) -> int:
        start = time.perf_counter()
        try:
            records = await self._fetch(session)
            if not records:
                return 0
            anonymized = self._anonymize_batch(session, records)
            await self._send(session, anonymized)
        except AnonyflowError as e:
            self._handle_cycle_error(session, e)
            return 0
        except Exception as e:
            logger.exception(
                "Unexpected batch cycle failure",
                extra={"event": "batch_failed"},
            )
            self._handle_cycle_error(session, TransformFailure(str(e) or type(e).__name__))
            return 0

        elapsed = time.perf_counter() - start
        count = len(records)
        session.records_processed += count
        session.cycles_completed += 1

        # The batch is delivered; bookkeeping failures must not stop polling
        try:
            sample = self.metrics.update(session, count, elapsed * 1000)
            self.alerts.evaluate(sample, session.alert_thresholds)
            BATCH_DURATION.observe(elapsed)
            RECORDS_PROCESSED.inc(count)
        except Exception:
            logger.exception(
                "Failed to record metrics for a delivered batch",
                extra={"event": "metrics_failed"},
            )

        logger.debug(
            "Processed %d records in %.1f ms",
            count,
            elapsed * 1000,
            extra={"event": "batch_processed"},
        )
        return count

    async def _fetch(self, session: Session) -> list[Record]:
        source = self._input_for(session)
        try:
            return await source.fetch_batch()
        except AnonyflowError:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Fetch from '{session.input_source.name}' failed: {e}") from e

    async def _send(self, session: Session, records: list[Record]) -> None:
        target = self._output_for(session)
        try:
            await target.send(records)
        except AnonyflowError:
            raise
        except Exception as e:
            raise SinkFailure(f"Send to '{session.output_target.name}' failed: {e}") from e

    def _anonymize_batch(self, session: Session, records: list[Record]) -> list[Record]:
        """Anonymize the sensitive fields of every record.

        A field missing from a record, or holding None, is left alone. The
        first field that fails aborts the whole batch.
        """
        fields = session.input_source.sensitive_fields()
        anonymized_records = []
        for record in records:
            anonymized = dict(record)
            for descriptor in fields:
                value = record.get(descriptor.field_name)
                if value is None:
                    continue
                technique_id = descriptor.anonymization_technique or session.technique_id
                result = self.registry.apply(technique_id, as_text(value), session.parameters)
                if not result.success:
                    raise TransformFailure(
                        f"Failed to anonymize field '{descriptor.field_name}' "
                        f"with {technique_id} ({result.error_kind.value}): {result.error}"
                    )
                anonymized[descriptor.field_name] = result.first
            anonymized_records.append(anonymized)
        return anonymized_records

    def _handle_cycle_error(self, session: Session, error: AnonyflowError) -> None:
        session.error_count += 1
        session.last_error = error.message
        BATCH_ERRORS.labels(error_kind=error.kind.value).inc()
        logger.error(
            "Batch cycle failed (%d/%d): %s",
            session.error_count,
            self.error_threshold,
            error.message,
            extra={"event": "batch_failed", "error_kind": error.kind.value},
        )

        sample = self.metrics.record_error(session)
        self.alerts.check_error_rate(sample, session.alert_thresholds)

        if session.error_count > self.error_threshold and session.status == SessionStatus.RUNNING:
            self._stop_polling(session.id)
            self._set_status(session, SessionStatus.ERROR)
            session.end_time = datetime.now(timezone.utc)
            self.alerts.session_failed(session)

    # Helpers

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _input_for(self, session: Session) -> InputConnector:
        connector = self._inputs.get(session.id)
        if connector is None:
            connector = self.connectors.create_input(session.input_source)
            self._inputs[session.id] = connector
        return connector

    def _output_for(self, session: Session) -> OutputConnector:
        connector = self._outputs.get(session.id)
        if connector is None:
            connector = self.connectors.create_output(session.output_target)
            self._outputs[session.id] = connector
        return connector

    def _lifecycle_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serializing start, pause and stop of one session."""
        return self._lifecycle_locks.setdefault(session_id, asyncio.Lock())

    def _stop_polling(self, session_id: str) -> None:
        task = self._tasks.get(session_id)
        if task is not None:
            task.stop()

    def _set_status(self, session: Session, status: SessionStatus) -> None:
        previous = session.status
        if previous == status:
            return
        if previous == SessionStatus.RUNNING:
            ACTIVE_SESSIONS.dec()
        elif status == SessionStatus.RUNNING:
            ACTIVE_SESSIONS.inc()
        session.status = status
        SESSION_TRANSITIONS.labels(status=status.value).inc()
        logger.debug(
            "Session %s: %s -> %s",
            session.id,
            previous.value,
            status.value,
            extra={"event": "session_transition"},
        )
