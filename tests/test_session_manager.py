"""Tests for the session manager."""

import asyncio
import json

import pytest
import pytest_asyncio

from anonyflow.errors import InvalidSessionState, SessionNotFound, SourceUnavailable
from anonyflow.execution.connectors import (
    ConnectorFactory,
    InputConnector,
    MemoryInputConnector,
    MemoryOutputConnector,
    OutputConnector,
)
from anonyflow.execution.metrics import MetricsCollector
from anonyflow.execution.models import AlertSeverity, SessionConfig, SessionStatus
from anonyflow.execution.session_manager import SessionManager


class FailingInputConnector(InputConnector):
    """Source that validates but fails every fetch."""

    async def validate(self):
        return True

    async def fetch_batch(self):
        raise ConnectionError("connection reset")


class FailingOutputConnector(OutputConnector):
    async def send(self, records):
        raise ConnectionError("sink down")


class GatedInputConnector(InputConnector):
    """Source whose fetch blocks until released."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def validate(self):
        return True

    async def fetch_batch(self):
        self.calls += 1
        self.entered.set()
        await self.release.wait()
        return [{"email": "a@b.com"}]


class GatedOutputConnector(OutputConnector):
    """Sink whose send blocks until released."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.delivered = []

    async def send(self, records):
        self.entered.set()
        await self.release.wait()
        self.delivered.append(records)


class SlowValidateInputConnector(MemoryInputConnector):
    async def validate(self):
        await asyncio.sleep(0.01)
        return True


class BrokenMetricsCollector(MetricsCollector):
    def update(self, session, records, processing_time_ms):
        raise RuntimeError("metrics backend down")


def make_config(poll_interval=60000, technique_id="hash-sha256", parameters=None):
    return SessionConfig(
        name="stream",
        technique_id=technique_id,
        parameters=parameters or {},
        input_source={
            "type": "api",
            "name": "crm",
            "configuration": {"endpoint": "memory://crm", "poll_interval": poll_interval},
            "schema": [{"field_name": "email", "is_sensitive": True}],
        },
        output_target={"type": "api", "name": "warehouse"},
    )


@pytest_asyncio.fixture
async def build_manager(registry):
    """Build managers bound to specific connectors and clean them up."""
    managers = []

    def build(source, sink=None, **kwargs):
        factory = ConnectorFactory()
        factory.register_input("api", lambda s: source)
        factory.register_output("api", lambda t: sink or MemoryOutputConnector())
        manager = SessionManager(registry=registry, connectors=factory, **kwargs)
        managers.append(manager)
        return manager

    yield build
    for manager in managers:
        await manager.cleanup()


async def wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestCreateSession:
    """Tests for session creation."""

    def test_create_defaults(self, registry):
        """Test a new session is stopped with zeroed counters."""
        manager = SessionManager(registry=registry)
        session = manager.create_session(make_config())

        assert session.status == SessionStatus.STOPPED
        assert session.records_processed == 0
        assert session.error_count == 0
        assert session.is_active is False
        assert session.id.startswith("session_")
        assert manager.get_session(session.id) is session
        assert manager.get_session_metrics(session.id).records_processed == 0

    def test_create_from_mapping(self, registry):
        """Test a plain mapping is validated into a session with defaults."""
        manager = SessionManager(registry=registry)
        session = manager.create_session(
            {
                "input_source": {"type": "file", "configuration": {"file_path": "in.jsonl"}},
                "output_target": {"type": "file", "configuration": {"file_path": "out.jsonl"}},
            }
        )
        assert session.name == "New Session"
        assert session.technique_id == "hash-sha256"

    def test_unique_ids(self, registry):
        """Test every session gets a distinct id."""
        manager = SessionManager(registry=registry)
        ids = {manager.create_session(make_config()).id for _ in range(20)}
        assert len(ids) == 20


class TestLifecycle:
    """Tests for start, pause and stop."""

    @pytest.mark.asyncio
    async def test_start(self, manager, session_config):
        """Test starting marks the session running and active."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)

        assert session.status == SessionStatus.RUNNING
        assert session.is_active is True
        assert session.start_time is not None
        assert manager.list_active_sessions() == [session]

    @pytest.mark.asyncio
    async def test_start_unknown(self, manager):
        """Test starting an unknown id raises SessionNotFound."""
        with pytest.raises(SessionNotFound):
            await manager.start_session("session_missing")

    @pytest.mark.asyncio
    async def test_start_unreachable_source(self, manager, session_config, memory_source):
        """Test failed validation raises and leaves the session stopped."""
        memory_source.available = False
        session = manager.create_session(session_config)

        with pytest.raises(SourceUnavailable):
            await manager.start_session(session.id)

        assert session.status == SessionStatus.STOPPED
        assert session.is_active is False
        assert session.start_time is None

    @pytest.mark.asyncio
    async def test_start_without_connector(self, registry):
        """Test a source type with no connector cannot be started."""
        manager = SessionManager(registry=registry)
        config = make_config()
        config.input_source.type = "database"
        session = manager.create_session(config)

        with pytest.raises(SourceUnavailable):
            await manager.start_session(session.id)
        assert session.status == SessionStatus.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice(self, manager, session_config):
        """Test starting a running session raises InvalidSessionState."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)

        with pytest.raises(InvalidSessionState):
            await manager.start_session(session.id)

    @pytest.mark.asyncio
    async def test_concurrent_starts(self, build_manager):
        """Test only one of two overlapping starts succeeds and neither hangs."""
        manager = build_manager(SlowValidateInputConnector())
        session = manager.create_session(make_config())

        results = await asyncio.wait_for(
            asyncio.gather(
                manager.start_session(session.id),
                manager.start_session(session.id),
                return_exceptions=True,
            ),
            timeout=2,
        )

        assert results[0] is session
        assert isinstance(results[1], InvalidSessionState)
        assert session.status == SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_stop(self, manager, session_config):
        """Test stopping deactivates the session and stamps end_time."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        await manager.stop_session(session.id)

        assert session.status == SessionStatus.STOPPED
        assert session.is_active is False
        assert session.end_time is not None
        assert manager.list_active_sessions() == []

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, manager, session_config):
        """Test stopping a stopped session changes nothing."""
        session = manager.create_session(session_config)
        await manager.stop_session(session.id)
        assert session.status == SessionStatus.STOPPED
        assert session.end_time is None

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, manager, session_config):
        """Test a paused session can be started again."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        await manager.pause_session(session.id)

        assert session.status == SessionStatus.PAUSED
        assert session.is_active is False
        assert session.end_time is None

        await manager.start_session(session.id)
        assert session.status == SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_pause_requires_running(self, manager, session_config):
        """Test pausing a stopped session raises InvalidSessionState."""
        session = manager.create_session(session_config)
        with pytest.raises(InvalidSessionState):
            await manager.pause_session(session.id)

    @pytest.mark.asyncio
    async def test_stop_from_paused(self, manager, session_config):
        """Test a paused session can be stopped."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        await manager.pause_session(session.id)
        await manager.stop_session(session.id)

        assert session.status == SessionStatus.STOPPED
        assert session.end_time is not None

    @pytest.mark.asyncio
    async def test_cycle_requires_running(self, manager, session_config):
        """Test a manual cycle on a stopped session raises."""
        session = manager.create_session(session_config)
        with pytest.raises(InvalidSessionState):
            await manager.run_batch_cycle(session.id)


class TestBatchCycle:
    """Tests for batch processing."""

    @pytest.mark.asyncio
    async def test_end_to_end_masking(self, manager, session_config, memory_source, memory_sink):
        """Test an email field is masked and counted."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        memory_source.push([{"email": "a@b.com", "city": "Santiago"}])

        processed = await manager.run_batch_cycle(session.id)

        assert processed == 1
        assert memory_sink.records == [{"email": "a@***om", "city": "Santiago"}]
        assert session.records_processed == 1
        assert session.error_count == 0

    @pytest.mark.asyncio
    async def test_session_default_technique(self, build_manager):
        """Test fields without their own technique use the session's."""
        source = MemoryInputConnector([[{"email": "a@b.com"}]])
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(parameters={"salt": "s"}))
        await manager.start_session(session.id)

        await manager.run_batch_cycle(session.id)

        expected = manager.registry.apply("hash-sha256", "a@b.com", {"salt": "s"}).first
        assert sink.records == [{"email": expected}]

    @pytest.mark.asyncio
    async def test_missing_and_null_fields_untouched(self, manager, session_config, memory_source, memory_sink):
        """Test missing and None fields pass through unchanged."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        memory_source.push([{"city": "Valparaíso"}, {"email": None}])

        await manager.run_batch_cycle(session.id)

        assert memory_sink.records == [{"city": "Valparaíso"}, {"email": None}]
        assert session.records_processed == 2

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, manager, session_config, memory_sink):
        """Test an empty fetch sends nothing and counts nothing."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)

        assert await manager.run_batch_cycle(session.id) == 0
        assert memory_sink.batches == []
        assert session.records_processed == 0
        assert session.error_count == 0

    @pytest.mark.asyncio
    async def test_metrics_updated(self, manager, session_config, memory_source):
        """Test a delivered batch updates the session metrics sample."""
        session = manager.create_session(session_config)
        await manager.start_session(session.id)
        memory_source.push([{"email": "a@b.com"}, {"email": "c@d.com"}])

        await manager.run_batch_cycle(session.id)

        sample = manager.get_session_metrics(session.id)
        assert sample.records_processed == 2
        assert sample.latency >= 0
        assert sample.throughput > 0
        assert manager.list_all_metrics() == [sample]

    @pytest.mark.asyncio
    async def test_transform_failure_counted(self, build_manager):
        """Test an unknown technique fails the cycle without sending."""
        source = MemoryInputConnector([[{"email": "a@b.com"}]])
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(technique_id="no-such-technique"))
        await manager.start_session(session.id)

        assert await manager.run_batch_cycle(session.id) == 0

        assert session.error_count == 1
        assert "no-such-technique" in session.last_error
        assert sink.batches == []
        assert session.records_processed == 0

    @pytest.mark.asyncio
    async def test_sink_failure_counted(self, build_manager):
        """Test a failing send counts as a cycle error."""
        source = MemoryInputConnector([[{"email": "a@b.com"}]])
        manager = build_manager(source, FailingOutputConnector())
        session = manager.create_session(make_config())
        await manager.start_session(session.id)

        await manager.run_batch_cycle(session.id)

        assert session.error_count == 1
        assert "sink down" in session.last_error
        assert session.records_processed == 0

    @pytest.mark.asyncio
    async def test_metrics_failure_keeps_polling(self, build_manager):
        """Test a failing metrics update neither fails the cycle nor kills the loop."""
        source = MemoryInputConnector()
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink, metrics=BrokenMetricsCollector())
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)

        source.push([{"email": "a@b.com"}])
        source.push([{"email": "c@d.com"}])
        await wait_for(lambda: session.records_processed == 2)

        assert len(sink.records) == 2
        assert session.error_count == 0
        assert session.status == SessionStatus.RUNNING


class TestErrorThreshold:
    """Tests for the automatic error state."""

    @pytest.mark.asyncio
    async def test_ten_failures_keep_running(self, build_manager):
        """Test a session at the threshold keeps running."""
        manager = build_manager(FailingInputConnector())
        session = manager.create_session(make_config())
        await manager.start_session(session.id)

        for _ in range(10):
            await manager.run_batch_cycle(session.id)

        assert session.error_count == 10
        assert session.status == SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_eleven_failures_enter_error(self, build_manager):
        """Test going over the threshold is terminal and raises a critical alert."""
        manager = build_manager(FailingInputConnector())
        session = manager.create_session(make_config())
        await manager.start_session(session.id)

        for _ in range(11):
            await manager.run_batch_cycle(session.id)

        assert session.status == SessionStatus.ERROR
        assert session.is_active is False
        assert "connection reset" in session.last_error
        with pytest.raises(InvalidSessionState):
            await manager.run_batch_cycle(session.id)
        with pytest.raises(InvalidSessionState):
            await manager.start_session(session.id)

        critical = [a for a in manager.list_alerts(session.id) if a.severity == AlertSeverity.CRITICAL]
        assert len(critical) == 1

    @pytest.mark.asyncio
    async def test_configurable_threshold(self, build_manager):
        """Test the threshold comes from the manager."""
        manager = build_manager(FailingInputConnector(), error_threshold=2)
        session = manager.create_session(make_config())
        await manager.start_session(session.id)

        for _ in range(3):
            await manager.run_batch_cycle(session.id)

        assert session.status == SessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_pause_resume_keeps_error_count(self, build_manager):
        """Test resuming a paused session does not reset error_count."""
        manager = build_manager(FailingInputConnector())
        session = manager.create_session(make_config())
        await manager.start_session(session.id)
        for _ in range(5):
            await manager.run_batch_cycle(session.id)

        await manager.pause_session(session.id)
        await manager.start_session(session.id)

        assert session.error_count == 5
        for _ in range(6):
            await manager.run_batch_cycle(session.id)
        assert session.status == SessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_polling_loop_reaches_error(self, build_manager):
        """Test scheduled cycles stop once the session enters error."""
        manager = build_manager(FailingInputConnector())
        session = manager.create_session(make_config(poll_interval=5))
        await manager.start_session(session.id)

        await wait_for(lambda: session.status == SessionStatus.ERROR)

        assert session.error_count == 11
        await asyncio.sleep(0.05)
        assert session.error_count == 11


class TestPolling:
    """Tests for the scheduled polling loop."""

    @pytest.mark.asyncio
    async def test_polls_on_interval(self, build_manager):
        """Test queued batches are delivered by the polling loop."""
        source = MemoryInputConnector()
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)

        source.push([{"email": "a@b.com"}])
        source.push([{"email": "c@d.com"}])

        await wait_for(lambda: session.records_processed == 2)
        assert len(sink.records) == 2

    @pytest.mark.asyncio
    async def test_no_cycles_after_pause(self, build_manager):
        """Test a paused session does not fetch."""
        source = MemoryInputConnector()
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)
        await manager.pause_session(session.id)

        source.push([{"email": "a@b.com"}])
        await asyncio.sleep(0.1)

        assert sink.batches == []
        assert source.pending == 1

    @pytest.mark.asyncio
    async def test_restart_waits_for_in_flight_cycle(self, build_manager):
        """Test a resumed session never overlaps a cycle still finishing."""
        source = GatedInputConnector()
        sink = MemoryOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)

        await asyncio.wait_for(source.entered.wait(), timeout=2)
        await manager.pause_session(session.id)

        restart = asyncio.create_task(manager.start_session(session.id))
        await asyncio.sleep(0.05)
        assert not restart.done()

        source.release.set()
        await asyncio.wait_for(restart, timeout=2)

        assert session.status == SessionStatus.RUNNING
        assert session.records_processed >= 1
        assert sink.records[0] == {"email": manager.registry.apply("hash-sha256", "a@b.com").first}

    @pytest.mark.asyncio
    async def test_stop_during_restart_wins(self, build_manager):
        """Test a stop issued while a resume waits is not overridden by it."""
        source = GatedInputConnector()
        manager = build_manager(source)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)

        await asyncio.wait_for(source.entered.wait(), timeout=2)
        await manager.pause_session(session.id)
        restart = asyncio.create_task(manager.start_session(session.id))
        await asyncio.sleep(0.02)
        stop = asyncio.create_task(manager.stop_session(session.id))
        await asyncio.sleep(0.02)

        source.release.set()
        await asyncio.wait_for(asyncio.gather(restart, stop), timeout=2)

        assert session.status == SessionStatus.STOPPED
        assert session.end_time is not None
        calls = source.calls
        await asyncio.sleep(0.05)
        assert source.calls == calls


class TestAlertsAndCleanup:
    """Tests for alert access and cleanup."""

    @pytest.mark.asyncio
    async def test_acknowledge_alert(self, build_manager):
        """Test alerts raised by a failed cycle can be acknowledged."""
        manager = build_manager(FailingInputConnector())
        session = manager.create_session(make_config())
        await manager.start_session(session.id)
        await manager.run_batch_cycle(session.id)

        alerts = manager.list_alerts(session.id)
        assert alerts
        assert manager.acknowledge_alert(alerts[0].id) is True
        assert manager.list_alerts()[0].acknowledged is True

    @pytest.mark.asyncio
    async def test_cleanup(self, build_manager):
        """Test cleanup stops sessions and forgets all state."""
        manager = build_manager(MemoryInputConnector())
        first = manager.create_session(make_config(poll_interval=10))
        manager.create_session(make_config())
        await manager.start_session(first.id)

        await manager.cleanup()

        assert first.status == SessionStatus.STOPPED
        assert manager.list_sessions() == []
        assert manager.list_all_metrics() == []
        assert manager.list_alerts() == []

    @pytest.mark.asyncio
    async def test_cleanup_lets_send_finish(self, build_manager):
        """Test cleanup waits for a batch being delivered instead of aborting it."""
        source = MemoryInputConnector([[{"email": "a@b.com"}]])
        sink = GatedOutputConnector()
        manager = build_manager(source, sink)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)
        await asyncio.wait_for(sink.entered.wait(), timeout=2)

        cleanup = asyncio.create_task(manager.cleanup())
        await asyncio.sleep(0.05)
        assert not cleanup.done()

        sink.release.set()
        await asyncio.wait_for(cleanup, timeout=2)

        assert len(sink.delivered) == 1
        assert session.records_processed == 1
        assert session.status == SessionStatus.STOPPED

    @pytest.mark.asyncio
    async def test_cleanup_cancels_after_timeout(self, build_manager):
        """Test a cycle stuck past shutdown_timeout is cancelled."""
        source = MemoryInputConnector([[{"email": "a@b.com"}]])
        sink = GatedOutputConnector()
        manager = build_manager(source, sink, shutdown_timeout=0.05)
        session = manager.create_session(make_config(poll_interval=10))
        await manager.start_session(session.id)
        await asyncio.wait_for(sink.entered.wait(), timeout=2)

        await asyncio.wait_for(manager.cleanup(), timeout=2)

        assert sink.delivered == []
        assert session.records_processed == 0
        assert session.status == SessionStatus.STOPPED


class TestFileSession:
    """Tests for a session reading and writing JSON Lines files."""

    @pytest.mark.asyncio
    async def test_file_to_file(self, registry, tmp_path):
        """Test records flow from one JSON Lines file to another."""
        source_path = tmp_path / "customers.jsonl"
        target_path = tmp_path / "customers.anon.jsonl"
        source_path.write_text(
            '{"email": "ana@example.com", "city": "Santiago"}\n'
            '{"email": "luis@example.com", "city": "Temuco"}\n',
            encoding="utf-8",
        )
        manager = SessionManager(registry=registry)
        session = manager.create_session(
            {
                "technique_id": "masking-partial",
                "parameters": {"maskType": "full", "preserveFormat": False},
                "input_source": {
                    "type": "file",
                    "configuration": {"file_path": str(source_path), "poll_interval": 60000},
                    "schema": [{"field_name": "email", "is_sensitive": True}],
                },
                "output_target": {"type": "file", "configuration": {"file_path": str(target_path)}},
            }
        )
        try:
            await manager.start_session(session.id)
            assert await manager.run_batch_cycle(session.id) == 2
            assert await manager.run_batch_cycle(session.id) == 0
        finally:
            await manager.cleanup()

        lines = [json.loads(line) for line in target_path.read_text(encoding="utf-8").splitlines()]
        assert [line["city"] for line in lines] == ["Santiago", "Temuco"]
        assert [line["email"] for line in lines] == ["*" * 15, "*" * 16]
