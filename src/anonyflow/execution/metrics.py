"""
Per-session processing metrics.

Each session owns exactly one MetricsSample that is overwritten after every
batch cycle. The latest values are also published to the Prometheus
session gauges so an external backend can keep the history.
"""

from datetime import datetime, timezone
from typing import Optional

import psutil

from anonyflow.execution.models import MetricsSample, Session
from anonyflow.metrics.collectors import SESSION_LATENCY, SESSION_THROUGHPUT


class MetricsCollector:
    """Keeps the latest MetricsSample of every session."""

    def __init__(self) -> None:
        self._samples: dict[str, MetricsSample] = {}

    def initialize(self, session_id: str) -> MetricsSample:
        """Create a zeroed sample for a session, replacing any previous one."""
        sample = MetricsSample(session_id=session_id)
        self._samples[session_id] = sample
        return sample

    def update(self, session: Session, records: int, processing_time_ms: float) -> MetricsSample:
        """Record the outcome of a successful batch cycle.

        Args:
            session: The session the batch belongs to. Its
                records_per_second is updated in place.
            records: Number of records in the batch.
            processing_time_ms: Wall time of the whole cycle.

        Returns:
            The updated sample.
        """
        sample = self._samples.get(session.id) or self.initialize(session.id)

        seconds = processing_time_ms / 1000
        throughput = records / seconds if seconds > 0 else float(records)

        sample.throughput = throughput
        sample.latency = processing_time_ms
        sample.error_rate = self._error_rate(session)
        sample.cpu_usage = psutil.cpu_percent(interval=None)
        sample.memory_usage = psutil.virtual_memory().percent
        sample.timestamp = datetime.now(timezone.utc)

        session.records_per_second = round(throughput)
        self._sync_counters(sample, session)

        SESSION_THROUGHPUT.labels(session_id=session.id).set(throughput)
        SESSION_LATENCY.labels(session_id=session.id).set(processing_time_ms)
        return sample

    def record_error(self, session: Session) -> MetricsSample:
        """Refresh the error figures after a failed batch cycle."""
        sample = self._samples.get(session.id) or self.initialize(session.id)
        sample.error_rate = self._error_rate(session)
        sample.timestamp = datetime.now(timezone.utc)
        self._sync_counters(sample, session)
        return sample

    def get(self, session_id: str) -> Optional[MetricsSample]:
        return self._samples.get(session_id)

    def list_all(self) -> list[MetricsSample]:
        return list(self._samples.values())

    def remove(self, session_id: str) -> None:
        self._samples.pop(session_id, None)
        for gauge in (SESSION_THROUGHPUT, SESSION_LATENCY):
            try:
                gauge.remove(session_id)
            except KeyError:
                continue

    def clear(self) -> None:
        for session_id in list(self._samples):
            self.remove(session_id)

    @staticmethod
    def _error_rate(session: Session) -> float:
        attempts = session.error_count + session.cycles_completed
        return session.error_count / attempts if attempts else 0.0

    @staticmethod
    def _sync_counters(sample: MetricsSample, session: Session) -> None:
        sample.records_processed = session.records_processed
        sample.records_per_second = session.records_per_second
        sample.error_count = session.error_count
