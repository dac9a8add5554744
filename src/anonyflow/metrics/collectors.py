"""Prometheus metrics collectors for ANONYFLOW.

Defines all application metrics for monitoring and observability.
"""

from prometheus_client import Counter, Gauge, Histogram

# Technique engine metrics
TECHNIQUE_DURATION = Histogram(
    "anonyflow_technique_duration_seconds",
    "Technique invocation latency",
    ["technique_id"],
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5],
)

TECHNIQUE_APPLIED = Counter(
    "anonyflow_technique_applied_total",
    "Total technique invocations",
    ["technique_id", "outcome"],
)

TECHNIQUE_FAILURES = Counter(
    "anonyflow_technique_failures_total",
    "Failed technique invocations",
    ["technique_id", "error_kind"],
)

# Batch cycle metrics
BATCH_DURATION = Histogram(
    "anonyflow_batch_duration_seconds",
    "Batch cycle latency (fetch, transform, send)",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

RECORDS_PROCESSED = Counter(
    "anonyflow_records_processed_total",
    "Total records anonymized and delivered",
)

BATCH_ERRORS = Counter(
    "anonyflow_batch_errors_total",
    "Batch cycle failures",
    ["error_kind"],
)

# Session metrics
ACTIVE_SESSIONS = Gauge(
    "anonyflow_active_sessions",
    "Sessions currently polling",
)

SESSION_TRANSITIONS = Counter(
    "anonyflow_session_transitions_total",
    "Session status transitions",
    ["status"],
)

SESSION_THROUGHPUT = Gauge(
    "anonyflow_session_throughput_records_per_second",
    "Throughput of the most recent batch",
    ["session_id"],
)

SESSION_LATENCY = Gauge(
    "anonyflow_session_latency_milliseconds",
    "Latency of the most recent batch",
    ["session_id"],
)

ALERTS_RAISED = Counter(
    "anonyflow_alerts_raised_total",
    "Alerts raised by the alert monitor",
    ["alert_type", "severity"],
)
