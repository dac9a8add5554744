"""Prometheus metrics module for ANONYFLOW."""

from anonyflow.metrics.collectors import (
    ACTIVE_SESSIONS,
    BATCH_DURATION,
    BATCH_ERRORS,
    RECORDS_PROCESSED,
    TECHNIQUE_APPLIED,
    TECHNIQUE_DURATION,
    TECHNIQUE_FAILURES,
)

__all__ = [
    "TECHNIQUE_DURATION",
    "TECHNIQUE_APPLIED",
    "TECHNIQUE_FAILURES",
    "BATCH_DURATION",
    "RECORDS_PROCESSED",
    "BATCH_ERRORS",
    "ACTIVE_SESSIONS",
]
