"""
Real-time alerts for streaming sessions.

The AlertMonitor compares every metrics sample with the session's
AlertThresholds. Latency and memory breaches raise warnings, an error rate
breach raises an error, and a session forced into the error state raises a
critical error alert.
"""

import threading
from typing import Optional

from anonyflow.execution.models import (
    AlertSeverity,
    AlertThresholds,
    AlertType,
    MetricsSample,
    RealTimeAlert,
    Session,
)
from anonyflow.logging.setup import get_logger
from anonyflow.metrics.collectors import ALERTS_RAISED

logger = get_logger(__name__)


class AlertMonitor:
    """Raises and stores alerts for sessions.

    Args:
        max_alerts: Oldest alerts are dropped once this many are stored.
    """

    def __init__(self, max_alerts: int = 1000) -> None:
        self.max_alerts = max_alerts
        self._alerts: list[RealTimeAlert] = []
        self._lock = threading.Lock()

    def evaluate(
        self,
        sample: MetricsSample,
        thresholds: Optional[AlertThresholds] = None,
    ) -> list[RealTimeAlert]:
        """Check a sample against thresholds and raise alerts for breaches.

        Returns:
            The alerts raised by this evaluation.
        """
        thresholds = thresholds or AlertThresholds()
        raised = []

        error_alert = self.check_error_rate(sample, thresholds)
        if error_alert is not None:
            raised.append(error_alert)
        if sample.latency > thresholds.latency:
            raised.append(
                self.raise_alert(
                    sample.session_id,
                    AlertType.WARNING,
                    AlertSeverity.MEDIUM,
                    f"Batch latency {sample.latency:.0f} ms exceeds {thresholds.latency:.0f} ms",
                )
            )
        if sample.memory_usage > thresholds.memory_usage:
            raised.append(
                self.raise_alert(
                    sample.session_id,
                    AlertType.WARNING,
                    AlertSeverity.MEDIUM,
                    f"Memory usage {sample.memory_usage:.1f}% exceeds {thresholds.memory_usage:.1f}%",
                )
            )
        return raised

    def check_error_rate(
        self,
        sample: MetricsSample,
        thresholds: Optional[AlertThresholds] = None,
    ) -> Optional[RealTimeAlert]:
        """Raise an error alert if the sample's error rate is over the limit."""
        thresholds = thresholds or AlertThresholds()
        if sample.error_rate <= thresholds.error_rate:
            return None
        return self.raise_alert(
            sample.session_id,
            AlertType.ERROR,
            AlertSeverity.HIGH,
            f"Error rate {sample.error_rate:.1%} exceeds {thresholds.error_rate:.1%}",
        )

    def session_failed(self, session: Session) -> RealTimeAlert:
        """Raise the critical alert for a session that entered the error state."""
        message = f"Session '{session.name}' stopped after {session.error_count} errors"
        if session.last_error:
            message = f"{message}: {session.last_error}"
        return self.raise_alert(session.id, AlertType.ERROR, AlertSeverity.CRITICAL, message)

    def raise_alert(
        self,
        session_id: str,
        alert_type: AlertType,
        severity: AlertSeverity,
        message: str,
    ) -> RealTimeAlert:
        alert = RealTimeAlert(
            session_id=session_id,
            type=alert_type,
            message=message,
            severity=severity,
        )
        with self._lock:
            self._alerts.append(alert)
            if len(self._alerts) > self.max_alerts:
                del self._alerts[: len(self._alerts) - self.max_alerts]

        ALERTS_RAISED.labels(alert_type=alert_type.value, severity=severity.value).inc()
        logger.warning(
            message,
            extra={
                "event": "alert_raised",
                "alert_id": alert.id,
                "alert_type": alert_type.value,
                "severity": severity.value,
            },
        )
        return alert

    def list(
        self,
        session_id: Optional[str] = None,
        include_acknowledged: bool = True,
    ) -> list[RealTimeAlert]:
        """Get stored alerts, oldest first."""
        with self._lock:
            return [
                alert
                for alert in self._alerts
                if (session_id is None or alert.session_id == session_id)
                and (include_acknowledged or not alert.acknowledged)
            ]

    def acknowledge(self, alert_id: str) -> bool:
        """Mark an alert as acknowledged.

        Returns:
            False if no alert has that id.
        """
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    alert.acknowledged = True
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._alerts.clear()
