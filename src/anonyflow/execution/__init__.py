"""Online (streaming) execution of anonymization sessions."""

from anonyflow.execution.alerts import AlertMonitor
from anonyflow.execution.connectors import (
    ConnectorFactory,
    FileInputConnector,
    FileOutputConnector,
    HttpInputConnector,
    HttpOutputConnector,
    InputConnector,
    MemoryInputConnector,
    MemoryOutputConnector,
    OutputConnector,
)
from anonyflow.execution.metrics import MetricsCollector
from anonyflow.execution.models import (
    AlertSeverity,
    AlertThresholds,
    AlertType,
    DataInputSource,
    DataOutputTarget,
    FieldDescriptor,
    MetricsSample,
    RealTimeAlert,
    Session,
    SessionConfig,
    SessionStatus,
)
from anonyflow.execution.session_manager import PollingTask, SessionManager

__all__ = [
    "AlertMonitor",
    "AlertSeverity",
    "AlertThresholds",
    "AlertType",
    "ConnectorFactory",
    "DataInputSource",
    "DataOutputTarget",
    "FieldDescriptor",
    "FileInputConnector",
    "FileOutputConnector",
    "HttpInputConnector",
    "HttpOutputConnector",
    "InputConnector",
    "MemoryInputConnector",
    "MemoryOutputConnector",
    "MetricsCollector",
    "MetricsSample",
    "OutputConnector",
    "PollingTask",
    "RealTimeAlert",
    "Session",
    "SessionConfig",
    "SessionManager",
    "SessionStatus",
]
