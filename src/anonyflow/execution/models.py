"""
Models for online (streaming) execution.

Configuration models are pydantic so session definitions coming from YAML
or from callers are validated on the way in. Session itself is runtime
state owned by the SessionManager and is a plain dataclass.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

SourceType = Literal["api", "database", "stream", "file"]


class SessionStatus(str, Enum):
    """Lifecycle states of a streaming session."""

    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"


class FieldDescriptor(BaseModel):
    """Schema entry for one field of the input records."""

    field_name: str = Field(..., description="Record key")
    data_type: Literal["string", "number", "date", "boolean", "object"] = Field(
        default="string", description="Declared value type"
    )
    is_sensitive: bool = Field(default=False, description="Whether the field is anonymized")
    anonymization_technique: Optional[str] = Field(
        None, description="Technique for this field; the session default when unset"
    )
    required: bool = Field(default=False, description="Whether records must carry the field")


class SourceConfiguration(BaseModel):
    """Connection settings of an input source."""

    endpoint: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    connection_string: Optional[str] = None
    table_name: Optional[str] = None
    file_path: Optional[str] = None
    format: Literal["json", "csv", "xml"] = "json"
    poll_interval: Optional[int] = Field(None, gt=0, description="Milliseconds between polls")
    batch_size: Optional[int] = Field(None, gt=0, description="Maximum records per poll")


class DataInputSource(BaseModel):
    """Where a session reads records from."""

    type: SourceType
    name: str = ""
    configuration: SourceConfiguration = Field(default_factory=SourceConfiguration)
    schema_: list[FieldDescriptor] = Field(default_factory=list, alias="schema")

    model_config = {"populate_by_name": True}

    def sensitive_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.schema_ if f.is_sensitive]


class TargetConfiguration(BaseModel):
    """Connection settings of an output target."""

    endpoint: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    connection_string: Optional[str] = None
    table_name: Optional[str] = None
    file_path: Optional[str] = None
    format: Literal["json", "csv", "xml"] = "json"


class DataOutputTarget(BaseModel):
    """Where a session writes anonymized records to."""

    type: SourceType
    name: str = ""
    configuration: TargetConfiguration = Field(default_factory=TargetConfiguration)


class AlertThresholds(BaseModel):
    """Limits that raise real-time alerts when exceeded."""

    error_rate: float = Field(default=0.1, ge=0.0, le=1.0, description="Failed cycle fraction")
    latency: float = Field(default=5000.0, gt=0, description="Batch latency in milliseconds")
    memory_usage: float = Field(default=90.0, gt=0, le=100.0, description="Process memory percent")


class SessionConfig(BaseModel):
    """Definition of a streaming anonymization session."""

    name: str = Field(default="New Session")
    description: str = Field(default="")
    technique_id: str = Field(
        default="hash-sha256", description="Technique for sensitive fields without their own"
    )
    input_source: DataInputSource
    output_target: DataOutputTarget
    created_by: str = Field(default="system")
    parameters: dict[str, Any] = Field(default_factory=dict)
    alert_thresholds: AlertThresholds = Field(default_factory=AlertThresholds)


def generate_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """A configured, stateful streaming anonymization job.

    Counters are only mutated by the session's own batch cycle and by
    lifecycle calls on the SessionManager. records_processed never
    decreases; error_count is never reset for the life of the session.
    """

    id: str
    name: str
    description: str
    technique_id: str
    input_source: DataInputSource
    output_target: DataOutputTarget
    created_by: str = "system"
    parameters: dict[str, Any] = field(default_factory=dict)
    alert_thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    status: SessionStatus = SessionStatus.STOPPED
    created_at: datetime = field(default_factory=_utcnow)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    records_processed: int = 0
    records_per_second: int = 0
    error_count: int = 0
    cycles_completed: int = 0
    last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: SessionConfig) -> "Session":
        return cls(
            id=generate_session_id(),
            name=config.name,
            description=config.description,
            technique_id=config.technique_id,
            input_source=config.input_source,
            output_target=config.output_target,
            created_by=config.created_by,
            parameters=dict(config.parameters),
            alert_thresholds=config.alert_thresholds,
        )

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.RUNNING

    @property
    def poll_interval_ms(self) -> Optional[int]:
        return self.input_source.configuration.poll_interval

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "technique_id": self.technique_id,
            "input_source": self.input_source.model_dump(by_alias=True),
            "output_target": self.output_target.model_dump(),
            "status": self.status.value,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "records_processed": self.records_processed,
            "records_per_second": self.records_per_second,
            "error_count": self.error_count,
            "created_by": self.created_by,
            "parameters": dict(self.parameters),
            "is_active": self.is_active,
            "last_error": self.last_error,
        }


@dataclass
class MetricsSample:
    """Latest processing metrics of a session, overwritten every cycle."""

    session_id: str
    throughput: float = 0.0
    latency: float = 0.0
    error_rate: float = 0.0
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)
    records_processed: int = 0
    records_per_second: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "throughput": self.throughput,
            "latency": self.latency,
            "error_rate": self.error_rate,
            "cpu_usage": self.cpu_usage,
            "memory_usage": self.memory_usage,
            "timestamp": self.timestamp.isoformat(),
            "records_processed": self.records_processed,
            "records_per_second": self.records_per_second,
            "error_count": self.error_count,
        }


class AlertType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RealTimeAlert:
    """An alert raised while a session is running."""

    session_id: str
    type: AlertType
    message: str
    severity: AlertSeverity
    id: str = field(default_factory=lambda: f"alert_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=_utcnow)
    acknowledged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "type": self.type.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "acknowledged": self.acknowledged,
        }
