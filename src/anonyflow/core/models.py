"""
Technique catalog models.

Describes the parameter schema and metadata each technique publishes,
and the result envelope returned by every technique invocation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from anonyflow.errors import ErrorKind


class ParameterKind(str, Enum):
    """Supported parameter kinds."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


class RiskLevel(str, Enum):
    """Re-identification risk left by a technique."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class TechniqueParameter:
    """Schema entry for a single technique parameter.

    Attributes:
        name: Parameter key as supplied by callers.
        kind: Value kind accepted for this parameter.
        required: Whether callers are expected to supply it.
            Missing required parameters fall back to the default.
        default: Value used when the parameter is absent.
        options: Allowed values for SELECT parameters.
        description: Human readable description.
        integer: For NUMBER parameters, whether only integers are allowed.
        minimum: For NUMBER parameters, the smallest accepted value.
    """

    name: str
    kind: ParameterKind
    required: bool = False
    default: Any = None
    options: tuple[str, ...] = ()
    description: str = ""
    integer: bool = False
    minimum: Optional[float] = None

    def accepts(self, value: Any) -> bool:
        """Check a single value against this schema entry."""
        if self.kind == ParameterKind.BOOLEAN:
            return isinstance(value, bool)
        if self.kind == ParameterKind.NUMBER:
            # bool is an int subclass but never a valid number here
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if self.integer and not float(value).is_integer():
                return False
            if self.minimum is not None and value < self.minimum:
                return False
            return True
        if self.kind == ParameterKind.SELECT:
            return value in self.options
        return isinstance(value, str)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.kind.value,
            "required": self.required,
            "default_value": self.default,
            "description": self.description,
        }
        if self.options:
            data["options"] = list(self.options)
        return data


@dataclass(frozen=True)
class TechniqueMetadata:
    """Immutable catalog entry describing a technique.

    Attributes:
        id: Stable unique key used to resolve the technique.
        name: Display name.
        category: Technique family (Hashing, Masking, ...).
        description: What the technique does.
        parameters: Ordered parameter schema.
        risk_level: Residual re-identification risk.
        reversible: Whether the original value can be recovered.
        compliance: Regulations the technique is commonly applied for.
        examples: Pairs of (original, anonymized) sample values.
    """

    id: str
    name: str
    category: str
    description: str = ""
    parameters: tuple[TechniqueParameter, ...] = ()
    risk_level: RiskLevel = RiskLevel.MEDIUM
    reversible: bool = False
    compliance: tuple[str, ...] = ()
    examples: tuple[tuple[str, str], ...] = ()

    def get_parameter(self, name: str) -> Optional[TechniqueParameter]:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def defaults(self) -> dict[str, Any]:
        """Get the default value of every declared parameter."""
        return {p.name: p.default for p in self.parameters}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
            "risk_level": self.risk_level.value,
            "reversible": self.reversible,
            "compliance": list(self.compliance),
            "examples": [
                {"original": original, "anonymized": anonymized}
                for original, anonymized in self.examples
            ],
        }


@dataclass
class AnonymizationResult:
    """Outcome of one technique invocation.

    When success is False, anonymized_values is empty and error is set.
    When success is True, anonymized_values has one entry per original value.

    Attributes:
        success: Whether the technique produced output.
        original_values: Input values, always as a list.
        anonymized_values: Output values, always as a list.
        technique_id: Technique that was requested.
        parameters: Parameters as supplied by the caller.
        processing_time_ms: Elapsed time of the invocation.
        timestamp: When the invocation completed (UTC).
        error: Error message on failure.
        error_kind: Taxonomy kind of the failure.
    """

    success: bool
    original_values: list[str]
    anonymized_values: list[str]
    technique_id: str
    parameters: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def succeeded(
        cls,
        technique_id: str,
        original_values: list[str],
        anonymized_values: list[str],
        parameters: dict[str, Any],
        processing_time_ms: float,
    ) -> "AnonymizationResult":
        return cls(
            success=True,
            original_values=original_values,
            anonymized_values=anonymized_values,
            technique_id=technique_id,
            parameters=parameters,
            processing_time_ms=processing_time_ms,
        )

    @classmethod
    def failed(
        cls,
        technique_id: str,
        original_values: list[str],
        parameters: dict[str, Any],
        error: str,
        error_kind: ErrorKind,
        processing_time_ms: float = 0.0,
    ) -> "AnonymizationResult":
        return cls(
            success=False,
            original_values=original_values,
            anonymized_values=[],
            technique_id=technique_id,
            parameters=parameters,
            processing_time_ms=processing_time_ms,
            error=error,
            error_kind=error_kind,
        )

    @property
    def first(self) -> Optional[str]:
        """The first anonymized value, convenient for scalar invocations."""
        return self.anonymized_values[0] if self.anonymized_values else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "original_values": list(self.original_values),
            "anonymized_values": list(self.anonymized_values),
            "technique_id": self.technique_id,
            "parameters": dict(self.parameters),
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp.isoformat(),
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }
