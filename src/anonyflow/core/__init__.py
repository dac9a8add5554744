"""Core anonymization engine for ANONYFLOW."""

from anonyflow.core.models import (
    AnonymizationResult,
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.mapping import ValueMapping
from anonyflow.core.registry import TechniqueRegistry, create_default_registry

__all__ = [
    "AnonymizationResult",
    "ParameterKind",
    "RiskLevel",
    "TechniqueMetadata",
    "TechniqueParameter",
    "TechniqueRegistry",
    "ValueMapping",
    "create_default_registry",
]
