"""
Base class for anonymization techniques.

A technique is a named, parameterized transformation over one value or a
sequence of values. Subclasses publish their parameter schema through
TechniqueMetadata and implement the single-value transformation; the base
class takes care of parameter validation, default resolution and keeping
the scalar/sequence shape of the input.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Union

from anonyflow.core.models import TechniqueMetadata
from anonyflow.errors import InvalidParameters

Data = Union[str, Sequence[str]]


class AnonymizationTechnique(ABC):
    """Base class for anonymization techniques."""

    @property
    @abstractmethod
    def metadata(self) -> TechniqueMetadata:
        """Get the catalog entry for this technique."""

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def reversible(self) -> bool:
        """Check if values produced by this technique can be recovered."""
        return self.metadata.reversible

    def describe(self) -> TechniqueMetadata:
        return self.metadata

    def resolve_parameters(self, parameters: Optional[dict[str, Any]]) -> dict[str, Any]:
        """Merge caller parameters over the declared defaults.

        Unknown keys are dropped; None values fall back to the default.
        """
        resolved = self.metadata.defaults()
        for name, value in (parameters or {}).items():
            if name in resolved and value is not None:
                resolved[name] = value
        return resolved

    def validate_parameters(self, parameters: Optional[dict[str, Any]]) -> bool:
        """Check parameters against the schema and technique rules.

        Returns:
            True if the parameters are acceptable. Never raises.
        """
        return self._check_parameters(parameters) is None

    def _check_parameters(self, parameters: Optional[dict[str, Any]]) -> Optional[str]:
        """Return a description of the first invalid parameter, or None."""
        for name, value in (parameters or {}).items():
            schema = self.metadata.get_parameter(name)
            if schema is None or value is None:
                continue
            if not schema.accepts(value):
                return f"{name}={value!r} is not a valid {schema.kind.value}"
        return self._validate_resolved(self.resolve_parameters(parameters))

    def _validate_resolved(self, params: dict[str, Any]) -> Optional[str]:
        """Hook for cross-parameter rules. Returns an error message or None."""
        return None

    def anonymize(self, data: Data, parameters: Optional[dict[str, Any]] = None) -> Union[str, list[str]]:
        """Anonymize a value or a sequence of values.

        Args:
            data: A single value or a sequence of values.
            parameters: Technique parameters; unknown keys are ignored.

        Returns:
            A single value when given a single value, otherwise a list of
            the same length as the input.

        Raises:
            InvalidParameters: If the parameters are rejected.
        """
        problem = self._check_parameters(parameters)
        if problem is not None:
            raise InvalidParameters(self.id, problem)

        params = self.resolve_parameters(parameters)
        if isinstance(data, (list, tuple)):
            return [self.anonymize_value(as_text(value), params) for value in data]
        return self.anonymize_value(as_text(data), params)

    @abstractmethod
    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        """Anonymize a single value with already-resolved parameters."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


def as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)
