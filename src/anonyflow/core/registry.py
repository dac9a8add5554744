"""
Technique Registry

Maps technique ids to technique instances and runs invocations, turning
every technique-level failure into a failed AnonymizationResult.

The registry holds one instance per id, so stateful techniques
(tokenization, pseudonymization, date shifting) share their consistent
mappings across every session that uses them. Register techniques before
the registry is handed to concurrent callers; after that it is read-only.

Example:
    >>> registry = create_default_registry()
    >>> result = registry.apply("hash-sha256", "12345678-9", {"salt": "s"})
    >>> result.success
    True
"""

import time
from typing import Any, Iterator, Optional

from anonyflow.core.models import AnonymizationResult, TechniqueMetadata
from anonyflow.core.techniques import BUILTIN_TECHNIQUES, AnonymizationTechnique
from anonyflow.core.techniques.base import Data, as_text
from anonyflow.errors import AnonyflowError, ErrorKind
from anonyflow.logging.setup import get_logger
from anonyflow.metrics.collectors import (
    TECHNIQUE_APPLIED,
    TECHNIQUE_DURATION,
    TECHNIQUE_FAILURES,
)

logger = get_logger(__name__)


class TechniqueRegistry:
    """Catalog of anonymization techniques keyed by id."""

    def __init__(self) -> None:
        self._techniques: dict[str, AnonymizationTechnique] = {}

    def register(self, technique_id: str, technique: AnonymizationTechnique) -> None:
        """Add or replace the technique bound to an id."""
        if technique_id in self._techniques:
            logger.info(
                "Replacing technique %s",
                technique_id,
                extra={"event": "technique_replaced", "technique_id": technique_id},
            )
        self._techniques[technique_id] = technique

    def get(self, technique_id: str) -> Optional[AnonymizationTechnique]:
        """Get the technique instance bound to an id."""
        return self._techniques.get(technique_id)

    def apply(
        self,
        technique_id: str,
        data: Data,
        parameters: Optional[dict[str, Any]] = None,
    ) -> AnonymizationResult:
        """Run a technique over one value or a sequence of values.

        Never raises for technique problems: an unknown id, rejected
        parameters or an exception inside the technique all produce a
        failed result carrying the matching error_kind.

        Args:
            technique_id: Id of a registered technique.
            data: A single value or a sequence of values.
            parameters: Technique parameters.

        Returns:
            AnonymizationResult describing the outcome.
        """
        parameters = dict(parameters or {})
        if isinstance(data, (list, tuple)):
            original_values = [as_text(value) for value in data]
        else:
            original_values = [as_text(data)]
        start = time.perf_counter()

        technique = self._techniques.get(technique_id)
        if technique is None:
            return self._failure(
                technique_id,
                original_values,
                parameters,
                f"Technique not found: {technique_id}",
                ErrorKind.TECHNIQUE_NOT_FOUND,
                start,
            )

        try:
            output = technique.anonymize(data, parameters)
        except AnonyflowError as e:
            return self._failure(
                technique_id, original_values, parameters, e.message, e.kind, start
            )
        except Exception as e:
            logger.warning(
                "Technique %s raised during anonymize: %s",
                technique_id,
                e,
                extra={"event": "technique_error", "technique_id": technique_id},
            )
            return self._failure(
                technique_id,
                original_values,
                parameters,
                str(e) or type(e).__name__,
                ErrorKind.TRANSFORM_FAILURE,
                start,
            )

        elapsed = time.perf_counter() - start
        TECHNIQUE_DURATION.labels(technique_id=technique_id).observe(elapsed)
        TECHNIQUE_APPLIED.labels(technique_id=technique_id, outcome="success").inc()
        return AnonymizationResult.succeeded(
            technique_id=technique_id,
            original_values=original_values,
            anonymized_values=[output] if isinstance(output, str) else list(output),
            parameters=parameters,
            processing_time_ms=elapsed * 1000,
        )

    def validate_parameters(self, technique_id: str, parameters: Optional[dict[str, Any]]) -> bool:
        """Check parameters with the technique's own validator.

        Returns:
            False for unknown ids, otherwise the technique's verdict.
        """
        technique = self._techniques.get(technique_id)
        if technique is None:
            return False
        return technique.validate_parameters(parameters)

    def describe(self, technique_id: str) -> Optional[TechniqueMetadata]:
        technique = self._techniques.get(technique_id)
        return technique.describe() if technique else None

    def list_all(self) -> list[TechniqueMetadata]:
        """Get metadata of every registered technique in registration order."""
        return [technique.describe() for technique in self._techniques.values()]

    def ids(self) -> list[str]:
        return list(self._techniques)

    def _failure(
        self,
        technique_id: str,
        original_values: list[str],
        parameters: dict[str, Any],
        error: str,
        error_kind: ErrorKind,
        start: float,
    ) -> AnonymizationResult:
        elapsed = time.perf_counter() - start
        TECHNIQUE_APPLIED.labels(technique_id=technique_id, outcome="failure").inc()
        TECHNIQUE_FAILURES.labels(technique_id=technique_id, error_kind=error_kind.value).inc()
        return AnonymizationResult.failed(
            technique_id=technique_id,
            original_values=original_values,
            parameters=parameters,
            error=error,
            error_kind=error_kind,
            processing_time_ms=elapsed * 1000,
        )

    def __contains__(self, technique_id: str) -> bool:
        return technique_id in self._techniques

    def __len__(self) -> int:
        return len(self._techniques)

    def __iter__(self) -> Iterator[str]:
        return iter(self._techniques)

    def __repr__(self) -> str:
        return f"TechniqueRegistry({', '.join(self._techniques)})"


def create_default_registry() -> TechniqueRegistry:
    """Create a registry with every built-in technique registered."""
    registry = TechniqueRegistry()
    for technique_cls in BUILTIN_TECHNIQUES:
        technique = technique_cls()
        registry.register(technique.id, technique)
    return registry
