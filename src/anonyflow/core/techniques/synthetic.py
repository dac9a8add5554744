"""Synthetic replacement technique."""

import threading
from typing import Any

from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.synthetic import DATA_TYPES, SyntheticDataGenerator
from anonyflow.core.techniques.base import AnonymizationTechnique


class SyntheticDataTechnique(AnonymizationTechnique):
    """Replace values with realistic fake data.

    Replacements are derived from a keyed hash of the original under
    `seed`, so they are repeatable without keeping any mapping. Nothing is
    recorded, which makes the technique irreversible.

    Example: "Juan Pérez" -> "Martina Soto"
    """

    _METADATA = TechniqueMetadata(
        id="synthetic-data",
        name="Synthetic Data",
        category="Synthetic Data",
        description="Replaces values with realistic generated data",
        parameters=(
            TechniqueParameter(
                name="dataType",
                kind=ParameterKind.SELECT,
                default="auto",
                options=DATA_TYPES,
                description="Kind of value to generate (auto detects it)",
            ),
            TechniqueParameter(
                name="seed",
                kind=ParameterKind.NUMBER,
                default=42,
                integer=True,
                minimum=0,
                description="Seed for repeatable generation",
            ),
        ),
        risk_level=RiskLevel.LOW,
        reversible=False,
        compliance=("GDPR", "HIPAA", "Ley 19.628"),
        examples=(
            ("Juan Pérez", "Martina Soto"),
            ("+56 9 8765 4321", "+56 9 1947 0362"),
        ),
    )

    def __init__(self) -> None:
        self._generators: dict[int, SyntheticDataGenerator] = {}
        self._lock = threading.Lock()

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    def _get_generator(self, seed: int) -> SyntheticDataGenerator:
        """Get or create the generator for a seed."""
        with self._lock:
            if seed not in self._generators:
                self._generators[seed] = SyntheticDataGenerator(seed=seed)
            return self._generators[seed]

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        if not value:
            return value
        generator = self._get_generator(int(params["seed"]))
        return generator.generate(value, params["dataType"]).synthetic
