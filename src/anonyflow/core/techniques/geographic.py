"""Geographic generalization technique."""

import re
from typing import Any

from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.techniques.base import AnonymizationTechnique

_COORDINATES_PATTERN = re.compile(r"^\s*(-?\d{1,3}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")
_POSTAL_CODE_PATTERN = re.compile(r"^\d{4,10}(?:-\d{3,4})?$")
_STREET_NUMBER_PATTERN = re.compile(r"(?:#|N[°º]\s*)?\b\d+[A-Za-z]?\b")
_WHITESPACE_PATTERN = re.compile(r"\s{2,}")

REDACTED_MARKER = "[REDACTED]"


class GeographicMaskingTechnique(AnonymizationTechnique):
    """Reduce the precision of location data.

    Three kinds of values are recognized:
        coordinates "lat,lon": rounded to `precision` decimal places
            ("-33.44889,-70.66926" -> "-33.45,-70.67")
        postal codes: all but the first `zipDigits` digits zeroed
            ("8320000" -> "8320000", "94107" -> "94100")
        free-text addresses: only the last `keepComponents` comma-separated
            parts are kept, with street numbers removed
            ("Av. Providencia 1234, Providencia, Santiago" -> "Providencia, Santiago")

    Deterministic and irreversible.
    """

    _METADATA = TechniqueMetadata(
        id="geographic-masking",
        name="Geographic Masking",
        category="Location Anonymization",
        description="Generalizes coordinates, postal codes and addresses",
        parameters=(
            TechniqueParameter(
                name="precision",
                kind=ParameterKind.NUMBER,
                default=2,
                integer=True,
                minimum=0,
                description="Decimal places kept on coordinates",
            ),
            TechniqueParameter(
                name="zipDigits",
                kind=ParameterKind.NUMBER,
                default=3,
                integer=True,
                minimum=0,
                description="Leading postal code digits kept",
            ),
            TechniqueParameter(
                name="keepComponents",
                kind=ParameterKind.NUMBER,
                default=2,
                integer=True,
                minimum=1,
                description="Trailing address components kept",
            ),
        ),
        risk_level=RiskLevel.MEDIUM,
        reversible=False,
        compliance=("GDPR", "HIPAA"),
        examples=(
            ("-33.44889,-70.66926", "-33.45,-70.67"),
            ("Av. Providencia 1234, Providencia, Santiago", "Providencia, Santiago"),
        ),
    )

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        if not value.strip():
            return value

        match = _COORDINATES_PATTERN.match(value)
        if match:
            precision = int(params["precision"])
            latitude, longitude = (float(group) for group in match.groups())
            return f"{latitude:.{precision}f},{longitude:.{precision}f}"

        if _POSTAL_CODE_PATTERN.match(value.strip()):
            return self._mask_postal_code(value.strip(), int(params["zipDigits"]))

        return self._generalize_address(value, int(params["keepComponents"]))

    @staticmethod
    def _mask_postal_code(value: str, keep: int) -> str:
        result = []
        seen = 0
        for char in value:
            if char.isdigit():
                result.append(char if seen < keep else "0")
                seen += 1
            else:
                result.append(char)
        return "".join(result)

    @staticmethod
    def _generalize_address(value: str, keep: int) -> str:
        components = [part.strip() for part in value.split(",") if part.strip()]
        kept = []
        for component in components[-keep:]:
            cleaned = _STREET_NUMBER_PATTERN.sub("", component)
            cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned).strip()
            if cleaned:
                kept.append(cleaned)
        return ", ".join(kept) if kept else REDACTED_MARKER
