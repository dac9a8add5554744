"""Pseudonymization technique."""

import hashlib
import hmac
from typing import Any, Optional

from anonyflow.core.counter import SequenceCounter
from anonyflow.core.mapping import ValueMapping
from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.techniques.base import AnonymizationTechnique

PSEUDONYM_METHODS = ("sequential", "keyed-hash")


class PseudonymizationTechnique(AnonymizationTechnique):
    """Replace identifiers with stable pseudonyms.

    sequential: each distinct value receives the next "<prefix>-<n>"
        pseudonym. The mapping is kept by this instance, so the holder can
        re-identify values with reidentify().
    keyed-hash: the pseudonym is an HMAC-SHA256 of the value under
        secretKey. Deterministic for a given key and not recorded.

    The first pseudonym issued for a value is kept for the life of the
    instance, even if a later call uses another prefix.

    Example: "Juan Pérez" -> "PSN-00001"
    """

    _METADATA = TechniqueMetadata(
        id="pseudonymization",
        name="Pseudonymization",
        category="Pseudonymization",
        description=(
            "Replaces identifiers with stable pseudonyms. Sequential pseudonyms are "
            "reversible by the mapping holder; keyed-hash pseudonyms are one-way"
        ),
        parameters=(
            TechniqueParameter(
                name="method",
                kind=ParameterKind.SELECT,
                default="sequential",
                options=PSEUDONYM_METHODS,
                description="How pseudonyms are derived; only sequential keeps a mapping",
            ),
            TechniqueParameter(
                name="prefix",
                kind=ParameterKind.STRING,
                default="PSN",
                description="Prefix of generated pseudonyms",
            ),
            TechniqueParameter(
                name="secretKey",
                kind=ParameterKind.STRING,
                default="",
                description="HMAC key for keyed-hash pseudonyms",
            ),
            TechniqueParameter(
                name="hashLength",
                kind=ParameterKind.NUMBER,
                default=12,
                integer=True,
                minimum=4,
                description="Hex characters kept from keyed-hash digests",
            ),
        ),
        risk_level=RiskLevel.MEDIUM,
        reversible=True,
        compliance=("GDPR", "HIPAA", "Ley 21.719"),
        examples=(
            ("Juan Pérez", "PSN-00001"),
            ("12345678-9", "PSN-00002"),
        ),
    )

    def __init__(self) -> None:
        self._mapping: ValueMapping[str] = ValueMapping(name=self._METADATA.id)
        self._counter = SequenceCounter()

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    def _validate_resolved(self, params: dict[str, Any]) -> Optional[str]:
        if params["method"] == "keyed-hash" and not params["secretKey"]:
            return "keyed-hash pseudonyms require a secretKey"
        if int(params["hashLength"]) > 64:
            return "hashLength cannot exceed 64"
        return None

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        prefix = params["prefix"]
        if params["method"] == "keyed-hash":
            digest = hmac.new(
                params["secretKey"].encode(), value.encode(), hashlib.sha256
            ).hexdigest()
            return f"{prefix}-{digest[: int(params['hashLength'])]}"

        return self._mapping.get_or_create(
            value, lambda _: f"{prefix}-{self._counter.next():05d}"
        )

    def reidentify(self, pseudonym: str) -> Optional[str]:
        """Recover the original value of a sequential pseudonym.

        Returns:
            The original value, or None if this instance never issued it.
        """
        return self._mapping.get_original(pseudonym)

    def reset(self) -> None:
        """Forget every issued pseudonym and restart the sequence."""
        self._mapping.clear()
        self._counter.reset()
