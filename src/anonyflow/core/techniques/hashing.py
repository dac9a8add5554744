"""Salted digest technique."""

import hashlib
from typing import Any

from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.techniques.base import AnonymizationTechnique

HASH_ALGORITHMS = {
    "SHA256": hashlib.sha256,
    "SHA1": hashlib.sha1,
    "MD5": hashlib.md5,
}


class HashingTechnique(AnonymizationTechnique):
    """Replace values with a hex digest of the salted value.

    The digest is computed over value + salt, so the same value, salt and
    algorithm always yield the same output. With preserveLength the digest
    is truncated to the input length when it is longer.

    Example: "12345678-9" -> "ef797c8118f02dfb..."
    """

    _METADATA = TechniqueMetadata(
        id="hash-sha256",
        name="SHA-256 Hash",
        category="Hashing",
        description="Converts data into an irreversible cryptographic digest",
        parameters=(
            TechniqueParameter(
                name="salt",
                kind=ParameterKind.STRING,
                default="",
                description="Additional salt appended to each value",
            ),
            TechniqueParameter(
                name="preserveLength",
                kind=ParameterKind.BOOLEAN,
                default=False,
                description="Truncate the digest to the original length",
            ),
            TechniqueParameter(
                name="algorithm",
                kind=ParameterKind.SELECT,
                default="SHA256",
                options=tuple(HASH_ALGORITHMS),
                description="Digest algorithm",
            ),
        ),
        risk_level=RiskLevel.LOW,
        reversible=False,
        compliance=("GDPR", "Ley 19.628", "Ley 21.719"),
        examples=(
            ("juan.perez@email.com", "a665a45920422f9d417e4867efdc4fb8a04a1f3fff1fa07e998e86f7f7a27ae3"),
        ),
    )

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        hash_func = HASH_ALGORITHMS[params["algorithm"]]
        digest = hash_func(f"{value}{params['salt']}".encode()).hexdigest()
        if params["preserveLength"] and len(digest) > len(value):
            return digest[: len(value)]
        return digest
