"""Reversible tokenization technique."""

import secrets
import string
import uuid
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

TOKEN_FORMATS = ("alphanumeric", "numeric", "uuid")
_TOKEN_ALPHABET = string.ascii_uppercase + string.digits


class TokenizationTechnique(AnonymizationTechnique):
    """Replace values with generated tokens that can be mapped back.

    In consistent mode (the default) every distinct input receives exactly
    one token for the lifetime of this instance, and detokenize() inverts
    the mapping. Tokens issued with consistent=False are never recorded and
    cannot be detokenized.

    Example: "4532-1234-5678-9012" -> "TKN1-XQ4B-7RZ2-K9PA"
    """

    _METADATA = TechniqueMetadata(
        id="tokenization",
        name="Tokenization",
        category="Tokenization",
        description="Replaces sensitive data with unique reversible tokens",
        parameters=(
            TechniqueParameter(
                name="tokenFormat",
                kind=ParameterKind.SELECT,
                required=True,
                default="alphanumeric",
                options=TOKEN_FORMATS,
                description="Token format",
            ),
            TechniqueParameter(
                name="preserveFormat",
                kind=ParameterKind.BOOLEAN,
                default=True,
                description="Keep the separators and length of the original",
            ),
            TechniqueParameter(
                name="tokenPrefix",
                kind=ParameterKind.STRING,
                default="TKN",
                description="Prefix for alphanumeric tokens",
            ),
            TechniqueParameter(
                name="consistent",
                kind=ParameterKind.BOOLEAN,
                default=True,
                description="Reuse the same token for the same value",
            ),
        ),
        risk_level=RiskLevel.LOW,
        reversible=True,
        compliance=("PCI-DSS", "GDPR", "Ley 21.719"),
        examples=(
            ("4532-1234-5678-9012", "TKN1-XQ4B-7RZ2-K9PA"),
            ("12345678-9", "TKN2R8QW-5"),
        ),
    )

    def __init__(self) -> None:
        self._mapping: ValueMapping[str] = ValueMapping(name=self._METADATA.id)
        self._counter = SequenceCounter()

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    @property
    def mapping(self) -> ValueMapping[str]:
        return self._mapping

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        if not params["consistent"]:
            return self._generate_token(value, params)
        return self._mapping.get_or_create(
            value, lambda original: self._generate_unique_token(original, params)
        )

    def detokenize(self, token: str) -> Optional[str]:
        """Recover the original value of a token issued in consistent mode.

        Returns:
            The original value, or None if this instance never issued it.
        """
        return self._mapping.get_original(token)

    def reset(self) -> None:
        """Forget every issued token and restart the sequence."""
        self._mapping.clear()
        self._counter.reset()

    def _generate_unique_token(self, value: str, params: dict[str, Any]) -> str:
        # Called under the mapping lock. Format-preserving tokens can collide
        # on short inputs, so fall back to the plain sequential form.
        token = self._generate_token(value, params)
        while self._mapping.get_original(token) is not None:
            token = self._sequential_token(params)
        return token

    def _generate_token(self, value: str, params: dict[str, Any]) -> str:
        token_format = params["tokenFormat"]
        if token_format == "uuid":
            return str(uuid.uuid4())
        if token_format == "numeric":
            return self._numeric_token(value, params["preserveFormat"])
        return self._alphanumeric_token(value, params["preserveFormat"], params["tokenPrefix"])

    def _sequential_token(self, params: dict[str, Any]) -> str:
        token_id = self._counter.next()
        if params["tokenFormat"] == "numeric":
            return str(token_id)
        if params["tokenFormat"] == "uuid":
            return str(uuid.uuid4())
        return f"{params['tokenPrefix']}_{token_id:06d}"

    def _numeric_token(self, value: str, preserve_format: bool) -> str:
        token_number = self._counter.next()
        digit_count = sum(1 for c in value if c.isdigit())
        if not preserve_format or digit_count == 0:
            return str(token_number)

        token_digits = iter(str(token_number).zfill(digit_count))
        return "".join(next(token_digits, c) if c.isdigit() else c for c in value)

    def _alphanumeric_token(self, value: str, preserve_format: bool, prefix: str) -> str:
        token_id = self._counter.next()
        if not preserve_format:
            return f"{prefix}_{token_id:06d}"

        token_base = f"{prefix}{token_id}"
        result = []
        position = 0
        for char in value:
            if char.isalnum():
                if position < len(token_base):
                    result.append(token_base[position])
                else:
                    result.append(secrets.choice(_TOKEN_ALPHABET))
                position += 1
            else:
                result.append(char)
        return "".join(result) or f"{prefix}_{token_id:06d}"
