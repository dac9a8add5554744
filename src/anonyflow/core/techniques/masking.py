"""Format-preserving masking technique."""

import re
from typing import Any, Optional

from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.techniques.base import AnonymizationTechnique

MASK_TYPES = ("partial", "full", "email", "phone", "credit-card")

_EMAIL_PATTERN = re.compile(r"^([^@]+)@(.+)$")
_COUNTRY_CODE_PATTERN = re.compile(r"^\+(\d{1,3})")
_AREA_CODE_PATTERN = re.compile(r"\((\d+)\)")
_DIGIT_RUN_PATTERN = re.compile(r"\d{4,}")
_ALNUM_PATTERN = re.compile(r"[A-Za-z0-9]")


class MaskingTechnique(AnonymizationTechnique):
    """Hide part or all of a value while keeping its shape.

    Mask types:
        partial: "12345678-9" -> "12******-9"
        full: "AB-12" -> "**-**" (or "*****" without preserveFormat)
        email: "juan.perez@email.com" -> "ju********@em***.com"
        phone: "+56 (2) 2345 6789" -> "+56 (*) **** ****"
        credit-card: "4532-1234-5678-9012" -> "****-****-****-9012"
    """

    _METADATA = TechniqueMetadata(
        id="masking-partial",
        name="Masking",
        category="Masking",
        description="Hides data partially or completely while keeping its format",
        parameters=(
            TechniqueParameter(
                name="maskChar",
                kind=ParameterKind.STRING,
                default="*",
                description="Character used for masking",
            ),
            TechniqueParameter(
                name="visibleStart",
                kind=ParameterKind.NUMBER,
                default=2,
                integer=True,
                minimum=0,
                description="Visible characters at the start",
            ),
            TechniqueParameter(
                name="visibleEnd",
                kind=ParameterKind.NUMBER,
                default=2,
                integer=True,
                minimum=0,
                description="Visible characters at the end",
            ),
            TechniqueParameter(
                name="maskType",
                kind=ParameterKind.SELECT,
                default="partial",
                options=MASK_TYPES,
                description="Masking mode",
            ),
            TechniqueParameter(
                name="preserveFormat",
                kind=ParameterKind.BOOLEAN,
                default=True,
                description="Full masking keeps separators and punctuation",
            ),
            TechniqueParameter(
                name="showLast",
                kind=ParameterKind.NUMBER,
                default=4,
                integer=True,
                minimum=0,
                description="Digits left visible on credit cards",
            ),
            TechniqueParameter(
                name="preserveCountryCode",
                kind=ParameterKind.BOOLEAN,
                default=True,
                description="Keep the phone country code visible",
            ),
            TechniqueParameter(
                name="preserveAreaCode",
                kind=ParameterKind.BOOLEAN,
                default=False,
                description="Keep a parenthesised phone area code visible",
            ),
        ),
        risk_level=RiskLevel.MEDIUM,
        reversible=False,
        compliance=("GDPR", "Ley 19.628"),
        examples=(
            ("juan.perez@email.com", "ju********@em***.com"),
            ("12345678-9", "12******-9"),
        ),
    )

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    def _validate_resolved(self, params: dict[str, Any]) -> Optional[str]:
        if len(params["maskChar"]) != 1:
            return "maskChar must be a single character"
        return None

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        if not value:
            return value

        mask_char = params["maskChar"]
        mask_type = params["maskType"]
        visible_start = int(params["visibleStart"])
        visible_end = int(params["visibleEnd"])

        if mask_type == "full":
            if params["preserveFormat"]:
                return _ALNUM_PATTERN.sub(lambda _: mask_char, value)
            return mask_char * len(value)
        if mask_type == "email":
            match = _EMAIL_PATTERN.match(value)
            if match:
                local_part, domain = match.groups()
                return (
                    f"{self._mask_email_local(local_part, mask_char, visible_start)}"
                    f"@{self._mask_email_domain(domain, mask_char)}"
                )
        elif mask_type == "phone":
            return self._mask_phone(value, mask_char, params)
        elif mask_type == "credit-card":
            return self._mask_credit_card(value, mask_char, int(params["showLast"]))

        return self._mask_partial(value, mask_char, visible_start, visible_end)

    def _mask_partial(self, value: str, mask_char: str, visible_start: int, visible_end: int) -> str:
        """Keep the leading and trailing characters, mask the interior."""
        if len(value) <= visible_start + visible_end:
            return mask_char * len(value)
        end = value[len(value) - visible_end:] if visible_end else ""
        middle = mask_char * (len(value) - visible_start - visible_end)
        return f"{value[:visible_start]}{middle}{end}"

    def _mask_email_local(self, local_part: str, mask_char: str, visible_start: int) -> str:
        if len(local_part) <= visible_start:
            return mask_char * len(local_part)
        return local_part[:visible_start] + mask_char * (len(local_part) - visible_start)

    def _mask_email_domain(self, domain: str, mask_char: str) -> str:
        """Mask every label except the TLD, keeping two leading characters."""
        labels = domain.split(".")
        if len(labels) == 1:
            return domain
        masked = [
            label[:2] + mask_char * (len(label) - 2) if len(label) > 2 else label
            for label in labels[:-1]
        ]
        masked.append(labels[-1])
        return ".".join(masked)

    def _mask_phone(self, value: str, mask_char: str, params: dict[str, Any]) -> str:
        """Mask long digit runs, optionally the country and area codes."""

        def mask_digits(match: re.Match) -> str:
            return "".join(mask_char if c.isdigit() else c for c in match.group(0))

        masked = value
        if not params["preserveCountryCode"]:
            masked = _COUNTRY_CODE_PATTERN.sub(mask_digits, masked, count=1)
        if not params["preserveAreaCode"]:
            masked = _AREA_CODE_PATTERN.sub(mask_digits, masked, count=1)
        return _DIGIT_RUN_PATTERN.sub(lambda m: mask_char * len(m.group(0)), masked)

    def _mask_credit_card(self, value: str, mask_char: str, show_last: int) -> str:
        """Mask all but the last digits, keeping separators in place."""
        digits = [c for c in value if c.isdigit()]
        if len(digits) < show_last:
            return mask_char * len(value)

        visible_from = len(digits) - show_last
        result = []
        digit_index = 0
        for char in value:
            if char.isdigit():
                result.append(char if digit_index >= visible_from else mask_char)
                digit_index += 1
            else:
                result.append(char)
        return "".join(result)
