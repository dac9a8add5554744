"""
Synthetic data generator

Unified entry point combining the per-type generators.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from anonyflow.core.synthetic.base import BaseSyntheticGenerator
from anonyflow.core.synthetic.email_generator import EMAIL_PATTERN, EmailGenerator
from anonyflow.core.synthetic.name_generator import NameGenerator
from anonyflow.core.synthetic.phone_generator import PhoneGenerator

DATA_TYPES = ("auto", "name", "email", "phone", "generic")

_PHONE_PATTERN = re.compile(r"^\+?[\d\s().-]{7,20}$")
_NAME_PATTERN = re.compile(r"^[^\W\d_]+(?:[\s'-][^\W\d_]+){0,4}$")


@dataclass
class SyntheticValue:
    """A generated value and how it was produced."""

    original: str
    synthetic: str
    data_type: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"SyntheticValue({self.data_type}: {self.original[:3]}*** -> {self.synthetic[:3]}***)"


def detect_data_type(value: str) -> str:
    """Guess which generator fits a value."""
    stripped = value.strip()
    if EMAIL_PATTERN.match(stripped):
        return "email"
    if _PHONE_PATTERN.match(stripped) and sum(c.isdigit() for c in stripped) >= 7:
        return "phone"
    if _NAME_PATTERN.match(stripped) and any(c.isupper() for c in stripped[:1]):
        return "name"
    return "generic"


class SyntheticDataGenerator(BaseSyntheticGenerator):
    """Synthetic data generator.

    Example:
        >>> gen = SyntheticDataGenerator(seed=7)
        >>> gen.generate("juan.perez@email.com").data_type
        'email'
    """

    def __init__(self, *, seed: int = 42):
        super().__init__(seed=seed)
        self.name_generator = NameGenerator(seed=seed)
        self.email_generator = EmailGenerator(seed=seed)
        self.phone_generator = PhoneGenerator(seed=seed)

    def generate(self, original: str, data_type: Optional[str] = None) -> SyntheticValue:
        """Generate a synthetic replacement.

        Args:
            original: The original value.
            data_type: One of DATA_TYPES; "auto" or None detects it.

        Returns:
            SyntheticValue with the replacement.
        """
        if not data_type or data_type == "auto":
            data_type = detect_data_type(original)

        if data_type == "name":
            name = self.name_generator.generate(original)
            return SyntheticValue(
                original, name.synthetic, "name",
                {"given_name": name.given_name, "surnames": list(name.surnames)},
            )
        if data_type == "email":
            email = self.email_generator.generate(original)
            return SyntheticValue(original, email.synthetic, "email", {"domain": email.domain})
        if data_type == "phone":
            phone = self.phone_generator.generate(original)
            return SyntheticValue(
                original, phone.synthetic, "phone", {"country_code": phone.country_code}
            )
        return SyntheticValue(original, self._generate_generic(original), "generic")

    def _generate_generic(self, original: str) -> str:
        """Replace letters with letters and digits with digits, same case."""
        hash_val = self._hash_string(f"generic:{original}")
        result = []
        for index, char in enumerate(original):
            if hash_val < 36:
                hash_val = self._hash_string(f"generic:{original}:{index}")
            if char.isdigit():
                result.append(str(hash_val % 10))
                hash_val //= 10
            elif char.isascii() and char.isalpha():
                letter = chr(ord("a") + hash_val % 26)
                result.append(letter.upper() if char.isupper() else letter)
                hash_val //= 26
            else:
                result.append(char)
        return "".join(result)
