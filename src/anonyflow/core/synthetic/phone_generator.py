"""
Phone number generator

Generates phone numbers with the same layout as the original: separators,
a leading "+" country code and the first local digit are kept, every other
digit is replaced.
"""

import re
from dataclasses import dataclass

from anonyflow.core.synthetic.base import BaseSyntheticGenerator

_COUNTRY_CODE_PATTERN = re.compile(r"^\+\d{1,3}")


@dataclass
class PhoneGenerationResult:
    """Result of a phone generation."""

    original: str
    synthetic: str
    country_code: str


class PhoneGenerator(BaseSyntheticGenerator):
    """Phone number generator.

    Example:
        >>> gen = PhoneGenerator()
        >>> gen.generate("+56 9 8765 4321").synthetic.startswith("+56 9 ")
        True
    """

    def __init__(self, *, preserve_prefix: bool = True, seed: int = 42):
        """Initialize the generator.

        Args:
            preserve_prefix: Keep the country code and first local digit
                (mobile/landline indicator).
            seed: Seed for deterministic generation.
        """
        super().__init__(seed=seed)
        self.preserve_prefix = preserve_prefix

    def generate(self, original: str) -> PhoneGenerationResult:
        country_code = ""
        body = original
        if self.preserve_prefix:
            match = _COUNTRY_CODE_PATTERN.match(original)
            if match:
                country_code = match.group(0)
                body = original[len(country_code):]

        hash_val = self._hash_string(f"phone:{original}")
        digits = []
        kept_first = not self.preserve_prefix
        for char in body:
            if char.isdigit():
                if not kept_first:
                    digits.append(char)
                    kept_first = True
                    continue
                digits.append(str(hash_val % 10))
                hash_val //= 10
            else:
                digits.append(char)

        synthetic = country_code + "".join(digits)
        return PhoneGenerationResult(
            original=original,
            synthetic=synthetic,
            country_code=country_code,
        )
