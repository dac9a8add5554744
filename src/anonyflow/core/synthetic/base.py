"""
Synthetic generator base class.

Provides the keyed hash every generator derives its choices from, so the
same input and seed always produce the same synthetic value.
"""

import hashlib
from abc import ABC


class BaseSyntheticGenerator(ABC):
    """Base class for synthetic value generators.

    Attributes:
        seed: Seed mixed into every hash.
    """

    def __init__(self, *, seed: int = 42):
        self.seed = seed

    def _hash_string(self, s: str) -> int:
        """Compute a stable non-negative hash of a string under the seed."""
        combined = f"{self.seed}:{s}"
        return int(hashlib.sha256(combined.encode()).hexdigest(), 16)

    def _pick(self, options: list[str], original: str, salt: str) -> str:
        """Deterministically choose one option for an input."""
        return options[self._hash_string(f"{salt}:{original}") % len(options)]
