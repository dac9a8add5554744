"""
Value Mapping Manager

Manages bidirectional mappings between original values and the values a
stateful technique generated for them (tokens, pseudonyms, date shifts).
Designed for thread-safe operation and easy serialization.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar
import threading
import json

V = TypeVar("V")


@dataclass
class MappingEntry(Generic[V]):
    """A single mapping entry."""

    original_value: str
    generated_value: V
    created_at: datetime = field(default_factory=datetime.now)


class ValueMapping(Generic[V]):
    """Bidirectional mapping manager for consistent-mode techniques.

    This class maintains mappings between original values and their
    generated representations, supporting lookup in both directions.
    The mapping is unbounded: entries live as long as the owning
    technique instance unless clear() is called.

    Thread Safety:
        All operations take a re-entrant lock. get_or_create() runs the
        generator under the lock, so two concurrent callers for the same
        original value always observe the same generated value.

    Example:
        >>> mapping = ValueMapping(name="tokenization")
        >>> mapping.add("juan.perez@email.com", "TKN_000001")
        >>> mapping.get_original("TKN_000001")
        'juan.perez@email.com'
        >>> mapping.get_generated("juan.perez@email.com")
        'TKN_000001'
    """

    def __init__(self, name: Optional[str] = None, bidirectional: bool = True) -> None:
        """Initialize the mapping manager.

        Args:
            name: Optional name of the owning technique, for diagnostics.
            bidirectional: Whether to index generated values back to originals.
                Disable it when generated values are not unique (date shifts).
        """
        self.name = name
        self.bidirectional = bidirectional
        self._lock = threading.RLock()

        # Forward mapping: {original_value: generated_value}
        self._forward: dict[str, V] = {}

        # Reverse mapping: {generated_value: original_value}
        self._reverse: dict[V, str] = {}

        self._entries: list[MappingEntry[V]] = []

    def add(self, original_value: str, generated_value: V) -> None:
        """Add a new mapping entry.

        Args:
            original_value: The original value.
            generated_value: The value generated for it.
        """
        with self._lock:
            self._forward[original_value] = generated_value
            if self.bidirectional:
                self._reverse[generated_value] = original_value
            self._entries.append(
                MappingEntry(
                    original_value=original_value,
                    generated_value=generated_value,
                )
            )

    def get_or_create(self, original_value: str, factory: Callable[[str], V]) -> V:
        """Return the existing generated value, or create and record one.

        Args:
            original_value: The original value.
            factory: Called with the original value when no mapping exists.

        Returns:
            The generated value bound to original_value.
        """
        with self._lock:
            if original_value in self._forward:
                return self._forward[original_value]
            generated = factory(original_value)
            self.add(original_value, generated)
            return generated

    def get_generated(self, original_value: str) -> Optional[V]:
        """Get the generated value for an original value.

        Returns:
            The generated value, or None if not found.
        """
        with self._lock:
            return self._forward.get(original_value)

    def get_original(self, generated_value: V) -> Optional[str]:
        """Get the original value for a generated value.

        Returns:
            The original value, or None if not found.
        """
        with self._lock:
            return self._reverse.get(generated_value)

    def entries(self) -> list[MappingEntry[V]]:
        """Get a snapshot of all entries in insertion order."""
        with self._lock:
            return list(self._entries)

    def to_dict(self) -> dict:
        """Serialize mapping to dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        with self._lock:
            return {
                "name": self.name,
                "bidirectional": self.bidirectional,
                "mappings": dict(self._forward),
            }

    @classmethod
    def from_dict(cls, data: dict) -> "ValueMapping":
        """Deserialize mapping from dictionary.

        Args:
            data: Dictionary from to_dict().

        Returns:
            Reconstructed ValueMapping instance.
        """
        mapping = cls(name=data.get("name"), bidirectional=data.get("bidirectional", True))
        for original, generated in data.get("mappings", {}).items():
            mapping.add(original, generated)
        return mapping

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "ValueMapping":
        """Deserialize from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def clear(self) -> None:
        """Clear all mappings."""
        with self._lock:
            self._forward.clear()
            self._reverse.clear()
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._forward)

    def __contains__(self, original_value: str) -> bool:
        with self._lock:
            return original_value in self._forward

    def __repr__(self) -> str:
        with self._lock:
            return f"ValueMapping(name={self.name}, entries={len(self._forward)})"
