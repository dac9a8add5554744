"""
Token Counter Management

Manages sequential numbering for generated tokens and pseudonyms.
"""

from threading import Lock


class SequenceCounter:
    """Thread-safe counter for generating sequential identifiers.

    Example:
        >>> counter = SequenceCounter()
        >>> counter.next()
        1
        >>> counter.next()
        2
        >>> counter.reset()
        >>> counter.next()
        1
    """

    def __init__(self, start: int = 1) -> None:
        """Initialize the counter.

        Args:
            start: First value returned by next().
        """
        self._start = start
        self._next = start
        self._lock = Lock()

    def next(self) -> int:
        """Get the next sequential number."""
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def current(self) -> int:
        """Get the last number handed out (start - 1 if never used)."""
        with self._lock:
            return self._next - 1

    def reset(self) -> None:
        """Reset the counter to its start value."""
        with self._lock:
            self._next = self._start

    def __repr__(self) -> str:
        with self._lock:
            return f"SequenceCounter(next={self._next})"
