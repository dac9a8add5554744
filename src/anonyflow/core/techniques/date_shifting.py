"""Date shifting technique."""

import random
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from anonyflow.core.mapping import ValueMapping
from anonyflow.core.models import (
    ParameterKind,
    RiskLevel,
    TechniqueMetadata,
    TechniqueParameter,
)
from anonyflow.core.techniques.base import AnonymizationTechnique

SHIFT_DIRECTIONS = ("forward", "backward", "both")


@dataclass(frozen=True)
class DateFormat:
    """A recognized date layout."""

    pattern: re.Pattern
    strptime: str


# Order matters: DD-MM-YYYY and YYYY-MM-DD share a separator.
DATE_FORMATS = (
    DateFormat(re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    DateFormat(re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%m/%d/%Y"),
    DateFormat(re.compile(r"^\d{2}-\d{2}-\d{4}$"), "%d-%m-%Y"),
    DateFormat(re.compile(r"^\d{4}/\d{2}/\d{2}$"), "%Y/%m/%d"),
)


def parse_date(value: str) -> Optional[tuple[date, DateFormat]]:
    """Parse a value in one of the recognized formats.

    Returns:
        The parsed date and the format it was found in, or None.
    """
    candidate = value.strip()
    for date_format in DATE_FORMATS:
        if date_format.pattern.match(candidate):
            try:
                return datetime.strptime(candidate, date_format.strptime).date(), date_format
            except ValueError:
                return None
    return None


class DateShiftingTechnique(AnonymizationTechnique):
    """Move dates by a random number of days.

    The shift is bounded by shiftRange and shiftDirection. In consistent
    mode the same input string always receives the same shift. Values that
    are not dates in a recognized format are returned unchanged, and the
    output keeps the layout of the input.

    Example: "1985-03-15" -> "1986-07-22"
    """

    _METADATA = TechniqueMetadata(
        id="date-shifting",
        name="Date Shifting",
        category="Date Anonymization",
        description="Moves dates while keeping relative intervals plausible",
        parameters=(
            TechniqueParameter(
                name="shiftRange",
                kind=ParameterKind.NUMBER,
                required=True,
                default=365,
                integer=True,
                minimum=1,
                description="Maximum shift in days",
            ),
            TechniqueParameter(
                name="preserveWeekday",
                kind=ParameterKind.BOOLEAN,
                default=False,
                description="Keep the original day of the week",
            ),
            TechniqueParameter(
                name="shiftDirection",
                kind=ParameterKind.SELECT,
                default="both",
                options=SHIFT_DIRECTIONS,
                description="Direction of the shift",
            ),
            TechniqueParameter(
                name="consistent",
                kind=ParameterKind.BOOLEAN,
                default=True,
                description="Apply the same shift to the same date",
            ),
        ),
        risk_level=RiskLevel.MEDIUM,
        reversible=False,
        compliance=("HIPAA", "GDPR"),
        examples=(
            ("1985-03-15", "1986-07-22"),
            ("2020-12-25", "2021-04-18"),
        ),
    )

    def __init__(self, seed: Optional[int] = None) -> None:
        """Initialize the technique.

        Args:
            seed: Optional seed for reproducible shifts in tests.
        """
        self._shifts: ValueMapping[int] = ValueMapping(name=self._METADATA.id, bidirectional=False)
        self._random = random.Random(seed)

    @property
    def metadata(self) -> TechniqueMetadata:
        return self._METADATA

    @property
    def shifts(self) -> ValueMapping[int]:
        return self._shifts

    def anonymize_value(self, value: str, params: dict[str, Any]) -> str:
        parsed = parse_date(value)
        if parsed is None:
            return value
        original, date_format = parsed

        shift_range = int(params["shiftRange"])
        direction = params["shiftDirection"]
        low, high = self._bounds(shift_range, direction)

        if params["consistent"]:
            shift_days = self._shifts.get_or_create(value, lambda _: self._random.randint(low, high))
        else:
            shift_days = self._random.randint(low, high)

        if params["preserveWeekday"]:
            shift_days += self._weekday_correction(original, shift_days, low, high)

        shifted = original + timedelta(days=shift_days)
        return shifted.strftime(date_format.strptime)

    def reset(self) -> None:
        """Forget every recorded shift."""
        self._shifts.clear()

    @staticmethod
    def _bounds(shift_range: int, direction: str) -> tuple[int, int]:
        if direction == "forward":
            return 0, shift_range
        if direction == "backward":
            return -shift_range, 0
        return -shift_range, shift_range

    @staticmethod
    def _weekday_correction(original: date, shift_days: int, low: int, high: int) -> int:
        """Smallest nudge putting the shifted date back on the original weekday.

        Prefers a correction that keeps the total shift inside [low, high].
        """
        shifted = original + timedelta(days=shift_days)
        forward = (original.weekday() - shifted.weekday()) % 7
        candidates = sorted({forward, forward - 7}, key=abs)
        for delta in candidates:
            if low <= shift_days + delta <= high:
                return delta
        return candidates[0]
