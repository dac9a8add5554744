"""Tests for the date shifting technique."""

from datetime import date, datetime, timedelta

import pytest

from anonyflow.core.techniques import DateShiftingTechnique
from anonyflow.core.techniques.date_shifting import parse_date


@pytest.fixture
def shifter():
    return DateShiftingTechnique(seed=1234)


class TestParseDate:
    """Tests for date format detection."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-01-15", date(2024, 1, 15)),
            ("01/15/2024", date(2024, 1, 15)),
            ("15-01-2024", date(2024, 1, 15)),
            ("2024/01/15", date(2024, 1, 15)),
        ],
    )
    def test_recognized_formats(self, value, expected):
        parsed, _ = parse_date(value)
        assert parsed == expected

    @pytest.mark.parametrize("value", ["not a date", "2024-13-45", "15.01.2024", ""])
    def test_unrecognized(self, value):
        assert parse_date(value) is None


class TestDateShifting:
    """Tests for DateShiftingTechnique."""

    def test_forward_bounds(self):
        """Test forward shifts stay within [0, shiftRange] days."""
        original = date(2024, 1, 15)
        for seed in range(50):
            technique = DateShiftingTechnique(seed=seed)
            shifted = technique.anonymize(
                "2024-01-15", {"shiftRange": 365, "shiftDirection": "forward"}
            )
            delta = (datetime.strptime(shifted, "%Y-%m-%d").date() - original).days
            assert 0 <= delta <= 365

    def test_backward_bounds(self):
        original = date(2024, 1, 15)
        for seed in range(50):
            technique = DateShiftingTechnique(seed=seed)
            shifted = technique.anonymize(
                "2024-01-15", {"shiftRange": 30, "shiftDirection": "backward"}
            )
            delta = (datetime.strptime(shifted, "%Y-%m-%d").date() - original).days
            assert -30 <= delta <= 0

    def test_unparseable_unchanged(self, shifter):
        assert shifter.anonymize("not a date") == "not a date"

    def test_output_mirrors_input_format(self, shifter):
        shifted = shifter.anonymize("01/15/2024")
        assert datetime.strptime(shifted, "%m/%d/%Y")

        shifted = shifter.anonymize("15-01-2024")
        assert datetime.strptime(shifted, "%d-%m-%Y")

    def test_consistent_shift(self, shifter):
        """Test the same input always gets the same shift."""
        first = shifter.anonymize("2024-01-15")
        second = shifter.anonymize("2024-01-15")
        assert first == second
        assert "2024-01-15" in shifter.shifts

    def test_reset(self, shifter):
        shifter.anonymize("2024-01-15")
        shifter.reset()
        assert len(shifter.shifts) == 0

    def test_preserve_weekday(self):
        original = date(2024, 1, 15)
        for seed in range(30):
            technique = DateShiftingTechnique(seed=seed)
            shifted = technique.anonymize(
                "2024-01-15",
                {"shiftRange": 365, "shiftDirection": "forward", "preserveWeekday": True},
            )
            shifted_date = datetime.strptime(shifted, "%Y-%m-%d").date()
            assert shifted_date.weekday() == original.weekday()
            assert timedelta(0) <= shifted_date - original <= timedelta(days=365)

    @pytest.mark.parametrize(
        "parameters",
        [{"shiftRange": -5}, {"shiftRange": 0}, {"shiftRange": 2.5}, {"shiftDirection": "sideways"}],
    )
    def test_invalid_parameters(self, shifter, parameters):
        assert shifter.validate_parameters(parameters) is False

    def test_metadata_irreversible(self, shifter):
        assert shifter.reversible is False
