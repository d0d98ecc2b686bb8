"""Tests for TimeValue."""

import pytest  # type: ignore[import-not-found]

from timetree.core.timevalue import (
    InvalidTimeUnitRequest,
    TimeFormat,
    TimeValue,
    sanitize_numeric,
)


class TestSanitizeNumeric:
    """Test component sanitizing."""

    @pytest.mark.parametrize("raw", [None, "abc", float("nan"), -3, 0, True, [1]])
    def test_invalid_components_become_zero(self, raw: object) -> None:
        """Test that missing, malformed and negative components are zero."""
        assert sanitize_numeric(raw) == 0

    def test_numeric_strings_are_accepted(self) -> None:
        """Test that numeric strings are parsed."""
        assert sanitize_numeric("12.5") == 12.5


class TestTimeValue:
    """Test TimeValue."""

    def test_hms_components(self) -> None:
        """Test HMS split."""
        value = TimeValue.from_dict({"hours": 1, "mins": 30, "seconds": 15})

        assert value.total_seconds == 5415
        assert value.hours == 1
        assert value.mins == 30
        assert value.seconds == 15

    def test_ms_components(self) -> None:
        """Test that MS carries hours into minutes."""
        value = TimeValue(5415, TimeFormat.MS)

        assert value.mins == 90
        assert value.seconds == 15
        with pytest.raises(InvalidTimeUnitRequest):
            _ = value.hours

    def test_s_components(self) -> None:
        """Test that S only exposes seconds."""
        value = TimeValue(5415.5, TimeFormat.S)

        assert value.seconds == 5415.5
        with pytest.raises(InvalidTimeUnitRequest):
            _ = value.mins
        with pytest.raises(InvalidTimeUnitRequest):
            _ = value.hours

    def test_seconds_are_floored_below_a_minute(self) -> None:
        """Test that fractional seconds are floored in HMS."""
        value = TimeValue(61.7)

        assert value.mins == 1
        assert value.seconds == 1
        assert value.total_seconds == pytest.approx(61.7)

    def test_negative_total_is_zero(self) -> None:
        """Test that a negative duration is clamped to zero."""
        assert TimeValue(-5).total_seconds == 0

    def test_from_dict_ignores_bad_components(self) -> None:
        """Test that bad components count as zero."""
        value = TimeValue.from_dict({"hours": -1, "mins": "abc", "seconds": 10})

        assert value.total_seconds == 10

    def test_from_dict_with_non_mapping(self) -> None:
        """Test that a non-mapping gives zero."""
        assert TimeValue.from_dict(None).total_seconds == 0
        assert TimeValue.from_dict("1h").total_seconds == 0

    def test_add(self) -> None:
        """Test adding two values."""
        total = TimeValue(30) + TimeValue(45)

        assert total.total_seconds == 75
        assert total.mins == 1
        assert total.seconds == 15

    def test_add_in_requested_format(self) -> None:
        """Test that add produces the requested format."""
        total = TimeValue.add(TimeValue(3600), TimeValue(1800), TimeFormat.MS)

        assert total.time_format is TimeFormat.MS
        assert total.mins == 90

    def test_add_multiple(self) -> None:
        """Test summing many values."""
        assert TimeValue.add_multiple().total_seconds == 0
        total = TimeValue.add_multiple(TimeValue(1), TimeValue(2), TimeValue(3))
        assert total.total_seconds == 6

    def test_to_dict(self) -> None:
        """Test the wire shape in each format."""
        assert TimeValue(3725).to_dict() == {"hours": 1, "mins": 2, "seconds": 5}
        assert TimeValue(3725, TimeFormat.MS).to_dict() == {"hours": 0, "mins": 62, "seconds": 5}
        assert TimeValue(3725, TimeFormat.S).to_dict() == {
            "hours": 0,
            "mins": 0,
            "seconds": 3725,
        }

    def test_to_format_keeps_total(self) -> None:
        """Test that converting the format keeps the duration."""
        value = TimeValue(3725).to_format(TimeFormat.S)

        assert value.time_format is TimeFormat.S
        assert value.total_seconds == 3725

    def test_immutable(self) -> None:
        """Test that values cannot be changed in place."""
        value = TimeValue(10)
        with pytest.raises(AttributeError):
            value.total_seconds = 20  # type: ignore[misc]
