"""Tests for data models."""

from timetree.core.models import RGBColor, TrackingInterval, TrackingState
from timetree.core.timevalue import TimeFormat


class TestRGBColor:
    """Test RGBColor."""

    def test_channels_are_clamped(self) -> None:
        """Test that channels are clamped to 0-255."""
        color = RGBColor(300, -5, None)  # type: ignore[arg-type]

        assert color.to_dict() == {"red": 255, "green": 0, "blue": 0}

    def test_from_dict(self) -> None:
        """Test creating a color from a dictionary."""
        color = RGBColor.from_dict({"red": "10", "green": 20})

        assert color == RGBColor(10, 20, 0)

    def test_from_none_is_black(self) -> None:
        """Test that no color gives black."""
        assert RGBColor.from_dict(None) == RGBColor(0, 0, 0)


class TestTrackingInterval:
    """Test TrackingInterval."""

    def test_begin_is_active(self) -> None:
        """Test that a new interval is open."""
        interval = TrackingInterval.begin(now=100)

        assert interval.state is TrackingState.ACTIVE
        assert interval.is_active
        assert interval.end_time is None

    def test_open_duration_grows_with_now(self) -> None:
        """Test that an open interval is measured up to now."""
        interval = TrackingInterval.begin(now=100)

        assert interval.duration(now=130).total_seconds == 30
        assert interval.duration(now=190).total_seconds == 90

    def test_finish(self) -> None:
        """Test closing an interval."""
        interval = TrackingInterval.begin(now=100)
        interval.finish(now=160)

        assert interval.state is TrackingState.INACTIVE
        assert interval.end_time == 160
        assert interval.duration(now=1000).total_seconds == 60

    def test_duration_format(self) -> None:
        """Test that the duration uses the requested format."""
        interval = TrackingInterval(start_time=0, end_time=3725, state=TrackingState.INACTIVE)

        assert interval.duration(TimeFormat.MS).to_dict() == {"hours": 0, "mins": 62, "seconds": 5}

    def test_set_fields(self) -> None:
        """Test correcting the bounds of an interval."""
        interval = TrackingInterval(start_time=100, end_time=160, state=TrackingState.INACTIVE)

        duration = interval.set_fields(start_time=50)

        assert duration.total_seconds == 110
        assert interval.end_time == 160
        assert interval.set_fields(end_time=250).total_seconds == 200

    def test_unique_ids(self) -> None:
        """Test that intervals get distinct ids."""
        assert TrackingInterval.begin(now=1).id != TrackingInterval.begin(now=1).id

    def test_to_dict_and_back(self) -> None:
        """Test serialization of a closed interval."""
        interval = TrackingInterval(start_time=100, end_time=160, state=TrackingState.INACTIVE)

        data = interval.to_dict()
        restored = TrackingInterval.from_dict(data)

        assert data["state"] == "INACTIVE"
        assert data["duration"] == {"hours": 0, "mins": 1, "seconds": 0}
        assert restored.id == interval.id
        assert restored.start_time == 100
        assert restored.end_time == 160
        assert restored.state is TrackingState.INACTIVE

    def test_from_dict_legacy_state(self) -> None:
        """Test that the numeric state 1 means ACTIVE."""
        restored = TrackingInterval.from_dict({"id": "i1", "startTimeSeconds": 5, "state": 1})

        assert restored.state is TrackingState.ACTIVE
        assert restored.end_time is None
