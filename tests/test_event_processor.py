"""Unit tests for EventProcessor."""
from datetime import date, datetime, timedelta

import pytest
from dateutil import tz

from processor.event_processor import EventProcessor
from processor.models import AllDaySpan, RawCalendarEntry, TimedSpan

CHICAGO = tz.gettz("America/Chicago")


def make_entry(**overrides):
    values = dict(
        kind="VEVENT",
        title="Board Meeting",
        start=datetime(2026, 10, 21, 19, 0, tzinfo=CHICAGO),
        end=datetime(2026, 10, 21, 21, 0, tzinfo=CHICAGO),
        location="Village Hall - 1050 W Romeoville Rd, Romeoville, IL 60446",
    )
    values.update(overrides)
    return RawCalendarEntry(**values)


@pytest.fixture
def processor():
    return EventProcessor(timezone=CHICAGO)


class TestEventProcessor:
    """Test cases for EventProcessor class."""

    def test_normalize_timed_event(self, processor):
        """Test a complete VEVENT is normalized."""
        event = processor.normalize_entry(make_entry())

        assert event.title == "Board Meeting"
        assert event.location == "Village Hall"
        assert isinstance(event.when, TimedSpan)
        assert event.start == datetime(2026, 10, 21, 19, 0, tzinfo=CHICAGO)
        assert event.end == datetime(2026, 10, 21, 21, 0, tzinfo=CHICAGO)
        assert not event.all_day

    def test_title_markup_is_stripped(self, processor):
        """Test HTML tags and ICS escapes are removed from titles."""
        event = processor.normalize_entry(make_entry(title="<b>Fall Fest</b>\\, Day 1"))
        assert event.title == "Fall Fest, Day 1"

    @pytest.mark.parametrize("title", [None, "", "   ", "<p></p>"])
    def test_missing_title_uses_placeholder(self, processor, title):
        """Test empty titles fall back to the placeholder."""
        event = processor.normalize_entry(make_entry(title=title))
        assert event.title == "Untitled Event"

    def test_long_title_is_truncated(self, processor):
        event = processor.normalize_entry(make_entry(title="A" * 300))
        assert len(event.title) == 200

    @pytest.mark.parametrize("start", [None, "2026-10-21", 12345])
    def test_entry_without_date_like_start_is_dropped(self, processor, start):
        """Test start values that are not dates discard the entry."""
        assert processor.normalize_entry(make_entry(start=start)) is None

    def test_non_date_end_is_left_absent(self, processor):
        event = processor.normalize_entry(make_entry(end="tomorrow"))
        assert event.end is None

    def test_end_before_start_is_left_absent(self, processor):
        start = datetime(2026, 10, 21, 19, 0, tzinfo=CHICAGO)
        event = processor.normalize_entry(make_entry(start=start, end=start - timedelta(hours=1)))
        assert event.end is None

    def test_floating_time_gets_configured_zone(self, processor):
        """Test naive datetimes are localized."""
        event = processor.normalize_entry(
            make_entry(start=datetime(2026, 10, 21, 19, 0), end=None)
        )
        assert event.start.tzinfo is CHICAGO

    def test_non_event_components_are_skipped(self, processor):
        """Test VTODO and friends are not events."""
        assert processor.normalize_entry(make_entry(kind="VTODO")) is None

    def test_all_day_event(self, processor):
        """Test DATE values produce an all-day span with exclusive DTEND."""
        event = processor.normalize_entry(
            make_entry(start=date(2026, 10, 24), end=date(2026, 10, 25))
        )

        assert event.all_day
        assert event.when == AllDaySpan(first_day=date(2026, 10, 24), last_day=date(2026, 10, 24))
        assert event.start == datetime(2026, 10, 24, 0, 0, tzinfo=CHICAGO)
        assert event.end == datetime(2026, 10, 25, 0, 0, tzinfo=CHICAGO)

    def test_multi_day_all_day_event(self, processor):
        event = processor.normalize_entry(
            make_entry(start=date(2026, 10, 24), end=date(2026, 10, 27))
        )
        assert event.when.last_day == date(2026, 10, 26)

    def test_all_day_without_end(self, processor):
        event = processor.normalize_entry(make_entry(start=date(2026, 10, 24), end=None))
        assert event.when.last_day == date(2026, 10, 24)

    def test_effective_end_uses_default_duration(self, processor):
        start = datetime(2026, 10, 21, 19, 0, tzinfo=CHICAGO)
        event = processor.normalize_entry(make_entry(start=start, end=None))
        assert event.effective_end(timedelta(hours=2)) == start + timedelta(hours=2)

    def test_unknown_location_is_sentinel(self, processor):
        event = processor.normalize_entry(make_entry(location=None))
        assert event.location == "TBA"

    def test_link_is_kept(self, processor):
        event = processor.normalize_entry(make_entry(link=" https://example.org/e/1 "))
        assert event.link == "https://example.org/e/1"

    def test_process_events_multiple_valid_and_invalid(self, processor):
        """Test processing mix of valid and invalid entries keeps order."""
        raw_entries = [
            make_entry(title="Valid Event 1"),
            make_entry(title="No Start", start=None),
            make_entry(title="Todo", kind="VTODO"),
            make_entry(title="Valid Event 2"),
        ]

        processed = processor.process_events(raw_entries)

        assert [event.title for event in processed] == ["Valid Event 1", "Valid Event 2"]

    def test_events_are_immutable(self, processor):
        event = processor.normalize_entry(make_entry())
        with pytest.raises(AttributeError):
            event.title = "Changed"
