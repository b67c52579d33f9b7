"""Unit tests for upcoming occurrence selection."""

from datetime import UTC, datetime

import pytest

from upcoming_lite.calendar.lite_parser import LiteICSParser, parse_ics_events
from upcoming_lite.calendar.lite_upcoming import (
    LiteUpcomingSelector,
    classify_events,
    get_upcoming_events,
)
from upcoming_lite.config_loader import Config

pytestmark = pytest.mark.unit


class TestClassifyEvents:
    """Tests for classify_events."""

    def test_buckets(self):
        events = [
            {"UID": "s", "DTSTART": "20250101T090000Z"},
            {"UID": "r", "DTSTART": "20250101T090000Z", "RRULE": "FREQ=DAILY"},
            {"UID": "o", "DTSTART": "20250101T090000Z", "RECURRENCE-ID": "20250101T090000Z"},
            {"UID": "both", "DTSTART": "20250101T090000Z", "RRULE": "FREQ=DAILY", "RECURRENCE-ID": "x"},
            {"UID": "no-start", "SUMMARY": "Floating idea"},
        ]
        buckets = classify_events(events)
        assert [e["UID"] for e in buckets.simple] == ["s"]
        assert [e["UID"] for e in buckets.recurring] == ["r"]
        assert [e["UID"] for e in buckets.overrides] == ["o", "both"]
        assert buckets.without_start == 1


class TestLiteUpcomingSelector:
    """Tests for LiteUpcomingSelector.get_upcoming_events."""

    def setup_method(self):
        self.selector = LiteUpcomingSelector()

    def test_simple_event(self, sample_ics_simple, fixed_now):
        result = self.selector.get_upcoming_events(parse_ics_events(sample_ics_simple), now=fixed_now)

        assert len(result) == 1
        event = result[0]
        assert event.title == "Team Meeting"
        assert event.location == "Conference Room A, 2nd floor"
        assert event.description == "Weekly team sync\nBring notes"
        assert event.start == datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
        assert event.end == datetime(2025, 1, 15, 11, 0, tzinfo=UTC)
        assert event.url == "https://example.com/meetings/1"
        assert event.is_recurring is False

    def test_recurring_series_with_exdate_and_override(self, sample_ics_recurring, fixed_now):
        result = self.selector.get_upcoming_events(
            parse_ics_events(sample_ics_recurring), limit=4, now=fixed_now
        )

        assert [(o.start, o.title) for o in result] == [
            (datetime(2025, 1, 6, 9, 0, tzinfo=UTC), "Standup"),
            (datetime(2025, 1, 13, 11, 0, tzinfo=UTC), "Standup (moved)"),
            (datetime(2025, 1, 15, 9, 0, tzinfo=UTC), "Standup"),
            (datetime(2025, 1, 20, 9, 0, tzinfo=UTC), "Standup"),
        ]
        assert result[1].location == "Room 4"
        assert all(o.is_recurring for o in result)

    def test_results_sorted_across_event_kinds(self, calendar_builder, fixed_now):
        ics = calendar_builder(
            "UID:late\nDTSTART:20250110T120000Z\nSUMMARY:Late",
            "UID:series\nDTSTART:20250102T080000Z\nRRULE:FREQ=DAILY;INTERVAL=4\nSUMMARY:Series",
            "UID:early\nDTSTART:20250103T120000Z\nSUMMARY:Early",
        )
        result = self.selector.get_upcoming_events(parse_ics_events(ics), limit=5, now=fixed_now)
        assert [o.title for o in result] == ["Series", "Early", "Series", "Series", "Late"]
        assert [o.start.day for o in result] == [2, 3, 6, 10, 10]

    def test_limit_truncates(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:daily\nDTSTART:20250101T090000Z\nRRULE:FREQ=DAILY")
        events = parse_ics_events(ics)
        assert len(self.selector.get_upcoming_events(events, limit=3, now=fixed_now)) == 3
        assert self.selector.get_upcoming_events(events, limit=0, now=fixed_now) == []
        assert self.selector.get_upcoming_events(events, limit=-5, now=fixed_now) == []

    def test_weeks_ahead_bounds_expansion(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:daily\nDTSTART:20250101T090000Z\nRRULE:FREQ=DAILY")
        result = self.selector.get_upcoming_events(
            parse_ics_events(ics), limit=100, weeks_ahead=1, now=fixed_now
        )
        assert [o.start.day for o in result] == [1, 2, 3, 4, 5, 6, 7]

    def test_window_starts_at_midnight(self, calendar_builder, fixed_now):
        ics = calendar_builder(
            "UID:yesterday\nDTSTART:20241231T230000Z",
            "UID:this-morning\nDTSTART:20250101T060000Z",
        )
        result = self.selector.get_upcoming_events(parse_ics_events(ics), now=fixed_now)
        assert [o.uid for o in result] == ["this-morning"]

    def test_simple_events_are_not_bounded_by_window(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:far\nDTSTART:20270101T090000Z")
        result = self.selector.get_upcoming_events(parse_ics_events(ics), weeks_ahead=1, now=fixed_now)
        assert [o.uid for o in result] == ["far"]

    def test_window_start_follows_default_timezone(self, calendar_builder, fixed_now):
        # 08:00Z is 03:00 in New York, so the window starts at 05:00Z
        selector = LiteUpcomingSelector(Config(default_timezone="America/New_York"))
        ics = calendar_builder(
            "UID:before\nDTSTART:20250101T040000Z",
            "UID:after\nDTSTART:20250101T060000Z",
        )
        result = selector.get_upcoming_events(parse_ics_events(ics), now=fixed_now)
        assert [o.uid for o in result] == ["after"]

    def test_event_without_start_is_dropped(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:nostart\nSUMMARY:Someday", "UID:ok\nDTSTART:20250102T090000Z")
        result = self.selector.get_upcoming_events(parse_ics_events(ics), now=fixed_now)
        assert [o.uid for o in result] == ["ok"]

    def test_unparseable_simple_start_is_dropped(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:bad\nDTSTART:next tuesday")
        assert self.selector.get_upcoming_events(parse_ics_events(ics), now=fixed_now) == []

    def test_all_day_event(self, calendar_builder, fixed_now):
        ics = calendar_builder("UID:holiday\nDTSTART;VALUE=DATE:20250106\nDTEND;VALUE=DATE:20250107")
        result = self.selector.get_upcoming_events(parse_ics_events(ics), now=fixed_now)
        assert result[0].is_all_day is True
        assert result[0].start == datetime(2025, 1, 6, tzinfo=UTC)
        assert result[0].end == datetime(2025, 1, 7, tzinfo=UTC)

    def test_calendar_timezone_ignored_by_default(self, calendar_builder, fixed_now):
        ics = calendar_builder(
            "UID:floating\nDTSTART:20250115T100000", header="X-WR-TIMEZONE:Europe/Brussels"
        )
        result = LiteICSParser().parse_ics_content(ics)
        occurrences = self.selector.get_upcoming_events(
            result.events, now=fixed_now, calendar_timezone=result.calendar_timezone
        )
        assert occurrences[0].start == datetime(2025, 1, 15, 10, 0, tzinfo=UTC)

    def test_calendar_timezone_used_when_enabled(self, calendar_builder, fixed_now):
        selector = LiteUpcomingSelector(Config(use_calendar_timezone=True))
        ics = calendar_builder(
            "UID:floating\nDTSTART:20250115T100000", header="X-WR-TIMEZONE:Europe/Brussels"
        )
        result = LiteICSParser().parse_ics_content(ics)
        occurrences = selector.get_upcoming_events(
            result.events, now=fixed_now, calendar_timezone=result.calendar_timezone
        )
        assert occurrences[0].start == datetime(2025, 1, 15, 9, 0, tzinfo=UTC)

    def test_now_defaults_to_test_time_override(self, monkeypatch, calendar_builder):
        monkeypatch.setenv("UPCOMING_LITE_TEST_TIME", "2025-01-20T12:00:00Z")
        ics = calendar_builder(
            "UID:old\nDTSTART:20250115T100000Z",
            "UID:new\nDTSTART:20250121T100000Z",
        )
        result = self.selector.get_upcoming_events(parse_ics_events(ics))
        assert [o.uid for o in result] == ["new"]


class TestGetUpcomingEvents:
    """Tests for the one-call helper."""

    def test_parses_and_selects(self, sample_ics_recurring, fixed_now):
        result = get_upcoming_events(sample_ics_recurring, limit=2, now=fixed_now)
        assert [o.title for o in result] == ["Standup", "Standup (moved)"]

    def test_serializes_with_utc_suffix(self, sample_ics_simple, fixed_now):
        dumped = get_upcoming_events(sample_ics_simple, now=fixed_now)[0].model_dump(mode="json")
        assert dumped["start"] == "2025-01-15T10:00:00Z"
        assert dumped["end"] == "2025-01-15T11:00:00Z"

    def test_empty_input(self, fixed_now):
        assert get_upcoming_events("", now=fixed_now) == []
