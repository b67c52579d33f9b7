"""Shared fixtures for upcoming_lite tests."""

import os
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any

import pytest

# Wednesday 1 January 2025, 08:00 UTC: the window starts at 2025-01-01T00:00Z
FIXED_NOW = datetime(2025, 1, 1, 8, 0, tzinfo=UTC)


def make_calendar(*event_blocks: str, header: str = "") -> str:
    """Wrap VEVENT bodies (without BEGIN/END lines) into a VCALENDAR with CRLF endings."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//upcoming_lite tests//EN"]
    if header:
        lines.extend(header.strip("\n").split("\n"))
    for block in event_blocks:
        lines.append("BEGIN:VEVENT")
        lines.extend(block.strip("\n").split("\n"))
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Remove UPCOMING_LITE_* variables so tests never see host configuration."""
    for key in list(os.environ):
        if key.startswith("UPCOMING_LITE_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def calendar_builder():
    """Return the VCALENDAR builder so tests can assemble their own feeds."""
    return make_calendar


@pytest.fixture
def fixed_now() -> datetime:
    """Deterministic reference instant used by selector tests."""
    return FIXED_NOW


@pytest.fixture
def sample_ics_simple() -> str:
    """
    Return a simple ICS calendar string with a single event.

    - Event: "Team Meeting" on 2025-01-15 10:00-11:00 UTC
    """
    return make_calendar(
        """UID:simple-001@upcoming.test
DTSTART:20250115T100000Z
DTEND:20250115T110000Z
SUMMARY:Team Meeting
LOCATION:Conference Room A\\, 2nd floor
DESCRIPTION:Weekly team sync\\nBring notes
URL:https://example.com/meetings/1"""
    )


@pytest.fixture
def sample_ics_recurring() -> str:
    """
    Return an ICS string with a weekly series, one EXDATE and one override.

    - Series: Mondays and Wednesdays 09:00-09:30 UTC from 2025-01-06
    - EXDATE: 2025-01-08 (Wednesday) removed
    - Override: 2025-01-13 occurrence moved to 11:00 with a new title
    """
    return make_calendar(
        """UID:series-001@upcoming.test
DTSTART:20250106T090000Z
DTEND:20250106T093000Z
RRULE:FREQ=WEEKLY;BYDAY=MO,WE
EXDATE:20250108T090000Z
SUMMARY:Standup
LOCATION:Room 4""",
        """UID:series-001@upcoming.test
RECURRENCE-ID:20250113T090000Z
DTSTART:20250113T110000Z
DTEND:20250113T113000Z
SUMMARY:Standup (moved)""",
    )


def pytest_configure(config: Any) -> None:
    """Register markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests spanning several modules")
