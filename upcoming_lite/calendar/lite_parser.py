"""VEVENT block assembly and ICS parse entry points - upcoming_lite."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from upcoming_lite.calendar.lite_line_tokenizer import (
    EVENT_BEGIN,
    EVENT_END,
    iter_logical_lines,
    parse_content_line,
)
from upcoming_lite.calendar.lite_models import LiteICSParseResult, RawEvent

logger = logging.getLogger(__name__)

# Properties that may repeat within one event; their full raw lines are kept in order
MULTI_VALUED_PROPERTIES = ("EXDATE", "RDATE")

# Properties whose parameter segment is kept under "<NAME>_RAW" for TZID lookup
RAW_PARAM_PROPERTIES = ("DTSTART", "DTEND", "RECURRENCE-ID")

CALENDAR_TIMEZONE_PROPERTY = "X-WR-TIMEZONE"


@dataclass
class _BuildStats:
    """Counters collected while assembling events."""

    malformed_lines: int = 0
    unclosed_events: int = 0
    calendar_timezone: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


def _set_property(event: RawEvent, line: str) -> bool:
    content = parse_content_line(line)
    if content is None:
        return False

    if content.name in RAW_PARAM_PROPERTIES:
        event[f"{content.name}_RAW"] = content.params_segment

    if content.name in MULTI_VALUED_PROPERTIES:
        existing = event.get(content.name)
        if not isinstance(existing, list):
            existing = []
            event[content.name] = existing
        existing.append(content.raw)
    else:
        event[content.name] = content.value
    return True


def _build_events(logical_lines: Iterable[str], stats: _BuildStats) -> list[RawEvent]:
    events: list[RawEvent] = []
    current: Optional[RawEvent] = None

    for line in logical_lines:
        marker = line.strip()

        if marker == EVENT_BEGIN:
            if current is not None:
                stats.unclosed_events += 1
            current = {}
            continue

        if marker == EVENT_END:
            if current is not None:
                events.append(current)
            current = None
            continue

        if current is None:
            if line.startswith(f"{CALENDAR_TIMEZONE_PROPERTY}:"):
                stats.calendar_timezone = line.split(":", 1)[1].strip() or None
            continue

        if not _set_property(current, line):
            stats.malformed_lines += 1

    if current is not None:
        stats.unclosed_events += 1

    if stats.malformed_lines:
        stats.warnings.append(f"Ignored {stats.malformed_lines} property lines without a colon")
    if stats.unclosed_events:
        stats.warnings.append(f"Discarded {stats.unclosed_events} VEVENT blocks never closed")
    return events


def build_events(logical_lines: Iterable[str]) -> list[RawEvent]:
    """Assemble BEGIN:VEVENT / END:VEVENT blocks of logical lines into property maps.

    Only events closed by END:VEVENT are returned. A second BEGIN:VEVENT while an
    event is open starts over and the unfinished event is lost.
    """
    return _build_events(logical_lines, _BuildStats())


def parse_ics_events(ics_content: str) -> list[RawEvent]:
    """Parse raw ICS text into a fresh list of VEVENT property maps.

    Every call returns an independent list; nothing is carried over between calls.

    Args:
        ics_content: Raw ICS text

    Returns:
        One dict per closed VEVENT, mapping property names (parameters stripped)
        to values, with ``DTSTART_RAW`` holding the parameter-qualified DTSTART name
        and EXDATE / RDATE holding ordered lists of full raw lines.
    """
    return build_events(iter_logical_lines(ics_content))


class LiteICSParser:
    """ICS parser producing parse results with statistics - upcoming_lite version.

    The parser keeps no events between calls; each ``parse_ics_content`` call
    returns a new result.
    """

    def __init__(self, settings: Any = None) -> None:
        """Initialize ICS parser.

        Args:
            settings: Optional configuration object (unused attributes are ignored)
        """
        self.settings = settings
        logger.debug("Lite ICS parser initialized")

    def parse_ics_content(self, ics_content: str) -> LiteICSParseResult:
        """Parse ICS text and report what was found.

        Args:
            ics_content: Raw ICS text

        Returns:
            Parse result with events and counters. ``success`` is False only when the
            text contains no VCALENDAR or VEVENT data at all.
        """
        stats = _BuildStats()
        events = _build_events(iter_logical_lines(ics_content), stats)

        recurring = sum(1 for event in events if "RRULE" in event and "RECURRENCE-ID" not in event)
        overrides = sum(1 for event in events if "RECURRENCE-ID" in event)

        success = bool(events) or "BEGIN:VCALENDAR" in ics_content
        if not success:
            stats.warnings.append("No calendar data found")

        for warning in stats.warnings:
            logger.warning(warning)

        logger.debug(
            "Parsed %d events (%d recurring, %d overrides, %d discarded)",
            len(events),
            recurring,
            overrides,
            stats.unclosed_events,
        )

        return LiteICSParseResult(
            success=success,
            events=events,
            calendar_timezone=stats.calendar_timezone,
            event_count=len(events),
            recurring_event_count=recurring,
            override_count=overrides,
            skipped_event_count=stats.unclosed_events,
            warnings=stats.warnings,
        )
