"""Upcoming occurrence selection - upcoming_lite.

Top-level orchestration: classify parsed events, expand recurring series, apply
overrides, merge, sort and truncate.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from upcoming_lite.calendar.lite_datetime_utils import (
    LiteDateTimeNormalizer,
    extract_tzid,
    get_event_timezone,
    parse_wall_clock,
)
from upcoming_lite.calendar.lite_event_merger import LiteEventMerger
from upcoming_lite.calendar.lite_models import LiteOccurrence, RawEvent
from upcoming_lite.calendar.lite_parser import LiteICSParser
from upcoming_lite.calendar.lite_rrule_expander import LiteRRuleExpander, build_occurrence
from upcoming_lite.core.timezone_utils import UTC_ZONE, now_utc, start_of_day

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_WEEKS_AHEAD = 12


@dataclass
class LiteEventBuckets:
    """Parsed events split by role."""

    simple: list[RawEvent] = field(default_factory=list)
    recurring: list[RawEvent] = field(default_factory=list)
    overrides: list[RawEvent] = field(default_factory=list)
    without_start: int = 0


def classify_events(events: Iterable[RawEvent]) -> LiteEventBuckets:
    """Split events into simple, recurring and override buckets.

    Events without DTSTART go nowhere. RECURRENCE-ID wins over RRULE.
    """
    buckets = LiteEventBuckets()
    for event in events:
        if not event.get("DTSTART"):
            buckets.without_start += 1
        elif event.get("RECURRENCE-ID"):
            buckets.overrides.append(event)
        elif event.get("RRULE"):
            buckets.recurring.append(event)
        else:
            buckets.simple.append(event)
    return buckets


class LiteUpcomingSelector:
    """Produce the time-ordered list of upcoming occurrences for a set of events."""

    def __init__(
        self,
        settings: Any = None,
        normalizer: Optional[LiteDateTimeNormalizer] = None,
    ):
        """Initialize selector.

        Args:
            settings: Configuration object; recognised attributes are ``default_timezone``,
                ``use_calendar_timezone`` and the RRuleExpanderConfig fields
            normalizer: Date/time normalizer shared by all stages
        """
        self.settings = settings
        self.normalizer = normalizer or LiteDateTimeNormalizer()
        self.expander = LiteRRuleExpander(settings, self.normalizer)
        self.merger = LiteEventMerger(settings, self.normalizer)
        self.default_timezone: str = getattr(settings, "default_timezone", UTC_ZONE) or UTC_ZONE

    def _simple_occurrence(
        self, event: RawEvent, now: datetime, zone: str
    ) -> Optional[LiteOccurrence]:
        dtstart = event.get("DTSTART")
        parsed = parse_wall_clock(dtstart if isinstance(dtstart, str) else None)
        start = self.normalizer.normalize(dtstart if isinstance(dtstart, str) else None, zone)
        if parsed is None or start is None:
            logger.debug("Skipping event %s with unparseable DTSTART %r", event.get("UID"), dtstart)
            return None
        if start < now:
            return None

        end = None
        dtend = event.get("DTEND")
        if isinstance(dtend, str):
            dtend_raw = event.get("DTEND_RAW")
            end = self.normalizer.normalize(
                dtend, extract_tzid(dtend_raw if isinstance(dtend_raw, str) else None, zone)
            )

        return build_occurrence(
            event, start, end, False, self.expander.config, is_all_day=parsed.is_date
        )

    def get_upcoming_events(
        self,
        events: Iterable[RawEvent],
        limit: int = DEFAULT_LIMIT,
        weeks_ahead: int = DEFAULT_WEEKS_AHEAD,
        now: Optional[datetime] = None,
        calendar_timezone: Optional[str] = None,
    ) -> list[LiteOccurrence]:
        """Return the next ``limit`` occurrences starting from the beginning of today.

        Args:
            events: Parsed VEVENT property maps
            limit: Maximum number of occurrences returned
            weeks_ahead: Size of the recurrence expansion window in weeks
            now: Reference instant (defaults to the current time); the window starts
                at midnight of its day in ``default_timezone``
            calendar_timezone: Calendar-level zone (X-WR-TIMEZONE), used for events
                without TZID when ``use_calendar_timezone`` is enabled

        Returns:
            Occurrences sorted ascending by start, at most ``limit`` long
        """
        reference = now if now is not None else now_utc()
        window_start = start_of_day(
            reference, self.default_timezone, self.normalizer.offset_provider
        )
        window_end = window_start + timedelta(weeks=weeks_ahead)

        fallback_zone = UTC_ZONE
        if calendar_timezone and getattr(self.settings, "use_calendar_timezone", False):
            fallback_zone = calendar_timezone

        buckets = classify_events(events)
        if buckets.without_start:
            logger.debug("Dropped %d events without DTSTART", buckets.without_start)

        upcoming: list[LiteOccurrence] = []

        for event in buckets.simple:
            occurrence = self._simple_occurrence(
                event, window_start, get_event_timezone(event, fallback_zone)
            )
            if occurrence is not None:
                upcoming.append(occurrence)

        overrides_by_uid = self.merger.group_overrides(buckets.overrides)
        for event in buckets.recurring:
            occurrences = self.expander.generate_occurrences(
                event, window_start, window_end, fallback_zone
            )
            uid = event.get("UID")
            upcoming.extend(
                self.merger.resolve_all(
                    occurrences,
                    overrides_by_uid,
                    uid if isinstance(uid, str) else None,
                    fallback_zone,
                )
            )

        upcoming.sort(key=lambda occurrence: occurrence.start)

        logger.debug(
            "Selected %d of %d candidate occurrences (%d simple, %d recurring, %d overrides)",
            min(limit, len(upcoming)),
            len(upcoming),
            len(buckets.simple),
            len(buckets.recurring),
            len(buckets.overrides),
        )
        return upcoming[: max(limit, 0)]


def get_upcoming_events(
    ics_content: str,
    limit: int = DEFAULT_LIMIT,
    weeks_ahead: int = DEFAULT_WEEKS_AHEAD,
    now: Optional[datetime] = None,
    settings: Any = None,
) -> list[LiteOccurrence]:
    """Parse ICS text and return its upcoming occurrences in one call."""
    result = LiteICSParser(settings).parse_ics_content(ics_content)
    return LiteUpcomingSelector(settings).get_upcoming_events(
        result.events,
        limit=limit,
        weeks_ahead=weeks_ahead,
        now=now,
        calendar_timezone=result.calendar_timezone,
    )
