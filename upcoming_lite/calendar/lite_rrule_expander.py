"""RRULE expansion logic for upcoming_lite.

Supports the DAILY, WEEKLY and MONTHLY frequencies with INTERVAL, weekday BYDAY
lists and ordinal BYDAY values (``2MO``, ``-1FR``). Stepping is done on the
event's wall clock and every step is converted back to a UTC instant.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from upcoming_lite.calendar.lite_datetime_utils import (
    MINUTE_PRECISION,
    LiteDateTimeNormalizer,
    extract_tzid,
    get_event_timezone,
    match_key,
    parse_wall_clock,
)
from upcoming_lite.calendar.lite_models import LiteFrequency, LiteOccurrence, ParsedRule, RawEvent
from upcoming_lite.calendar.lite_text_decoder import decode_text
from upcoming_lite.core.timezone_utils import UTC_ZONE

logger = logging.getLogger(__name__)

WEEKDAY_INDEX = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}
_RELATIVE_WEEKDAYS = {"MO": MO, "TU": TU, "WE": WE, "TH": TH, "FR": FR, "SA": SA, "SU": SU}

_ORDINAL_BYDAY = re.compile(r"(-?\d+)([A-Z]{2})")

ROLLOVER_POLICY = "rollover"
CLAMP_POLICY = "clamp"


@dataclass
class RRuleExpanderConfig:
    """Configuration for RRULE expansion.

    Consolidates all recurrence-related settings with explicit defaults.
    """

    max_iterations: int = 100
    weekly_scan_days: int = 14
    monthly_day_policy: str = ROLLOVER_POLICY
    match_precision: str = MINUTE_PRECISION
    honor_weekly_interval: bool = False
    decode_escaped_backslash: bool = True
    default_title: str = "Untitled"

    @classmethod
    def from_settings(cls, settings: Any) -> "RRuleExpanderConfig":
        """Extract RRULE configuration from settings object.

        Args:
            settings: Configuration object with RRULE settings (may be None)

        Returns:
            RRuleExpanderConfig with values from settings or defaults
        """
        defaults = cls()
        return cls(
            max_iterations=getattr(settings, "max_iterations", defaults.max_iterations),
            weekly_scan_days=getattr(settings, "weekly_scan_days", defaults.weekly_scan_days),
            monthly_day_policy=getattr(settings, "monthly_day_policy", defaults.monthly_day_policy),
            match_precision=getattr(settings, "match_precision", defaults.match_precision),
            honor_weekly_interval=getattr(
                settings, "honor_weekly_interval", defaults.honor_weekly_interval
            ),
            decode_escaped_backslash=getattr(
                settings, "decode_escaped_backslash", defaults.decode_escaped_backslash
            ),
            default_title=getattr(settings, "default_title", defaults.default_title),
        )


def parse_rrule(rrule_string: Optional[str]) -> ParsedRule:
    """Convert an RRULE value into a keyword -> value mapping.

    No keyword validation happens here; unknown keys pass through.

    Examples:
        >>> parse_rrule("FREQ=WEEKLY;BYDAY=MO,WE")
        {'FREQ': 'WEEKLY', 'BYDAY': 'MO,WE'}
    """
    rule: ParsedRule = {}
    if not rrule_string:
        return rule

    for segment in rrule_string.split(";"):
        if not segment.strip():
            continue
        key, _, value = segment.partition("=")
        rule[key.strip()] = value.strip()
    return rule


def rule_interval(rule: ParsedRule) -> int:
    """Return the rule's INTERVAL, defaulting to 1 for missing or invalid values."""
    try:
        interval = int(rule.get("INTERVAL", "1"))
    except ValueError:
        return 1
    return interval if interval >= 1 else 1


def build_occurrence(
    event: RawEvent,
    start: datetime,
    end: Optional[datetime],
    is_recurring: bool,
    config: RRuleExpanderConfig,
    is_all_day: bool = False,
) -> LiteOccurrence:
    """Create an occurrence carrying the event's decoded text fields."""

    def _text(name: str, default: str = "") -> str:
        value = event.get(name)
        if not isinstance(value, str) or not value:
            return default
        return decode_text(value, config.decode_escaped_backslash)

    uid = event.get("UID")
    url = event.get("URL")
    return LiteOccurrence(
        title=_text("SUMMARY", config.default_title),
        description=_text("DESCRIPTION"),
        location=_text("LOCATION"),
        start=start,
        end=end,
        url=url if isinstance(url, str) else "",
        is_recurring=is_recurring,
        uid=uid if isinstance(uid, str) else None,
        is_all_day=is_all_day,
    )


class LiteRRuleExpander:
    """Expand one recurring event into concrete occurrences inside a window."""

    def __init__(
        self,
        settings: Any = None,
        normalizer: Optional[LiteDateTimeNormalizer] = None,
    ):
        """Initialize expander.

        Args:
            settings: Configuration object (see RRuleExpanderConfig.from_settings)
            normalizer: Date/time normalizer (defaults to the zoneinfo-backed one)
        """
        self.config = RRuleExpanderConfig.from_settings(settings)
        self.normalizer = normalizer or LiteDateTimeNormalizer()

        logger.debug(
            "LiteRRuleExpander initialized: max_iterations=%d, monthly_day_policy=%s, "
            "match_precision=%s",
            self.config.max_iterations,
            self.config.monthly_day_policy,
            self.config.match_precision,
        )

    def collect_exdates(self, event: RawEvent, zone: str) -> set[str]:
        """Build the set of excluded match keys from the event's EXDATE lines.

        Each stored line is split after its last colon; the value part may hold
        several comma-separated dates. Every value is read in the event zone,
        whatever TZID the EXDATE line itself names.
        """
        raw_exdates = event.get("EXDATE")
        if not raw_exdates:
            return set()
        if isinstance(raw_exdates, str):
            raw_exdates = [raw_exdates]

        excluded: set[str] = set()
        for line in raw_exdates:
            _, _, values = line.rpartition(":")
            for value in values.split(","):
                instant = self.normalizer.normalize(value.strip(), zone)
                if instant is None:
                    logger.debug("Skipping unparseable EXDATE value %r", value)
                    continue
                excluded.add(match_key(instant, self.config.match_precision))
        return excluded

    def generate_occurrences(
        self,
        event: RawEvent,
        start_limit: datetime,
        end_limit: datetime,
        default_zone: str = UTC_ZONE,
    ) -> list[LiteOccurrence]:
        """Expand a recurring event between ``start_limit`` and ``end_limit`` (inclusive).

        Expansion walks forward from DTSTART and stops at the first step past
        ``end_limit``, after ``max_iterations`` steps, or at an unsupported frequency.
        Occurrences already produced are kept in every case.

        Args:
            event: Raw event with RRULE and DTSTART
            start_limit: Earliest start instant to emit
            end_limit: Latest start instant to emit
            default_zone: Zone used when DTSTART carries no TZID

        Returns:
            Occurrences in generation order
        """
        occurrences: list[LiteOccurrence] = []
        uid = event.get("UID")

        zone = get_event_timezone(event, default_zone)

        rrule_value = event.get("RRULE")
        rule = parse_rrule(rrule_value if isinstance(rrule_value, str) else None)
        if not rule:
            logger.debug("Event %s has no usable RRULE", uid)
            return occurrences

        dtstart_value = event.get("DTSTART")
        parsed_start = parse_wall_clock(dtstart_value if isinstance(dtstart_value, str) else None)
        if parsed_start is None:
            logger.debug("Event %s has unparseable DTSTART %r", uid, dtstart_value)
            return occurrences

        step_zone = UTC_ZONE if parsed_start.is_utc else zone
        dtstart = self.normalizer.to_instant(parsed_start.value, step_zone)

        duration: Optional[timedelta] = None
        dtend_value = event.get("DTEND")
        if isinstance(dtend_value, str):
            dtend_raw = event.get("DTEND_RAW")
            dtend_zone = extract_tzid(dtend_raw if isinstance(dtend_raw, str) else None, zone)
            dtend = self.normalizer.normalize(dtend_value, dtend_zone)
            if dtend is not None:
                duration = dtend - dtstart

        excluded = self.collect_exdates(event, zone)

        current = parsed_start.value
        for _ in range(self.config.max_iterations):
            instant = self.normalizer.to_instant(current, step_zone)
            if instant > end_limit:
                break

            if instant >= start_limit:
                if match_key(instant, self.config.match_precision) in excluded:
                    logger.debug("Occurrence %s of %s excluded by EXDATE", instant, uid)
                else:
                    occurrences.append(
                        build_occurrence(
                            event,
                            instant,
                            instant + duration if duration is not None else None,
                            True,
                            self.config,
                            is_all_day=parsed_start.is_date,
                        )
                    )

            next_value = self.next_occurrence(current, rule, parsed_start.value)
            if next_value is None:
                logger.debug("Unsupported frequency %r for event %s", rule.get("FREQ"), uid)
                break
            current = next_value
        else:
            logger.debug(
                "Expansion of %s stopped at the %d iteration cap", uid, self.config.max_iterations
            )

        logger.debug("Expanded %s into %d occurrences", uid, len(occurrences))
        return occurrences

    def next_occurrence(
        self, current: datetime, rule: ParsedRule, dtstart: datetime
    ) -> Optional[datetime]:
        """Return the wall-clock value following ``current``, or None for unsupported FREQ."""
        freq = rule.get("FREQ")
        if freq == LiteFrequency.DAILY.value:
            return current + timedelta(days=rule_interval(rule))
        if freq == LiteFrequency.WEEKLY.value:
            return self._next_weekly(current, rule)
        if freq == LiteFrequency.MONTHLY.value:
            return self._next_monthly(current, rule, dtstart)
        return None

    def _next_weekly(self, current: datetime, rule: ParsedRule) -> datetime:
        interval = rule_interval(rule)
        byday = rule.get("BYDAY")
        if not byday:
            return current + timedelta(days=7 * interval)

        weekdays = {
            WEEKDAY_INDEX[code.strip()[-2:]]
            for code in byday.split(",")
            if code.strip()[-2:] in WEEKDAY_INDEX
        }

        candidate = current + timedelta(days=1)
        for _ in range(self.config.weekly_scan_days):
            if candidate.weekday() in weekdays:
                break
            candidate += timedelta(days=1)
        else:
            return candidate

        if self.config.honor_weekly_interval and interval > 1:
            current_week = current.date() - timedelta(days=current.weekday())
            candidate_week = candidate.date() - timedelta(days=candidate.weekday())
            if candidate_week != current_week:
                candidate += timedelta(weeks=interval - 1)
        return candidate

    def _next_monthly(self, current: datetime, rule: ParsedRule, dtstart: datetime) -> datetime:
        interval = rule_interval(rule)
        byday = rule.get("BYDAY")
        match = _ORDINAL_BYDAY.search(byday) if byday else None

        if match and match.group(2) in _RELATIVE_WEEKDAYS:
            order = int(match.group(1))
            weekday = _RELATIVE_WEEKDAYS[match.group(2)]
            month_start = current.replace(day=1) + relativedelta(months=interval)

            if order > 0:
                target = month_start + relativedelta(weekday=weekday(+1))
                target += timedelta(weeks=order - 1)
            else:
                target = month_start + relativedelta(day=31, weekday=weekday(-1))

            return target.replace(
                hour=dtstart.hour, minute=dtstart.minute, second=dtstart.second
            )

        if self.config.monthly_day_policy == CLAMP_POLICY:
            return current + relativedelta(months=interval, day=dtstart.day)

        # Day-of-month beyond the target month's length spills into the next month
        month_start = current.replace(day=1) + relativedelta(months=interval)
        return month_start + timedelta(days=current.day - 1)
