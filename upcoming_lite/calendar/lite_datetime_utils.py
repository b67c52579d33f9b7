"""DateTime parsing utilities for ICS calendar processing - upcoming_lite.

This module turns iCalendar DATE / DATE-TIME strings into timezone-aware UTC instants.
Zone arithmetic goes through a ``ZoneOffsetProvider`` so the offset lookup can be
swapped out in tests.
"""

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import Any, NamedTuple, Optional

from upcoming_lite.core.timezone_utils import (
    UTC_ZONE,
    ZoneOffsetProvider,
    get_default_offset_provider,
)

logger = logging.getLogger(__name__)

# TZID parameter value: everything up to the value colon or the next parameter
_TZID_PATTERN = re.compile(r"TZID=([^:;]+)")

MINUTE_PRECISION = "minute"
SECOND_PRECISION = "second"

_KEY_FORMATS = {
    MINUTE_PRECISION: "%Y-%m-%dT%H:%M",
    SECOND_PRECISION: "%Y-%m-%dT%H:%M:%S",
}


class LiteWallClock(NamedTuple):
    """Digits of an ICS date/time value before any zone has been applied."""

    value: datetime
    is_utc: bool
    is_date: bool


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware (UTC if originally naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def serialize_datetime_utc(dt: datetime) -> str:
    """Serialize datetime to ISO 8601 UTC string with Z suffix.

    Examples:
        >>> serialize_datetime_utc(datetime(2024, 11, 4, 16, 30, 0, tzinfo=UTC))
        '2024-11-04T16:30:00Z'
    """
    if dt is None:
        raise ValueError("Cannot serialize None datetime")

    dt_utc = dt.astimezone(UTC) if dt.tzinfo is not None else dt.replace(tzinfo=UTC)
    return dt_utc.isoformat().replace("+00:00", "Z")


def extract_tzid(raw_property: Optional[str], default: str = UTC_ZONE) -> str:
    """Extract the TZID parameter from a parameter-qualified property segment.

    Examples:
        >>> extract_tzid("DTSTART;TZID=Europe/Brussels")
        'Europe/Brussels'
        >>> extract_tzid("DTSTART")
        'UTC'
    """
    if raw_property and "TZID=" in raw_property:
        match = _TZID_PATTERN.search(raw_property)
        if match:
            return match.group(1).strip().strip('"')
    return default


def get_event_timezone(event: dict[str, Any], default: str = UTC_ZONE) -> str:
    """Return the zone named on the event's DTSTART line, or ``default``."""
    raw = event.get("DTSTART_RAW")
    return extract_tzid(raw if isinstance(raw, str) else None, default)


def match_key(instant: datetime, precision: str = MINUTE_PRECISION) -> str:
    """Reduce an instant to the UTC key used to match EXDATE and RECURRENCE-ID values.

    With the default minute precision the seconds are discarded.
    """
    key_format = _KEY_FORMATS.get(precision, _KEY_FORMATS[MINUTE_PRECISION])
    return instant.astimezone(UTC).strftime(key_format)


def parse_wall_clock(value: Optional[str]) -> Optional[LiteWallClock]:
    """Split an ICS date or date-time string into its wall-clock digits.

    Accepts ``YYYYMMDD``, ``YYYYMMDDTHHMM`` and ``YYYYMMDDTHHMMSS`` with an optional
    trailing ``Z``. Returns None for anything else.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    is_utc = text.endswith("Z")
    body = text[:-1] if is_utc else text
    # Only the single date/time separator after the eight date digits is allowed
    date_part, separator, time_part = body.partition("T")
    clean = date_part + time_part

    if separator and (len(date_part) != 8 or len(time_part) not in (4, 6)):
        logger.debug("Misplaced date/time separator in ICS value %r", value)
        return None
    if not clean.isdigit() or len(clean) not in (8, 12, 14):
        logger.debug("Unparseable ICS date/time value %r", value)
        return None

    try:
        if len(clean) == 8:
            dt = datetime(int(clean[0:4]), int(clean[4:6]), int(clean[6:8]))
        else:
            dt = datetime(
                int(clean[0:4]),
                int(clean[4:6]),
                int(clean[6:8]),
                int(clean[8:10]),
                int(clean[10:12]),
                int(clean[12:14] or 0),
            )
    except ValueError:
        logger.debug("Invalid calendar date in ICS value %r", value)
        return None

    return LiteWallClock(value=dt, is_utc=is_utc, is_date=len(clean) == 8)


class LiteDateTimeNormalizer:
    """Convert ICS date/time strings plus a zone name into absolute UTC instants."""

    def __init__(self, offset_provider: Optional[ZoneOffsetProvider] = None):
        """Initialize normalizer.

        Args:
            offset_provider: Zone offset lookup (defaults to the zoneinfo-backed provider)
        """
        self.offset_provider = offset_provider or get_default_offset_provider()

    def _offset(self, instant: datetime, zone: str) -> timedelta:
        offset = self.offset_provider.offset_at(instant, zone)
        if offset is None:
            logger.debug("No offset for zone %r, treating as UTC", zone)
            return timedelta(0)
        return offset

    def to_instant(self, wall_clock: datetime, zone: str = UTC_ZONE) -> datetime:
        """Interpret a naive wall-clock value in ``zone`` and return the UTC instant."""
        naive = wall_clock.replace(tzinfo=None)
        if zone == UTC_ZONE:
            return naive.replace(tzinfo=UTC)

        # Second lookup settles values close to a DST transition
        first_guess = naive - self._offset(naive.replace(tzinfo=UTC), zone)
        offset = self._offset(first_guess.replace(tzinfo=UTC), zone)
        return (naive - offset).replace(tzinfo=UTC)

    def to_wall_clock(self, instant: datetime, zone: str = UTC_ZONE) -> datetime:
        """Return the naive wall-clock reading of ``instant`` in ``zone``."""
        instant_utc = ensure_timezone_aware(instant).astimezone(UTC)
        if zone == UTC_ZONE:
            return instant_utc.replace(tzinfo=None)
        return (instant_utc + self._offset(instant_utc, zone)).replace(tzinfo=None)

    def normalize(self, value: Optional[str], zone: str = UTC_ZONE) -> Optional[datetime]:
        """Parse an ICS date/time string into a UTC instant.

        ``Z``-suffixed values are absolute. Date-only values mean local midnight.
        Other values are wall-clock times in ``zone``.

        Args:
            value: ICS value such as ``20251120T160000Z``, ``20251120`` or ``20251120T160000``
            zone: Zone name from the property's TZID parameter

        Returns:
            Timezone-aware UTC datetime, or None when the value cannot be parsed
        """
        parsed = parse_wall_clock(value)
        if parsed is None:
            return None

        if parsed.is_utc:
            return parsed.value.replace(tzinfo=UTC)
        return self.to_instant(parsed.value, zone)
