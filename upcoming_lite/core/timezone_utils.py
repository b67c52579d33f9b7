"""Timezone resolution, offset lookup and clock utilities for upcoming_lite."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache
from typing import ClassVar, Protocol

logger = logging.getLogger(__name__)

UTC_ZONE = "UTC"

TEST_TIME_ENV = "UPCOMING_LITE_TEST_TIME"


class TimezoneNames:
    """Lookup tables used to turn calendar zone names into IANA identifiers."""

    # Windows timezone names to IANA identifier mapping
    # Common Windows timezones used in ICS files from Outlook/Exchange
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        # US Timezones
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "US Mountain Standard Time": "America/Phoenix",
        "Atlantic Standard Time": "America/Halifax",
        # Europe
        "GMT Standard Time": "Europe/London",
        "Central European Standard Time": "Europe/Paris",
        "W. Europe Standard Time": "Europe/Berlin",
        "E. Europe Standard Time": "Europe/Bucharest",
        "FLE Standard Time": "Europe/Helsinki",
        "GTB Standard Time": "Europe/Athens",
        "Romance Standard Time": "Europe/Brussels",
        "Central Europe Standard Time": "Europe/Budapest",
        "Russian Standard Time": "Europe/Moscow",
        # Asia
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "Korea Standard Time": "Asia/Seoul",
        "Singapore Standard Time": "Asia/Singapore",
        "India Standard Time": "Asia/Kolkata",
        "Arabian Standard Time": "Asia/Dubai",
        "Israel Standard Time": "Asia/Jerusalem",
        # Australia & Pacific
        "AUS Eastern Standard Time": "Australia/Sydney",
        "E. Australia Standard Time": "Australia/Brisbane",
        "W. Australia Standard Time": "Australia/Perth",
        "New Zealand Standard Time": "Pacific/Auckland",
        # South America & Africa
        "E. South America Standard Time": "America/Sao_Paulo",
        "South Africa Standard Time": "Africa/Johannesburg",
        "Egypt Standard Time": "Africa/Cairo",
    }

    # Obsolete IANA names and common aliases found in older ICS files
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "UTC": "UTC",
        "GMT": "UTC",
        "Z": "UTC",
        "Etc/UTC": "UTC",
        "Etc/GMT": "UTC",
        "Universal": "UTC",
        "Zulu": "UTC",
        "Asia/Rangoon": "Asia/Yangon",
        "America/Godthab": "America/Nuuk",
    }


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert Windows timezone name to IANA timezone identifier."""
    return TimezoneNames.WINDOWS_TZ_MAP.get(windows_tz)


def resolve_timezone_alias(tz_name: str) -> str:
    """Resolve timezone alias to canonical IANA timezone identifier.

    Examples:
        >>> resolve_timezone_alias("US/Pacific")
        'America/Los_Angeles'
        >>> resolve_timezone_alias("GMT")
        'UTC'
    """
    return TimezoneNames.TZ_ALIAS_MAP.get(tz_name, tz_name)


@lru_cache(maxsize=64)
def normalize_timezone_name(tz_str: str | None) -> str | None:
    """Normalize timezone string to canonical IANA timezone identifier.

    Resolution order:
    1. Windows timezone name
    2. Alias / obsolete IANA name
    3. Validation with zoneinfo

    Calendar producers sometimes wrap TZID values in double quotes; those are stripped.

    Args:
        tz_str: Timezone string (Windows name, alias, or IANA identifier)

    Returns:
        Canonical IANA timezone identifier or None if the name cannot be resolved

    Examples:
        >>> normalize_timezone_name("Pacific Standard Time")
        'America/Los_Angeles'
        >>> normalize_timezone_name("Invalid/Timezone") is None
        True
    """
    if not tz_str:
        return None

    name = tz_str.strip().strip('"')
    if not name:
        return None

    windows_tz = windows_tz_to_iana(name)
    if windows_tz:
        return windows_tz

    resolved_tz = resolve_timezone_alias(name)
    try:
        zoneinfo.ZoneInfo(resolved_tz)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r", tz_str)
        return None
    return resolved_tz


class ZoneOffsetProvider(Protocol):
    """Capability answering "what is the UTC offset of this zone at this instant"."""

    def offset_at(self, instant: datetime.datetime, zone_name: str) -> datetime.timedelta | None:
        """Return the UTC offset of ``zone_name`` at ``instant``, or None for unknown zones."""
        ...


class ZoneInfoOffsetProvider:
    """Offset lookup backed by the system IANA database through zoneinfo."""

    def offset_at(self, instant: datetime.datetime, zone_name: str) -> datetime.timedelta | None:
        iana_name = normalize_timezone_name(zone_name)
        if iana_name is None:
            return None
        tz = zoneinfo.ZoneInfo(iana_name)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=datetime.UTC)
        return instant.astimezone(tz).utcoffset()


class FixedOffsetProvider:
    """Offset lookup returning a constant offset per zone name.

    Useful for deterministic tests and for feeds that only ever use standard time.
    """

    def __init__(self, offsets: dict[str, datetime.timedelta]):
        self.offsets = dict(offsets)

    def offset_at(self, instant: datetime.datetime, zone_name: str) -> datetime.timedelta | None:
        if zone_name == UTC_ZONE:
            return datetime.timedelta(0)
        return self.offsets.get(zone_name)


_default_provider = ZoneInfoOffsetProvider()


def get_default_offset_provider() -> ZoneOffsetProvider:
    """Return the process-wide zoneinfo-backed offset provider."""
    return _default_provider


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via the UPCOMING_LITE_TEST_TIME environment variable
    (ISO 8601, e.g. "2025-10-27T08:20:00-07:00"). Naive values are taken as UTC.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            from dateutil import parser as date_parser

            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is not None:
                return dt.astimezone(datetime.UTC)
            return dt.replace(tzinfo=datetime.UTC)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.datetime.now(datetime.UTC)


def start_of_day(
    instant: datetime.datetime,
    zone_name: str = UTC_ZONE,
    provider: ZoneOffsetProvider | None = None,
) -> datetime.datetime:
    """Return the UTC instant of local midnight (in ``zone_name``) of the day containing ``instant``.

    Unknown zones fall back to UTC midnight.
    """
    provider = provider or _default_provider
    offset = provider.offset_at(instant, zone_name) or datetime.timedelta(0)
    local = (instant.astimezone(datetime.UTC) + offset).replace(tzinfo=None)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    midnight_offset = provider.offset_at(midnight - offset, zone_name) or datetime.timedelta(0)
    return (midnight - midnight_offset).replace(tzinfo=datetime.UTC)
