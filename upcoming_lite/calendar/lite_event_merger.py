"""RECURRENCE-ID override processing - upcoming_lite.

This module matches override events (events carrying RECURRENCE-ID) to the
occurrences generated from their master series and substitutes the fields
the override supplies.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Optional

from upcoming_lite.calendar.lite_datetime_utils import (
    LiteDateTimeNormalizer,
    extract_tzid,
    get_event_timezone,
    match_key,
)
from upcoming_lite.calendar.lite_models import LiteOccurrence, RawEvent
from upcoming_lite.calendar.lite_rrule_expander import RRuleExpanderConfig
from upcoming_lite.calendar.lite_text_decoder import decode_text
from upcoming_lite.core.timezone_utils import UTC_ZONE

logger = logging.getLogger(__name__)


def strip_recurrence_id_prefix(recurrence_id: str) -> str:
    """Drop a ``TZID=...:`` prefix from a RECURRENCE-ID value.

    Examples:
        >>> strip_recurrence_id_prefix("TZID=Europe/Brussels:20251224T160000")
        '20251224T160000'
        >>> strip_recurrence_id_prefix("20251224T160000Z")
        '20251224T160000Z'
    """
    if "TZID=" in recurrence_id and ":" in recurrence_id:
        return recurrence_id.rsplit(":", 1)[1]
    return recurrence_id


class LiteEventMerger:
    """Applies RECURRENCE-ID overrides to generated occurrences."""

    def __init__(
        self,
        settings: Any = None,
        normalizer: Optional[LiteDateTimeNormalizer] = None,
    ):
        self.config = RRuleExpanderConfig.from_settings(settings)
        self.normalizer = normalizer or LiteDateTimeNormalizer()

    def group_overrides(self, events: Iterable[RawEvent]) -> dict[str, list[RawEvent]]:
        """Group override events by UID, keeping their input order."""
        overrides: dict[str, list[RawEvent]] = {}
        for event in events:
            uid = event.get("UID")
            key = uid if isinstance(uid, str) else ""
            overrides.setdefault(key, []).append(event)
        return overrides

    def _override_key(self, override: RawEvent, default_zone: str) -> Optional[str]:
        recurrence_id = override.get("RECURRENCE-ID")
        if not isinstance(recurrence_id, str):
            return None

        zone = get_event_timezone(override, default_zone)
        raw = override.get("RECURRENCE-ID_RAW")
        zone = extract_tzid(raw if isinstance(raw, str) else None, zone)

        instant = self.normalizer.normalize(strip_recurrence_id_prefix(recurrence_id), zone)
        if instant is None:
            logger.debug("Unparseable RECURRENCE-ID %r on %s", recurrence_id, override.get("UID"))
            return None
        return match_key(instant, self.config.match_precision)

    def _parse_override_time(
        self, override: RawEvent, name: str, zone: str
    ) -> Optional[datetime]:
        value = override.get(name)
        if not isinstance(value, str):
            return None
        raw = override.get(f"{name}_RAW")
        return self.normalizer.normalize(
            value, extract_tzid(raw if isinstance(raw, str) else None, zone)
        )

    def apply_override(self, occurrence: LiteOccurrence, override: RawEvent, zone: str) -> LiteOccurrence:
        """Return a copy of ``occurrence`` with the fields the override supplies."""

        def _text(name: str, fallback: str) -> str:
            value = override.get(name)
            if not isinstance(value, str) or not value:
                return fallback
            return decode_text(value, self.config.decode_escaped_backslash)

        url = override.get("URL")
        start = self._parse_override_time(override, "DTSTART", zone)
        end = self._parse_override_time(override, "DTEND", zone)

        return occurrence.model_copy(
            update={
                "title": _text("SUMMARY", occurrence.title),
                "description": _text("DESCRIPTION", occurrence.description),
                "location": _text("LOCATION", occurrence.location),
                "start": start if start is not None else occurrence.start,
                "end": end if end is not None else occurrence.end,
                "url": url if isinstance(url, str) and url else occurrence.url,
                "is_recurring": True,
            }
        )

    def resolve(
        self,
        occurrence: LiteOccurrence,
        overrides: list[RawEvent],
        default_zone: str = UTC_ZONE,
    ) -> LiteOccurrence:
        """Substitute the first override whose RECURRENCE-ID matches the occurrence start.

        Args:
            occurrence: Generated occurrence of a recurring series
            overrides: Override events sharing the series UID
            default_zone: Zone used when an override names none

        Returns:
            The overridden occurrence, or the original one when nothing matches
        """
        if not overrides:
            return occurrence

        occurrence_key = match_key(occurrence.start, self.config.match_precision)
        for override in overrides:
            if self._override_key(override, default_zone) != occurrence_key:
                continue

            zone = get_event_timezone(override, default_zone)
            logger.debug(
                "RECURRENCE-ID override applied to %s at %s", occurrence.uid, occurrence_key
            )
            return self.apply_override(occurrence, override, zone)

        return occurrence

    def resolve_all(
        self,
        occurrences: Iterable[LiteOccurrence],
        overrides_by_uid: dict[str, list[RawEvent]],
        uid: Optional[str],
        default_zone: str = UTC_ZONE,
    ) -> list[LiteOccurrence]:
        """Resolve every occurrence of one series against that series' overrides."""
        overrides = overrides_by_uid.get(uid or "", [])
        return [self.resolve(occurrence, overrides, default_zone) for occurrence in occurrences]
