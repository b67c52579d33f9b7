"""Data models for ICS calendar processing - upcoming_lite."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from upcoming_lite.calendar.lite_datetime_utils import serialize_datetime_utc
from upcoming_lite.core.timezone_utils import now_utc as _now_utc

# Property name -> bare value, or the ordered raw lines of a multi-valued property
RawEvent = dict[str, Union[str, list[str]]]

# RRULE keyword -> value, e.g. {"FREQ": "WEEKLY", "BYDAY": "MO,WE"}
ParsedRule = dict[str, str]


class LiteFrequency(str, Enum):
    """Recurrence frequencies the occurrence generator can step."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class LiteOccurrence(BaseModel):
    """A single concrete upcoming event occurrence."""

    title: str = Field(..., description="Event title (decoded SUMMARY)")
    description: str = Field(default="", description="Decoded DESCRIPTION")
    location: str = Field(default="", description="Decoded LOCATION")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: Optional[datetime] = Field(default=None, description="End instant (UTC)")
    url: str = Field(default="", description="Event URL")
    is_recurring: bool = Field(default=False, description="Generated from a recurrence rule")

    uid: Optional[str] = Field(default=None, description="UID of the source event")
    is_all_day: bool = Field(default=False, description="DTSTART was a date-only value")

    model_config = ConfigDict(frozen=True)

    @field_serializer("start")
    def serialize_start(self, dt: datetime) -> str:
        """Serialize start to ISO format with Z suffix."""
        return serialize_datetime_utc(dt)

    @field_serializer("end", when_used="unless-none")
    def serialize_end(self, dt: datetime) -> str:
        """Serialize end to ISO format with Z suffix."""
        return serialize_datetime_utc(dt)


class LiteICSParseResult(BaseModel):
    """Result of ICS parsing operation."""

    success: bool
    events: list[RawEvent] = Field(default_factory=list, description="Parsed VEVENT property maps")
    calendar_timezone: Optional[str] = Field(default=None, description="X-WR-TIMEZONE value")

    # Parse statistics
    event_count: int = 0
    recurring_event_count: int = 0
    override_count: int = 0
    skipped_event_count: int = 0

    warnings: list[str] = Field(default_factory=list)
    parse_time: datetime = Field(default_factory=_now_utc)
