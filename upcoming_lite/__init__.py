"""upcoming_lite - upcoming event occurrences from iCalendar text.

Parses VEVENT blocks, expands DAILY / WEEKLY / MONTHLY recurrence rules,
applies EXDATE exclusions and RECURRENCE-ID overrides, and returns a sorted,
limited list of occurrences.
"""

__version__ = "0.1.0"

from upcoming_lite.calendar.lite_models import LiteICSParseResult, LiteOccurrence
from upcoming_lite.calendar.lite_parser import LiteICSParser, parse_ics_events
from upcoming_lite.calendar.lite_upcoming import LiteUpcomingSelector, get_upcoming_events

__all__ = [
    "LiteICSParseResult",
    "LiteICSParser",
    "LiteOccurrence",
    "LiteUpcomingSelector",
    "get_upcoming_events",
    "parse_ics_events",
]
