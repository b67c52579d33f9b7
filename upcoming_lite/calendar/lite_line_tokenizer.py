"""Content-line tokenizer for iCalendar text - upcoming_lite.

Two independent stages:

1. ``unfold_lines`` turns physical lines into logical lines by joining folded
   continuation lines onto the line they continue.
2. ``parse_content_line`` splits one logical line into name, parameters and value.

Neither stage knows about VEVENT blocks; assembling events is the job of
``lite_parser``.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

FOLD_MARKERS = (" ", "\t")

EVENT_BEGIN = "BEGIN:VEVENT"
EVENT_END = "END:VEVENT"


@dataclass(frozen=True)
class LiteContentLine:
    """One decoded ``NAME;PARAMS:VALUE`` content line."""

    name: str
    params_segment: str
    value: str

    @property
    def raw(self) -> str:
        """Full original line, parameters included."""
        return f"{self.params_segment}:{self.value}"


def split_physical_lines(ics_content: str) -> list[str]:
    """Split text on CRLF, CR or LF without touching leading whitespace."""
    if ics_content is None:
        raise TypeError("ICS content cannot be None")
    return _LINE_BREAK.split(ics_content)


def is_continuation(line: str) -> bool:
    """Check whether a physical line is a folded continuation of the previous one.

    Indented VEVENT markers still count as markers.
    """
    return line.startswith(FOLD_MARKERS) and line.strip() not in (EVENT_BEGIN, EVENT_END)


def _accepts_continuation(logical_line: str) -> bool:
    # Component markers and colon-less lines never carry folded values
    stripped = logical_line.strip()
    return ":" in logical_line and not stripped.startswith(("BEGIN:", "END:"))


def unfold_lines(lines: Iterable[str]) -> list[str]:
    """Join folded continuation lines onto the logical line they continue.

    Exactly one fold marker (space or tab) is removed from each continuation; the
    rest is appended verbatim to the most recent property line. Colon-less lines
    in between are passed through untouched. A continuation with nothing to
    continue (start of input, or after a BEGIN/END marker) is dropped.

    Examples:
        >>> unfold_lines(["DESCRIPTION:Hello", "  world"])
        ['DESCRIPTION:Hello world']
        >>> unfold_lines(["SUMMARY:Hello", "X-BROKEN", " world"])
        ['SUMMARY:Hello world', 'X-BROKEN']
    """
    logical: list[str] = []
    target: Optional[int] = None
    dropped = 0

    for line in lines:
        if is_continuation(line):
            if target is None:
                dropped += 1
            else:
                logical[target] += line[1:]
            continue

        if _accepts_continuation(line):
            target = len(logical)
        elif ":" in line:
            target = None
        logical.append(line)

    if dropped:
        logger.debug("Dropped %d continuation lines with no property to continue", dropped)
    return logical


def parse_content_line(line: str) -> Optional[LiteContentLine]:
    """Decode a logical line into name, parameter segment and value.

    The split happens at the first colon only, so values may contain colons
    (URLs, TZID-prefixed values). Lines without a colon yield None.

    Examples:
        >>> parse_content_line("DTSTART;TZID=Europe/Brussels:20251224T160000").name
        'DTSTART'
        >>> parse_content_line("URL:https://example.com/a").value
        'https://example.com/a'
    """
    if ":" not in line:
        return None

    params_segment, value = line.split(":", 1)
    name = params_segment.split(";", 1)[0]
    return LiteContentLine(name=name, params_segment=params_segment, value=value)


def iter_logical_lines(ics_content: str) -> list[str]:
    """Split and unfold ICS text in one step."""
    return unfold_lines(split_physical_lines(ics_content))
