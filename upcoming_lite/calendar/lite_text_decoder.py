"""Unescaping of iCalendar TEXT values - upcoming_lite."""

import re

# Single pass so that an escaped backslash never combines with the next character.
_ESCAPE_PATTERN = re.compile(r"\\([\\nN,;])")
_ESCAPE_PATTERN_NO_BACKSLASH = re.compile(r"\\([nN,;])")

_REPLACEMENTS = {
    "\\": "\\",
    "n": "\n",
    "N": "\n",
    ",": ",",
    ";": ";",
}


def decode_text(text: str, decode_escaped_backslash: bool = True) -> str:
    r"""Decode escaped ICS characters into their literal equivalents.

    ``\n`` and ``\N`` become a newline, ``\,`` a comma and ``\;`` a semicolon.
    With ``decode_escaped_backslash`` an escaped backslash (``\\``) becomes a single
    backslash. Any other backslash sequence is left as is.

    Examples:
        >>> decode_text(r"Room 1\, Building A")
        'Room 1, Building A'
        >>> decode_text("plain text")
        'plain text'
    """
    if not text or "\\" not in text:
        return text

    pattern = _ESCAPE_PATTERN if decode_escaped_backslash else _ESCAPE_PATTERN_NO_BACKSLASH
    return pattern.sub(lambda match: _REPLACEMENTS[match.group(1)], text)
