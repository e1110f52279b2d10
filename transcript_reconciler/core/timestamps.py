"""Timestamp text codec for display and round-trip parsing.

WHY: Timestamps appear as plain text at the start of edited paragraphs
("1:02.500 Speaker 2: ..."). The same text must render predictably and
parse back to the same seconds value, and hand-typed variants
("01:02,5", "[0:01:02.500]") must be accepted too.

HOW: format_timestamp() rounds to whole milliseconds and renders
M:SS.mmm (or S.mmm under a minute). parse_timestamp() strips optional
square brackets, accepts "," as the decimal separator and sums up to
three colon-separated fields.

RULES:
- Display: "M:SS.mmm" when minutes > 0, else "S.mmm"; minutes are not
  folded into hours ("75:03.000")
- Parse: "SS.f+", "S.mmm", "M:SS[.mmm]", "H:MM:SS[.mmm]", optional [brackets]
- Bare two-digit seconds take any number of fractional digits ("05.5",
  "12.25"); single-digit seconds need exactly three, so prose numbers
  like "3.5" are not mistaken for timestamps
- Invalid text raises ValueError
"""

from __future__ import annotations

import re

_TIMESTAMP_RE = re.compile(
    r"^\[?"
    r"(?:"
    r"(?P<clock>\d{1,3}:(?:\d{2}:)?\d{2}(?:[.,]\d+)?)"
    r"|"
    r"(?P<seconds>\d{2}[.,]\d+|\d[.,]\d{3})"
    r")"
    r"\]?$"
)


def format_timestamp(seconds: float) -> str:
    """Render seconds as "M:SS.mmm" or "S.mmm".

    >>> format_timestamp(62.5)
    '1:02.500'
    >>> format_timestamp(4.25)
    '4.250'
    """
    total_ms = int(round(max(seconds, 0.0) * 1000))
    minutes, remainder_ms = divmod(total_ms, 60_000)
    secs, millis = divmod(remainder_ms, 1000)
    if minutes > 0:
        return "{}:{:02d}.{:03d}".format(minutes, secs, millis)
    return "{}.{:03d}".format(secs, millis)


def is_timestamp_token(text: str) -> bool:
    """True if text is a single timestamp token."""
    return _TIMESTAMP_RE.match(text) is not None


def parse_timestamp(text: str) -> float:
    """Parse a timestamp token into float seconds.

    Raises:
        ValueError: If text is not a recognised timestamp.
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if match is None:
        raise ValueError("Not a timestamp: {!r}".format(text))

    value = match.group("clock") or match.group("seconds")
    fields = value.replace(",", ".").split(":")
    total = 0.0
    for field_text in fields:
        total = total * 60 + float(field_text)
    return total
