"""Parsing and formatting of user-supplied time literals.

Accepted forms, tried in order:

1. ``SS`` / ``SS.fff`` - plain seconds
2. ``MM:SS`` / ``MM:SS.fff`` - minutes may exceed 59
3. ``HH:MM:SS`` / ``HH:MM:SS.fff`` - hours may exceed 23

Results are seconds as floats, rounded to millisecond precision.
"""

from __future__ import annotations

import math
import re

from gifclip.errors import TimestampErrorKind, TimestampParseError

_DECIMAL_RE = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$", re.ASCII)
_INTEGER_RE = re.compile(r"^\d+$", re.ASCII)


def _invalid_format(literal: str) -> TimestampParseError:
    return TimestampParseError(literal, TimestampErrorKind.INVALID_FORMAT)


def _invalid_value(literal: str, reason: str) -> TimestampParseError:
    return TimestampParseError(literal, TimestampErrorKind.INVALID_VALUE, reason)


def _parse_plain_seconds(literal: str, text: str) -> float:
    if _DECIMAL_RE.match(text):
        return round(float(text), 3)

    try:
        number = float(text)
    except ValueError:
        raise _invalid_format(literal) from None

    if number < 0:
        raise _invalid_value(literal, "must not be negative")
    if not math.isfinite(number):
        raise _invalid_value(literal, "must be finite")
    # Exponent notation and similar parse as floats but are not a grammar we accept
    raise _invalid_format(literal)


def parse_timestamp(value: str) -> float:
    """Parse a time literal into seconds.

    Args:
        value: ``SS``, ``MM:SS`` or ``HH:MM:SS``, fractional seconds allowed

    Returns:
        Offset in seconds (>= 0)

    Raises:
        TimestampParseError: ``INVALID_FORMAT`` if the literal matches none
            of the grammars, ``INVALID_VALUE`` if a component is negative,
            non-numeric or out of range for its unit.
    """
    literal = value
    text = value.strip()
    if not text:
        raise _invalid_format(literal)

    if ":" not in text:
        return _parse_plain_seconds(literal, text)

    fields = [field.strip() for field in text.split(":")]
    if len(fields) > 3 or any(not field for field in fields):
        raise _invalid_format(literal)

    *leading, seconds_field = fields

    for field in leading:
        if not _INTEGER_RE.match(field):
            raise _invalid_value(literal, f"{field!r} is not a whole number")

    if not _DECIMAL_RE.match(seconds_field):
        raise _invalid_value(literal, f"{seconds_field!r} is not a number of seconds")

    seconds = float(seconds_field)
    if seconds >= 60:
        raise _invalid_value(literal, "seconds must be below 60")

    if len(leading) == 2:
        hours, minutes = (int(field) for field in leading)
        if minutes >= 60:
            raise _invalid_value(literal, "minutes must be below 60")
    else:
        hours, minutes = 0, int(leading[0])

    return round(hours * 3600 + minutes * 60 + seconds, 3)


def format_timestamp(seconds: float) -> str:
    """Format seconds in the canonical ``M:SS[.fff]`` / ``H:MM:SS[.fff]`` form.

    ``parse_timestamp(format_timestamp(x)) == x`` for any non-negative
    millisecond-precision ``x``.
    """
    if seconds < 0:
        raise ValueError(f"Cannot format negative offset: {seconds}")

    total_ms = round(seconds * 1000)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)

    sec_str = f"{secs:02d}"
    if millis:
        sec_str += f".{millis:03d}"

    if hours:
        return f"{hours}:{minutes:02d}:{sec_str}"
    return f"{minutes}:{sec_str}"


def format_filename_timestamp(seconds: float) -> str:
    """Compact ``XmYs`` form used in generated output filenames."""
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m{secs}s"
