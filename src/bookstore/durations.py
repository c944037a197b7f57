"""
Human readable duration strings.

Accepts the compact notation used in deployment configs ("1d", "12h",
"30 minutes", "1.5 hours"). A bare number is read as milliseconds.
"""

import re

_DURATION_RE = re.compile(
    r"^\s*(?P<value>-?(?:\d+)?\.?\d+)\s*(?P<unit>[a-z]*)\s*$",
    re.IGNORECASE,
)

_SECOND = 1.0
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = 365.25 * _DAY

_UNITS: dict[str, float] = {
    "": 0.001,
    "ms": 0.001,
    "msec": 0.001,
    "msecs": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": _SECOND,
    "sec": _SECOND,
    "secs": _SECOND,
    "second": _SECOND,
    "seconds": _SECOND,
    "m": _MINUTE,
    "min": _MINUTE,
    "mins": _MINUTE,
    "minute": _MINUTE,
    "minutes": _MINUTE,
    "h": _HOUR,
    "hr": _HOUR,
    "hrs": _HOUR,
    "hour": _HOUR,
    "hours": _HOUR,
    "d": _DAY,
    "day": _DAY,
    "days": _DAY,
    "w": _WEEK,
    "week": _WEEK,
    "weeks": _WEEK,
    "y": _YEAR,
    "yr": _YEAR,
    "yrs": _YEAR,
    "year": _YEAR,
    "years": _YEAR,
}


def parse_duration(value: str) -> float:
    """
    Convert a duration string into seconds.

    Args:
        value: Duration such as "1d", "1 day", "2 hours" or "500ms"

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string is not a recognised duration
    """
    match = _DURATION_RE.match(value or "")
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")

    unit = match.group("unit").lower()
    if unit not in _UNITS:
        raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")

    return float(match.group("value")) * _UNITS[unit]


def ttl_seconds(value: str) -> int:
    """Duration string as a whole number of seconds usable as a key TTL."""
    seconds = round(parse_duration(value))
    if seconds < 1:
        raise ValueError(f"Duration {value!r} is shorter than one second")
    return seconds
