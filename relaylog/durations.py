"""
Duration formatting for rendered log arguments.

Converts durations to compact human-readable strings at nanosecond
precision, so a timedelta argument reads as "4.001μs" rather than a raw
integer.

Example Usage:
    >>> format_duration(4_001)
    '4.001μs'

    >>> format_duration(90 * NANOS_PER_SECOND)
    '1m30s'

    >>> format_timedelta(timedelta(hours=1, seconds=1, milliseconds=500))
    '1h0m1.5s'
"""

from datetime import timedelta

# Time conversion constants
NANOS_PER_MICROSECOND = 1_000
NANOS_PER_MILLISECOND = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MINUTE = 60 * NANOS_PER_SECOND
NANOS_PER_HOUR = 60 * NANOS_PER_MINUTE


def _with_fraction(value: int, unit: int) -> str:
    """Render value / unit with trailing fractional zeros stripped."""
    whole, frac = divmod(value, unit)
    if not frac:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def format_duration(nanos: int) -> str:
    """
    Format a duration given in nanoseconds.

    Sub-second durations use the largest of ns/μs/ms that keeps the integer
    part non-zero; longer durations are split into hours, minutes and
    (fractional) seconds, omitting leading zero units.

    Args:
        nanos: Duration in nanoseconds (may be negative)

    Returns:
        Formatted duration string
    """
    if nanos == 0:
        return "0s"

    sign = "-" if nanos < 0 else ""
    n = abs(nanos)

    if n < NANOS_PER_MICROSECOND:
        return f"{sign}{n}ns"
    if n < NANOS_PER_MILLISECOND:
        return f"{sign}{_with_fraction(n, NANOS_PER_MICROSECOND)}μs"
    if n < NANOS_PER_SECOND:
        return f"{sign}{_with_fraction(n, NANOS_PER_MILLISECOND)}ms"

    hours, rem = divmod(n, NANOS_PER_HOUR)
    minutes, rem = divmod(rem, NANOS_PER_MINUTE)
    seconds = _with_fraction(rem, NANOS_PER_SECOND) + "s"

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


def timedelta_to_nanos(delta: timedelta) -> int:
    """Convert a timedelta to integer nanoseconds (microsecond resolution)."""
    return (delta // timedelta(microseconds=1)) * NANOS_PER_MICROSECOND


def format_timedelta(delta: timedelta) -> str:
    """Format a timedelta as a compact duration string."""
    return format_duration(timedelta_to_nanos(delta))
