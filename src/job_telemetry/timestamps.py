"""
RFC 3339 timestamp parsing and millisecond durations.

Durations are truncated toward zero and never clamped, so inconsistent inputs
(created-at after started-at) surface as negative values.
"""

import re
from datetime import datetime, timedelta, timezone

from .errors import InvalidTimestamp

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = timedelta(microseconds=1)


def parse_rfc3339(value: str, name: str = "timestamp") -> datetime:
    """Parse an RFC 3339 date-time into an aware datetime; name is used in error messages."""
    match = _RFC3339.fullmatch(value or "")
    if match is None:
        raise InvalidTimestamp(f"failed to parse {name}: {value!r} is not an RFC 3339 timestamp")
    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()
    # Sub-microsecond digits are dropped.
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    if zulu:
        tz = timezone.utc
    else:
        if int(off_h) > 23 or int(off_m) > 59:
            raise InvalidTimestamp(f"failed to parse {name}: offset out of range in {value!r}")
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            microsecond,
            tzinfo=tz,
        )
    except ValueError as e:
        raise InvalidTimestamp(f"failed to parse {name}: {e}") from e


def duration_ms(end: datetime, start: datetime) -> int:
    """Whole milliseconds from start to end, truncated toward zero; negative if end < start."""
    micros = (end - start) // _ONE_MICROSECOND
    if micros < 0:
        return -(-micros // 1000)
    return micros // 1000


def to_unix_nanos(value: datetime) -> int:
    """Nanoseconds since the epoch for an aware datetime, without float rounding."""
    return ((value - _EPOCH) // _ONE_MICROSECOND) * 1000


def utc_now() -> datetime:
    """Wall-clock now as an aware UTC datetime."""
    return datetime.now(timezone.utc)
