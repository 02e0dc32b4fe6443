"""Helpers for working with timezone-aware datetimes and time-of-day windows."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)
_TIME_OF_DAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?$"
)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` to aware UTC.

    SQLite hands back naive datetimes; every stored value is written in UTC, so
    a missing ``tzinfo`` is read as UTC.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@lru_cache(maxsize=64)
def resolve_timezone(tz_name: str | None) -> tzinfo:
    """Resolve an IANA name or a ``UTC+05:30`` style offset, falling back to UTC."""

    name = (tz_name or "").strip()
    if not name or name.upper() in ("UTC", "GMT", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc


def local_time_of_day(now: datetime, tz_name: str | None) -> time:
    """Return the wall-clock time of ``now`` in ``tz_name``, truncated to minutes."""

    localized = ensure_utc(now).astimezone(resolve_timezone(tz_name))
    return time(localized.hour, localized.minute)


def parse_time_of_day(value: str | time | None) -> time | None:
    """Parse ``HH:MM`` (or ``HH:MM:SS``) into a ``time``; ``None`` when unparseable."""

    if value is None:
        return None
    if isinstance(value, time):
        return value
    match = _TIME_OF_DAY_PATTERN.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group("hour")), int(match.group("minute"))
    second = int(match.group("second") or 0)
    if hour > 23 or minute > 59 or second > 59:
        return None
    return time(hour, minute, second)


def is_within_window(current: time, start: time, end: time) -> bool:
    """Check whether ``current`` falls inside ``[start, end]``.

    Comparison is at minute resolution and inclusive at both ends. A window
    whose start is after its end wraps past midnight (22:00-08:00).
    """

    def minutes(value: time) -> int:
        return value.hour * 60 + value.minute

    now_m, start_m, end_m = minutes(current), minutes(start), minutes(end)
    if start_m <= end_m:
        return start_m <= now_m <= end_m
    return now_m >= start_m or now_m <= end_m
