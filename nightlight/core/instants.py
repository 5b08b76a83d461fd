"""Helpers for instants that may be timed (datetime) or date-only (date).

`datetime` is a subclass of `date`, so every check here tests for `datetime`
first. Naive datetimes are read as wall-clock time in the local timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

Instant = Union[date, datetime]


def local_tz(tz: tzinfo | None = None) -> tzinfo:
    """Return `tz`, or the configured TIMEZONE when it is None."""
    if tz is not None:
        return tz
    from nightlight.config import settings

    return ZoneInfo(settings.TIMEZONE)


def is_timed(value: Instant) -> bool:
    return isinstance(value, datetime)


def to_local(value: Instant, tz: tzinfo | None = None) -> datetime:
    """Convert any instant to an aware datetime in the local timezone.

    Date-only values map to local midnight of that day.
    """
    zone = local_tz(tz)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=zone)
        return value.astimezone(zone)
    return datetime.combine(value, time.min, tzinfo=zone)


def day_of(value: Instant, tz: tzinfo | None = None) -> date:
    """Calendar day an instant falls on, in local time."""
    if isinstance(value, datetime):
        return to_local(value, tz).date()
    return value


def instant_sort_key(value: Instant, tz: tzinfo | None = None) -> datetime:
    return to_local(value, tz)


def first_day(start: Instant, tz: tzinfo | None = None) -> date:
    return day_of(start, tz)


def last_day(start: Instant, end: Instant, tz: tzinfo | None = None) -> date:
    """Last calendar day occupied by an event running from `start` to `end`.

    The end is an exclusive boundary for both kinds: a date-only end names the
    first day *not* occupied, and a timed end at exactly local midnight does not
    occupy the day that begins there.
    """
    if not isinstance(start, datetime):
        end_day = day_of(end, tz)
        if end_day <= start:
            return start
        return end_day - timedelta(days=1)

    local_start = to_local(start, tz)
    local_end = to_local(end, tz)
    if local_end <= local_start:
        return local_start.date()
    return (local_end - timedelta(microseconds=1)).date()


def iter_days(first: date, last: date):
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def parse_instant(raw: str | dict) -> Instant:
    """Parse an ISO string, or a `{"dateTime": ...}` / `{"date": ...}` mapping.

    `YYYY-MM-DD` becomes a date; anything else goes through
    `datetime.fromisoformat`.
    """
    if isinstance(raw, dict):
        raw = raw.get("dateTime") or raw.get("date") or ""
    raw = raw.strip()
    if not raw:
        raise ValueError("Empty instant")
    if len(raw) == 10 and "T" not in raw:
        return date.fromisoformat(raw)
    return datetime.fromisoformat(raw)
