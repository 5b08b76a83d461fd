"""
Nightlight — Time Grid Geometry.

Places timed fragments on a day column one unit tall per minute (1440 units).
Concurrent events in the same column are not packed into lanes; they overlap.
"""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Iterable

from nightlight.core.instants import local_tz, to_local
from nightlight.data.models import Fragment, RawEvent, TimeBlock

MINUTES_PER_DAY = 24 * 60
MIN_VISIBLE_MINUTES = 15


def time_block(
    fragment: Fragment,
    *,
    min_minutes: int | None = None,
    tz: tzinfo | None = None,
) -> TimeBlock:
    """Compute top offset and height of a timed fragment.

    Short, zero-length and inverted events are stretched to `min_minutes` so
    they stay visible and clickable.
    """
    if fragment.is_all_day or fragment.start is None or fragment.end is None:
        raise ValueError(
            f"Fragment {fragment.source_event_id} on {fragment.display_date} "
            "is all-day and has no place on the time grid"
        )
    if min_minutes is None:
        min_minutes = _configured_min_minutes()

    zone = local_tz(tz)
    start = to_local(fragment.start, zone)
    end = to_local(fragment.end, zone)

    top = start.hour * 60 + start.minute
    duration = int((end - start).total_seconds() // 60)
    return TimeBlock(top=top, height=max(duration, min_minutes))


def day_column(
    fragments: Iterable[Fragment],
    day: date,
    *,
    min_minutes: int | None = None,
    tz: tzinfo | None = None,
) -> list[tuple[Fragment, TimeBlock]]:
    """Timed fragments of one day with their blocks, in input order."""
    zone = local_tz(tz)
    return [
        (f, time_block(f, min_minutes=min_minutes, tz=zone))
        for f in fragments
        if f.display_date == day and not f.is_all_day
    ]


def is_past(event: RawEvent, now: datetime, tz: tzinfo | None = None) -> bool:
    """True once the event has ended."""
    zone = local_tz(tz)
    return to_local(now, zone) > to_local(event.end, zone)


def _configured_min_minutes() -> int:
    from nightlight.config import settings

    return max(settings.MIN_VISIBLE_MINUTES, MIN_VISIBLE_MINUTES)
