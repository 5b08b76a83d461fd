"""
Nightlight — Event Fragmenter.

Splits raw events into one fragment per calendar day so every view can
place them by day. Single-day events keep their timed bounds for the time
grid; anything spanning days becomes a run of all-day fragments.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Iterable

from nightlight.core.instants import first_day, iter_days, last_day, local_tz
from nightlight.data.models import Fragment, RawEvent, ViewWindow

logger = logging.getLogger(__name__)


def fragment_events(
    events: Iterable[RawEvent],
    window: ViewWindow | None = None,
    tz: tzinfo | None = None,
) -> list[Fragment]:
    """Project events onto the calendar days they occupy.

    Args:
        events: Merged raw events, any order.
        window: Only days inside the window are emitted; None means unbounded.
        tz: Local timezone; defaults to the configured TIMEZONE.

    Returns:
        Fragments ordered by display date, stable with respect to input order.
        Only the event's own first day is not a continuation, so an event
        that began before the window shows as continuing on every visible day.
    """
    zone = local_tz(tz)
    fragments: list[Fragment] = []

    for event in events:
        begin = first_day(event.start, zone)
        finish = last_day(event.start, event.end, zone)

        if window is not None and (
            finish < window.first_day or begin > window.last_day
        ):
            continue

        if begin == finish:
            fragments.append(
                Fragment(
                    source_event_id=event.event_id,
                    display_date=begin,
                    is_all_day=event.is_all_day,
                    is_continuation=False,
                    event=event,
                    start=event.start,
                    end=event.end,
                )
            )
            continue

        walk_from, walk_to = _clip(begin, finish, window)
        for day in iter_days(walk_from, walk_to):
            fragments.append(
                Fragment(
                    source_event_id=event.event_id,
                    display_date=day,
                    is_all_day=True,
                    is_continuation=day != begin,
                    event=event,
                )
            )

    fragments.sort(key=lambda f: f.display_date)
    logger.debug("Fragmented events into %d fragment(s)", len(fragments))
    return fragments


def fragments_on(fragments: Iterable[Fragment], day: date) -> list[Fragment]:
    """Fragments shown in one day cell."""
    return [f for f in fragments if f.display_date == day]


def _clip(
    begin: date, finish: date, window: ViewWindow | None,
) -> tuple[date, date]:
    if window is None:
        return begin, finish
    return max(begin, window.first_day), min(finish, window.last_day)
