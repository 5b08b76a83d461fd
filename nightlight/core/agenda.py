"""
Nightlight — Agenda Projector.

Builds the lookahead feed: one entry where each event starts (clamped to the
start of the window) and, for events spanning several days, a second entry
where it finishes.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, tzinfo
from typing import Iterable

from nightlight.core.instants import first_day, last_day, local_tz, to_local
from nightlight.data.models import AgendaEntry, AgendaEntryKind, RawEvent, ViewWindow

logger = logging.getLogger(__name__)


def project_agenda(
    events: Iterable[RawEvent],
    window: ViewWindow,
    tz: tzinfo | None = None,
) -> list[AgendaEntry]:
    """Project events onto the agenda window.

    Args:
        events: Merged raw events; their order breaks ties.
        window: Usually the agenda window `[today, today + horizon)`.
        tz: Local timezone; defaults to the configured TIMEZONE.

    Returns:
        Entries inside the window, sorted ascending by instant.
    """
    zone = local_tz(tz)
    entries: list[AgendaEntry] = []

    for event in events:
        start = to_local(event.start, zone)
        end = to_local(event.end, zone)
        # Zero-length events still occupy their start instant
        if end <= window.start and not (end == start == window.start):
            continue
        if start >= window.end:
            continue

        start_at = max(start, window.start)
        if _inside(start_at, window):
            entries.append(
                AgendaEntry(
                    kind=AgendaEntryKind.START,
                    at=start_at,
                    event=event,
                    is_all_day=event.is_all_day,
                )
            )

        begin = first_day(event.start, zone)
        finish = last_day(event.start, event.end, zone)
        if begin == finish:
            continue

        if event.is_all_day:
            end_at = datetime.combine(finish, time.min, tzinfo=zone)
        else:
            end_at = end
        if _inside(end_at, window):
            entries.append(
                AgendaEntry(
                    kind=AgendaEntryKind.END,
                    at=end_at,
                    event=event,
                    is_all_day=event.is_all_day,
                )
            )

    entries.sort(key=lambda e: e.at)
    logger.debug("Agenda projected %d entries", len(entries))
    return entries


def _inside(at: datetime, window: ViewWindow) -> bool:
    return window.start <= at < window.end
