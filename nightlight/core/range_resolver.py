"""
Nightlight — Calendar Range Resolver.

Turns a reference date and a view mode into the `[start, end)` window the
view renders. Month and week views are Monday-first and always a whole number
of weeks; the agenda ignores the reference date and looks ahead from today.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta, tzinfo

from nightlight.core.instants import Instant, day_of, local_tz
from nightlight.data.models import ViewMode, ViewWindow

logger = logging.getLogger(__name__)


def resolve_window(
    reference: Instant,
    mode: ViewMode | str,
    *,
    today: date | None = None,
    tz: tzinfo | None = None,
    horizon_days: int | None = None,
) -> ViewWindow:
    """Compute the window a view renders around `reference`.

    Args:
        reference: Any instant inside the period to show.
        mode: month, week, day or agenda.
        today: Overrides the current local date (agenda only).
        tz: Local timezone; defaults to the configured TIMEZONE.
        horizon_days: Agenda lookahead; defaults to AGENDA_HORIZON_DAYS.

    Returns:
        ViewWindow with local-midnight bounds, end exclusive.
    """
    mode = ViewMode(mode)
    zone = local_tz(tz)
    ref_day = day_of(reference, zone)

    if mode is ViewMode.MONTH:
        first = ref_day.replace(day=1)
        last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
        # date.weekday() is Monday=0 regardless of locale
        start_day = first - timedelta(days=first.weekday())
        end_day = last + timedelta(days=6 - last.weekday() + 1)
    elif mode is ViewMode.WEEK:
        start_day = ref_day - timedelta(days=ref_day.weekday())
        end_day = start_day + timedelta(days=7)
    elif mode is ViewMode.DAY:
        start_day = ref_day
        end_day = ref_day + timedelta(days=1)
    else:
        if horizon_days is None:
            from nightlight.config import settings

            horizon_days = settings.AGENDA_HORIZON_DAYS
        start_day = today if today is not None else datetime.now(zone).date()
        end_day = start_day + timedelta(days=horizon_days)

    window = ViewWindow(
        mode=mode,
        start=_midnight(start_day, zone),
        end=_midnight(end_day, zone),
    )
    logger.debug(
        "Resolved %s window for %s: %s → %s",
        mode.value, ref_day, window.start, window.end,
    )
    return window


def shift_reference(reference: date, mode: ViewMode | str, direction: int) -> date:
    """Move the view pivot one page forwards (+1) or backwards (-1).

    Month steps keep the day of month, clamped to the target month's length.
    """
    mode = ViewMode(mode)
    if mode is ViewMode.MONTH:
        month_index = reference.year * 12 + (reference.month - 1) + direction
        year, month = divmod(month_index, 12)
        month += 1
        day = min(reference.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)
    if mode is ViewMode.WEEK:
        return reference + timedelta(days=7 * direction)
    return reference + timedelta(days=direction)


def _midnight(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)
