"""
Nightlight — Dashboard Host.

Owns the view state (mode, reference date, visible sources) and the refresh
loop. Every tick re-derives the window, nudges the event and chore refreshers
and runs the daily reset check; `snapshot()` recomputes everything a renderer
needs from the latest fetched data.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Callable

from nightlight.core.agenda import project_agenda
from nightlight.core.aggregator import EventAggregator
from nightlight.core.chore_engine import ChoreBoard
from nightlight.core.daily_reset import DailyResetScheduler
from nightlight.core.fragmenter import fragment_events
from nightlight.core.instants import local_tz
from nightlight.core.range_resolver import resolve_window, shift_reference
from nightlight.data.models import (
    AgendaEntry,
    CalendarSource,
    ChorePeriod,
    ChoreTask,
    Fragment,
    ViewMode,
    ViewWindow,
)

if TYPE_CHECKING:
    from nightlight.ports.marker_port import MarkerStore
    from nightlight.ports.source_port import SourceFacade

logger = logging.getLogger(__name__)

# Month-cell click: more events than this opens the day view, else the agenda
_DAY_VIEW_EVENT_THRESHOLD = 2


@dataclass
class DashboardSnapshot:
    """Derived, display-ready state for one render."""

    window: ViewWindow
    fragments: list[Fragment] = field(default_factory=list)
    agenda: list[AgendaEntry] = field(default_factory=list)
    active_period: tuple[int, ChorePeriod] | None = None
    active_tasks: list[ChoreTask] = field(default_factory=list)


class DashboardHost:
    """Wires the calendar engine and the chore scheduler to one source facade."""

    def __init__(
        self,
        facade: SourceFacade,
        store: MarkerStore,
        sources: list[CalendarSource],
        chore_lists: list[str],
        periods: list[ChorePeriod],
        *,
        tz: tzinfo | None = None,
        debounce_seconds: float | None = None,
        interval_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if interval_seconds is None:
            from nightlight.config import settings

            interval_seconds = settings.REFRESH_INTERVAL_SECONDS

        self._tz = local_tz(tz)
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._interval = interval_seconds

        self.aggregator = EventAggregator(facade, sources, debounce_seconds)
        self.chores = ChoreBoard(facade, chore_lists, periods, debounce_seconds)
        self.reset = DailyResetScheduler(facade, store, chore_lists, tz=self._tz)

        self.mode = ViewMode.MONTH
        self.reference: date = self._now().date()

    def _now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def window(self) -> ViewWindow:
        return resolve_window(
            self.reference, self.mode, today=self._now().date(), tz=self._tz,
        )

    def set_view(
        self, mode: ViewMode | str | None = None, reference: date | None = None,
    ) -> ViewWindow:
        if mode is not None:
            self.mode = ViewMode(mode)
        if reference is not None:
            self.reference = reference
        window = self.window()
        self.aggregator.set_window(window)
        return window

    def navigate(self, direction: int) -> ViewWindow:
        """Page the view forwards (+1) or backwards (-1)."""
        return self.set_view(
            reference=shift_reference(self.reference, self.mode, direction)
        )

    def go_to_today(self) -> ViewWindow:
        return self.set_view(reference=self._now().date())

    def select_month_day(self, day: date, events_count: int) -> ViewWindow:
        """Drill into a month cell: busy days open the day view, quiet ones the agenda."""
        if events_count > _DAY_VIEW_EVENT_THRESHOLD:
            return self.set_view(ViewMode.DAY, day)
        return self.set_view(ViewMode.AGENDA, day)

    def toggle_source(self, source_id: str) -> None:
        self.aggregator.toggle_source(source_id)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def on_state_refresh(self) -> None:
        """One host-state tick."""
        self.aggregator.set_window(self.window())
        self.aggregator.on_host_refresh()
        self.chores.request_refresh()

        report = await self.reset.check(self._now())
        if report is not None and report.items_reset:
            self.chores.request_refresh()

    async def wait_idle(self) -> None:
        await self.aggregator.wait_idle()
        await self.chores.wait_idle()

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Tick every REFRESH_INTERVAL_SECONDS until `stop` is set."""
        stop = stop or asyncio.Event()
        logger.info("Dashboard host started (tick every %ss)", self._interval)
        while not stop.is_set():
            try:
                await self.on_state_refresh()
            except Exception as exc:
                logger.error("Host refresh tick failed: %s", exc)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
        await self.wait_idle()
        logger.info("Dashboard host stopped")

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def snapshot(self) -> DashboardSnapshot:
        window = self.window()
        events = self.aggregator.visible_events()
        snapshot = DashboardSnapshot(window=window)

        if self.mode is ViewMode.AGENDA:
            snapshot.agenda = project_agenda(events, window, tz=self._tz)
        else:
            snapshot.fragments = fragment_events(events, window, tz=self._tz)

        period, tasks = self.chores.active_tasks(self._now())
        snapshot.active_period = period
        snapshot.active_tasks = tasks
        return snapshot


def build_host() -> DashboardHost:
    """Build a host from settings."""
    from nightlight.adapters.facade_factory import create_source_facade
    from nightlight.config import settings
    from nightlight.data.db import MarkerDB

    return DashboardHost(
        facade=create_source_facade(),
        store=MarkerDB(),
        sources=list(settings.CALENDAR_SOURCES),
        chore_lists=list(settings.CHORE_LISTS),
        periods=list(settings.CHORE_PERIODS),
    )


def main() -> None:
    host = build_host()
    try:
        asyncio.run(host.run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
