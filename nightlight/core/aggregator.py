"""
Nightlight — Event Aggregator.

Fetches events from every visible calendar source in parallel, tags them with
their source's name and color, and merges them into one list. A failing
source contributes nothing; it never takes the other sources down with it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

from nightlight.core.refresh import CoalescingRefresher
from nightlight.data.models import CalendarSource, RawEvent, ViewWindow
from nightlight.ports.source_port import SourceUnavailable

if TYPE_CHECKING:
    from nightlight.ports.source_port import SourceFacade

logger = logging.getLogger(__name__)


async def aggregate_events(
    facade: SourceFacade,
    sources: list[CalendarSource],
    window: ViewWindow,
) -> list[RawEvent]:
    """Fetch and merge events of all visible sources over `window`.

    Fetches fan out concurrently and are joined before anything is returned,
    so callers never see a partial merge.
    """
    visible = [s for s in sources if s.visible]
    results = await asyncio.gather(
        *(_fetch_source(facade, source, window) for source in visible)
    )

    merged: list[RawEvent] = []
    for events in results:
        merged.extend(events)

    logger.info(
        "Aggregated %d event(s) from %d source(s) for %s window %s → %s",
        len(merged), len(visible), window.mode.value,
        window.first_day, window.last_day,
    )
    return merged


async def _fetch_source(
    facade: SourceFacade,
    source: CalendarSource,
    window: ViewWindow,
) -> list[RawEvent]:
    try:
        events = await facade.fetch_events(source.id, window.start, window.end)
    except SourceUnavailable as exc:
        logger.warning("Calendar source %s unavailable: %s", source.id, exc)
        return []
    except Exception as exc:
        logger.error("Calendar source %s failed: %s", source.id, exc)
        return []

    return [
        dataclasses.replace(
            ev,
            source_id=source.id,
            source_name=source.display_name,
            color=source.color,
        )
        for ev in events
    ]


class EventAggregator:
    """Holds the merged event list and keeps it in step with its inputs.

    Changing the window, the visible sources or the host state triggers a
    debounced refetch; the latest completed cycle always wins.
    """

    def __init__(
        self,
        facade: SourceFacade,
        sources: list[CalendarSource],
        debounce_seconds: float | None = None,
    ) -> None:
        if debounce_seconds is None:
            from nightlight.config import settings

            debounce_seconds = settings.REFRESH_DEBOUNCE_MS / 1000

        self._facade = facade
        self.sources = sources
        self.window: ViewWindow | None = None
        self.events: list[RawEvent] = []
        self._refresher = CoalescingRefresher("events", self.fetch, debounce_seconds)

    @property
    def busy(self) -> bool:
        return self._refresher.busy

    @property
    def refresh_pending(self) -> bool:
        return self._refresher.dirty

    async def fetch(self) -> None:
        """Run one fetch cycle for the current window."""
        if self.window is None:
            return
        self.events = await aggregate_events(self._facade, self.sources, self.window)

    def visible_events(self) -> list[RawEvent]:
        visible_ids = {s.id for s in self.sources if s.visible}
        return [e for e in self.events if e.source_id in visible_ids]

    def set_window(self, window: ViewWindow) -> None:
        if window == self.window:
            return
        self.window = window
        self.request_refresh()

    def set_source_visibility(self, source_id: str, visible: bool) -> None:
        for source in self.sources:
            if source.id == source_id and source.visible != visible:
                source.visible = visible
                self.request_refresh()
                return

    def toggle_source(self, source_id: str) -> None:
        for source in self.sources:
            if source.id == source_id:
                self.set_source_visibility(source_id, not source.visible)
                return
        logger.warning("Unknown calendar source: %s", source_id)

    def on_host_refresh(self) -> None:
        self.request_refresh()

    def request_refresh(self) -> None:
        self._refresher.trigger()

    async def wait_idle(self) -> None:
        await self._refresher.wait_idle()
