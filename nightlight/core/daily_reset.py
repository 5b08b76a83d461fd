"""
Nightlight — Daily Reset Scheduler.

Once per local calendar day, every completed chore in every managed list goes
back to pending. The check runs on every host refresh tick; the persisted
reset marker is the only thing that keeps it from running twice in a day.
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING

from nightlight.core.instants import local_tz
from nightlight.data.models import ResetReport, TaskStatus
from nightlight.ports.source_port import ListUnavailable

if TYPE_CHECKING:
    from nightlight.ports.marker_port import MarkerStore
    from nightlight.ports.source_port import SourceFacade

logger = logging.getLogger(__name__)

RESET_MARKER_KEY = "lastResetDate"


class DailyResetScheduler:
    """Runs the completed→pending sweep at most once per local day."""

    def __init__(
        self,
        facade: SourceFacade,
        store: MarkerStore,
        list_ids: list[str],
        tz: tzinfo | None = None,
    ) -> None:
        self._facade = facade
        self._store = store
        self.list_ids = list_ids
        self._tz = local_tz(tz)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def check(self, now: datetime | None = None) -> ResetReport | None:
        """Sweep if today's reset has not run yet.

        Args:
            now: Current time; defaults to the local wall clock.

        Returns:
            The sweep report, or None when the marker already holds today (or a
            sweep is in flight, or every list failed and the marker was kept).
        """
        if self._running:
            return None

        today = self._today(now)
        if self._store.get(RESET_MARKER_KEY) == today:
            return None

        self._running = True
        try:
            report = await self._sweep(today)
        finally:
            self._running = False

        if self.list_ids and len(report.lists_failed) == len(self.list_ids):
            logger.warning(
                "Daily reset for %s failed on every list; will retry next tick",
                today,
            )
            return None

        self._store.set(RESET_MARKER_KEY, today)
        logger.info(
            "Daily reset for %s: %d item(s) reset across %d list(s), %d failed",
            today, report.items_reset, report.lists_swept, report.items_failed,
        )
        return report

    def _today(self, now: datetime | None) -> str:
        if now is None:
            now = datetime.now(self._tz)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=self._tz)
        else:
            now = now.astimezone(self._tz)
        return now.date().isoformat()

    async def _sweep(self, today: str) -> ResetReport:
        report = ResetReport(day=today)
        for list_id in self.list_ids:
            try:
                items = await self._facade.list_task_items(list_id)
            except ListUnavailable as exc:
                logger.warning("Daily reset skipped list %s: %s", list_id, exc)
                report.lists_failed.append(list_id)
                continue
            except Exception as exc:
                logger.error("Daily reset failed to read list %s: %s", list_id, exc)
                report.lists_failed.append(list_id)
                continue

            for item in items:
                if item.status is not TaskStatus.COMPLETED:
                    continue
                try:
                    await self._facade.update_task_status(
                        list_id, item.identifier, TaskStatus.PENDING
                    )
                    report.items_reset += 1
                except Exception as exc:
                    logger.error(
                        "Daily reset could not reopen '%s' in %s: %s",
                        item.label, list_id, exc,
                    )
                    report.items_failed += 1
            report.lists_swept += 1
        return report
