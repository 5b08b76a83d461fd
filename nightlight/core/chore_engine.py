"""
Nightlight — Chore Period Engine.

Works out which chore period is active right now, which tasks belong to it,
and flips task status with an optimistic local update that is confirmed by
a refetch or rolled back when the write fails.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import TYPE_CHECKING

from nightlight.core.refresh import CoalescingRefresher
from nightlight.data.models import ChorePeriod, ChoreTask, TaskStatus
from nightlight.ports.source_port import ListUnavailable

if TYPE_CHECKING:
    from nightlight.ports.source_port import SourceFacade

logger = logging.getLogger(__name__)

UNASSIGNED_PERIOD = 0


def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a time."""
    value = value.strip()
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value, fmt).time()


def minute_of_day(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def active_period(
    now: time | datetime,
    periods: list[ChorePeriod],
) -> tuple[int, ChorePeriod] | None:
    """Return the first period containing `now` as (1-based index, period).

    Both ends of a period are inclusive. None means no period is active;
    callers show an idle state.
    """
    minute = minute_of_day(now)
    for index, period in enumerate(periods, start=1):
        start = minute_of_day(period.start_of_day)
        end = minute_of_day(period.end_of_day)
        if start <= minute <= end:
            return index, period
    return None


def tasks_for_period(tasks: list[ChoreTask], period_index: int) -> list[ChoreTask]:
    return [t for t in tasks if t.period_index == period_index]


class ChoreBoard:
    """Chore tasks across all managed lists, plus toggling."""

    def __init__(
        self,
        facade: SourceFacade,
        list_ids: list[str],
        periods: list[ChorePeriod],
        debounce_seconds: float | None = None,
    ) -> None:
        if debounce_seconds is None:
            from nightlight.config import settings

            debounce_seconds = settings.REFRESH_DEBOUNCE_MS / 1000

        self._facade = facade
        self.list_ids = list_ids
        self.periods = periods
        self.tasks: list[ChoreTask] = []
        # (list_id, identifier) -> (optimistic status, load generation when the write landed)
        self._overrides: dict[tuple[str, str], tuple[TaskStatus, int | None]] = {}
        self._generation = 0
        self._refresher = CoalescingRefresher("chores", self._load, debounce_seconds)

    async def refresh(self) -> None:
        """Reload every list now (folded into the trailing run if one is in flight)."""
        await self._refresher.run_now()

    def request_refresh(self) -> None:
        self._refresher.trigger()

    async def wait_idle(self) -> None:
        await self._refresher.wait_idle()

    async def _load(self) -> None:
        self._generation += 1
        generation = self._generation

        loaded: list[ChoreTask] = []
        for list_id in self.list_ids:
            try:
                items = await self._facade.list_task_items(list_id)
            except ListUnavailable as exc:
                logger.warning("Chore list %s unavailable: %s", list_id, exc)
                continue
            except Exception as exc:
                logger.error("Chore list %s failed: %s", list_id, exc)
                continue
            loaded.extend(items)

        self._apply_overrides(loaded, generation)
        self.tasks = loaded
        logger.debug("Loaded %d chore task(s) from %d list(s)", len(loaded), len(self.list_ids))

    def _apply_overrides(self, loaded: list[ChoreTask], generation: int) -> None:
        """Keep optimistic statuses that this load may predate.

        A load that started after a write landed reflects that write, so the
        override is dropped and the backend value stands.
        """
        by_key = {(t.list_id, t.identifier): t for t in loaded}
        for key, (status, landed_at) in list(self._overrides.items()):
            if landed_at is not None and generation > landed_at:
                del self._overrides[key]
                continue
            task = by_key.get(key)
            if task is not None:
                task.status = status

    def _set_status(self, key: tuple[str, str], status: TaskStatus) -> None:
        for task in self.tasks:
            if (task.list_id, task.identifier) == key:
                task.status = status

    def active_tasks(
        self, now: time | datetime,
    ) -> tuple[tuple[int, ChorePeriod] | None, list[ChoreTask]]:
        """Active period and its tasks; (None, []) when idle."""
        current = active_period(now, self.periods)
        if current is None:
            return None, []
        return current, tasks_for_period(self.tasks, current[0])

    def tasks_by_list(self, tasks: list[ChoreTask]) -> dict[str, list[ChoreTask]]:
        grouped: dict[str, list[ChoreTask]] = {list_id: [] for list_id in self.list_ids}
        for task in tasks:
            grouped.setdefault(task.list_id, []).append(task)
        return grouped

    async def toggle(self, task: ChoreTask) -> bool:
        """Flip a task's status.

        The local status changes immediately; the write goes to the facade and a
        successful write is reconciled with a refetch. A failed write restores
        the previous status and is not retried. Loads already in flight keep
        showing the new status until a load started after the write replaces it.

        Returns:
            True if the write was accepted, False if it was rolled back.
        """
        key = (task.list_id, task.identifier)
        previous = task.status
        task.status = previous.toggled()
        self._overrides[key] = (task.status, None)
        self._set_status(key, task.status)

        try:
            await self._facade.update_task_status(
                task.list_id, task.identifier, task.status
            )
        except Exception as exc:
            task.status = previous
            self._overrides.pop(key, None)
            self._set_status(key, previous)
            logger.error(
                "Toggle of '%s' in %s rejected, rolled back to %s: %s",
                task.label, task.list_id, previous.value, exc,
            )
            return False

        self._overrides[key] = (task.status, self._generation)
        logger.info("Chore '%s' in %s → %s", task.label, task.list_id, task.status.value)
        await self.refresh()
        return True
