"""
Nightlight — Coalescing Refresher.

Debounces bursts of refresh triggers into one run of an async action and
never lets two runs of the same action overlap. A trigger that arrives while
a run is in flight schedules exactly one trailing run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class CoalescingRefresher:
    """Debounced, busy-guarded runner for one logical refresh operation."""

    def __init__(
        self,
        name: str,
        action: Callable[[], Awaitable[None]],
        debounce_seconds: float,
    ) -> None:
        self._name = name
        self._action = action
        self._debounce = debounce_seconds
        self._pending: asyncio.Task | None = None
        self._idle: asyncio.Event | None = None
        self._busy = False
        self._rerun = False
        self._dirty = False
        self.runs = 0

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def dirty(self) -> bool:
        """A run was requested with no event loop to schedule it on."""
        return self._dirty

    def trigger(self) -> None:
        """Request a debounced run.

        Outside a running event loop the request is only recorded; the next
        trigger or run_now inside the loop carries it out.
        """
        if self._busy:
            self._rerun = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dirty = True
            logger.debug("Refresh '%s' requested outside the event loop; deferred", self._name)
            return

        pending = self._pending
        if (
            pending is not None
            and not pending.done()
            and pending is not asyncio.current_task()
        ):
            pending.cancel()
        self._dirty = False
        self._pending = loop.create_task(self._run_after_delay())

    async def run_now(self) -> bool:
        """Run the action immediately unless a run is in flight.

        Returns:
            True if the action ran, False if it was folded into the trailing run.
        """
        if self._busy:
            self._rerun = True
            return False

        self._busy = True
        self._dirty = False
        self._idle = asyncio.Event()
        try:
            await self._action()
            self.runs += 1
        except Exception as exc:
            logger.error("Refresh '%s' failed: %s", self._name, exc)
        finally:
            self._busy = False
            self._idle.set()

        if self._rerun:
            self._rerun = False
            self.trigger()
        return True

    async def wait_idle(self) -> None:
        """Wait until no run is pending or in flight (trailing runs included)."""
        while True:
            if self._busy and self._idle is not None:
                await self._idle.wait()
                continue
            pending = self._pending
            if (
                pending is not None
                and not pending.done()
                and pending is not asyncio.current_task()
            ):
                await asyncio.wait({pending})
                continue
            return

    async def _run_after_delay(self) -> None:
        await asyncio.sleep(self._debounce)
        await self.run_now()
