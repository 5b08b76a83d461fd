"""Source port — abstract interface to calendars, task lists and commands.

Core modules depend on this protocol, never on a specific backend.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from nightlight.data.models import ChoreTask, RawEvent, TaskStatus


class SourceError(Exception):
    """Base class for failures reported by a source facade."""


class SourceUnavailable(SourceError):
    """Raised when one calendar source cannot be read."""


class ListUnavailable(SourceError):
    """Raised when one task list cannot be read."""


class UpdateRejected(SourceError):
    """Raised when a task status write fails."""


class CommandRejected(SourceError):
    """Raised when a command (e.g. event creation) fails."""


class SourceFacade(Protocol):
    """Abstract source interface used by core modules."""

    async def fetch_events(
        self, source_id: str, start: datetime, end: datetime
    ) -> list[RawEvent]: ...

    async def list_task_items(self, list_id: str) -> list[ChoreTask]: ...

    async def update_task_status(
        self, list_id: str, identifier: str, status: TaskStatus
    ) -> None: ...

    async def invoke_command(
        self, domain: str, action: str, payload: dict[str, Any]
    ) -> None: ...
