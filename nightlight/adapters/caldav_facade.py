"""CalDAV adapter — implements SourceFacade for CalDAV servers.

Supports iCloud, Nextcloud, Fastmail, and any CalDAV-compliant server.
Calendars and task lists are addressed by their display name. Uses the
caldav library (sync) wrapped with asyncio.to_thread for async compatibility.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any

import caldav
from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent

from nightlight.adapters.label_prefix import task_from_label
from nightlight.core.instants import parse_instant
from nightlight.data.models import ChoreTask, RawEvent, TaskStatus
from nightlight.ports.source_port import (
    CommandRejected,
    ListUnavailable,
    SourceUnavailable,
    UpdateRejected,
)

logger = logging.getLogger(__name__)


def _get_calendar(name: str) -> caldav.Calendar:
    """Connect to the CalDAV server and return the calendar called `name`."""
    from nightlight.config import settings

    client = caldav.DAVClient(
        url=settings.CALDAV_URL,
        username=settings.CALDAV_USERNAME,
        password=settings.CALDAV_PASSWORD,
    )
    calendars = client.principal().calendars()
    for cal in calendars:
        if cal.name == name:
            return cal
    raise LookupError(
        f"Calendar '{name}' not found. Available: {[c.name for c in calendars]}"
    )


def _build_vevent(
    summary: str,
    start: datetime | date,
    end: datetime | date,
    description: str = "",
    location: str = "",
    uid: str | None = None,
) -> str:
    """Build an iCalendar VEVENT string."""
    cal = iCalendar()
    cal.add("prodid", "-//Nightlight//EN")
    cal.add("version", "2.0")

    event = iEvent()
    event.add("uid", uid or str(uuid.uuid4()))
    event.add("summary", summary)
    if description:
        event.add("description", description)
    if location:
        event.add("location", location)
    event.add("dtstart", start)
    event.add("dtend", end)

    cal.add_component(event)
    return cal.to_ical().decode("utf-8")


def _parse_vevent(event_data: Any, source_id: str) -> RawEvent | None:
    """Parse a CalDAV event into a RawEvent; None if it has no usable VEVENT."""
    try:
        cal = iCalendar.from_ical(event_data.data)
    except Exception as exc:
        logger.warning("Unparseable CalDAV event in %s: %s", source_id, exc)
        return None

    for component in cal.walk():
        if component.name != "VEVENT":
            continue
        dtstart = component.get("dtstart")
        if dtstart is None:
            return None
        dtend = component.get("dtend")
        start = dtstart.dt
        if dtend is not None:
            end = dtend.dt
        elif component.get("duration") is not None:
            end = start + component.decoded("duration")
        elif isinstance(start, datetime):
            end = start
        else:
            # RFC 5545: a date-only DTSTART without DTEND lasts one day
            end = start + timedelta(days=1)
        try:
            return RawEvent(
                source_id=source_id,
                summary=str(component.get("summary", "(no title)")),
                start=start,
                end=end,
                location=str(component.get("location", "")) or None,
                description=str(component.get("description", "")) or None,
                uid=str(component.get("uid", "")) or None,
            )
        except ValueError as exc:
            logger.warning("Skipping malformed CalDAV event in %s: %s", source_id, exc)
            return None
    return None


def _parse_vtodo(todo: Any, list_id: str) -> ChoreTask | None:
    try:
        cal = iCalendar.from_ical(todo.data)
    except Exception as exc:
        logger.warning("Unparseable CalDAV todo in %s: %s", list_id, exc)
        return None

    for component in cal.walk():
        if component.name != "VTODO":
            continue
        status = str(component.get("status", "NEEDS-ACTION")).upper()
        return task_from_label(
            label=str(component.get("summary", "")),
            list_id=list_id,
            status=TaskStatus.COMPLETED if status == "COMPLETED" else TaskStatus.PENDING,
            uid=str(component.get("uid", "")) or None,
        )
    return None


class CalDAVFacade:
    """CalDAV implementation of SourceFacade."""

    async def fetch_events(
        self, source_id: str, start: datetime, end: datetime
    ) -> list[RawEvent]:
        try:
            cal = await asyncio.to_thread(_get_calendar, source_id)
            results = await asyncio.to_thread(
                cal.search, start=start, end=end, event=True, expand=True
            )
        except Exception as exc:
            logger.error("CalDAV error (fetch_events %s): %s", source_id, exc)
            raise SourceUnavailable(f"{source_id}: {exc}") from exc

        events = [ev for ev in (_parse_vevent(r, source_id) for r in results) if ev]
        logger.info("Fetched %d CalDAV event(s) from %s", len(events), source_id)
        return events

    async def list_task_items(self, list_id: str) -> list[ChoreTask]:
        try:
            cal = await asyncio.to_thread(_get_calendar, list_id)
            todos = await asyncio.to_thread(cal.todos, include_completed=True)
        except Exception as exc:
            logger.error("CalDAV error (list_task_items %s): %s", list_id, exc)
            raise ListUnavailable(f"{list_id}: {exc}") from exc

        return [t for t in (_parse_vtodo(todo, list_id) for todo in todos) if t]

    async def update_task_status(
        self, list_id: str, identifier: str, status: TaskStatus
    ) -> None:
        try:
            cal = await asyncio.to_thread(_get_calendar, list_id)
            todos = await asyncio.to_thread(cal.todos, include_completed=True)
            for todo in todos:
                task = _parse_vtodo(todo, list_id)
                if task is None or identifier not in (task.uid, task.label):
                    continue
                if TaskStatus(status) is TaskStatus.COMPLETED:
                    await asyncio.to_thread(todo.complete)
                else:
                    await asyncio.to_thread(todo.uncomplete)
                logger.info("CalDAV todo '%s' in %s → %s", task.label, list_id, status)
                return
        except Exception as exc:
            logger.error("CalDAV error (update_task_status): %s", exc)
            raise UpdateRejected(f"{list_id}/{identifier}: {exc}") from exc

        raise UpdateRejected(f"Todo '{identifier}' not found in {list_id}.")

    async def invoke_command(
        self, domain: str, action: str, payload: dict[str, Any]
    ) -> None:
        if (domain, action) != ("calendar", "create_event"):
            raise CommandRejected(f"Unsupported command {domain}.{action}")

        try:
            if "start_date_time" in payload:
                start = parse_instant(payload["start_date_time"])
                end = parse_instant(payload["end_date_time"])
            else:
                start = parse_instant(payload["start_date"])
                end = parse_instant(payload["end_date"])
            vcal = _build_vevent(
                summary=payload["summary"],
                start=start,
                end=end,
                description=payload.get("description", ""),
                location=payload.get("location", ""),
            )
            cal = await asyncio.to_thread(_get_calendar, payload["entity_id"])
            await asyncio.to_thread(cal.save_event, vcal)
        except Exception as exc:
            logger.error("CalDAV error (create_event): %s", exc)
            raise CommandRejected(f"Failed to create event: {exc}") from exc

        logger.info("CalDAV event created: '%s' in %s", payload["summary"], payload["entity_id"])
