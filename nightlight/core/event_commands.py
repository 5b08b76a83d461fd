"""
Nightlight — Event Commands.

Validated event creation through the source facade's command channel.
Failures propagate so the caller can tell the user; nothing is retried.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, field_validator, model_validator

from nightlight.core.instants import instant_sort_key, is_timed

if TYPE_CHECKING:
    from nightlight.ports.source_port import SourceFacade

logger = logging.getLogger(__name__)


class NewEvent(BaseModel):
    """An event to create in one calendar.

    JSON example:
    {
        "calendar_id": "calendar.family",
        "summary": "Dentist",
        "start": "2026-02-14T16:00:00",
        "end": "2026-02-14T17:00:00",
        "location": "",
        "description": ""
    }
    """
    calendar_id: str
    summary: str
    start: datetime | date
    end: datetime | date
    location: str = ""
    description: str = ""

    @field_validator("calendar_id", "summary")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def check_bounds(self) -> NewEvent:
        if is_timed(self.start) != is_timed(self.end):
            raise ValueError("start and end must both be timed or both be dates")
        if instant_sort_key(self.end) < instant_sort_key(self.start):
            raise ValueError("end must not be before start")
        return self

    @property
    def is_all_day(self) -> bool:
        return not is_timed(self.start)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "entity_id": self.calendar_id,
            "summary": self.summary,
        }
        if self.location:
            payload["location"] = self.location
        if self.description:
            payload["description"] = self.description
        if self.is_all_day:
            payload["start_date"] = self.start.isoformat()
            payload["end_date"] = self.end.isoformat()
        else:
            payload["start_date_time"] = self.start.isoformat()
            payload["end_date_time"] = self.end.isoformat()
        return payload


async def create_event(facade: SourceFacade, new_event: NewEvent) -> None:
    """Create an event; CommandRejected propagates to the caller."""
    await facade.invoke_command("calendar", "create_event", new_event.to_payload())
    logger.info(
        "Event created: '%s' in %s at %s",
        new_event.summary, new_event.calendar_id, new_event.start.isoformat(),
    )
