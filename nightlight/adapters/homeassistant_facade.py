"""Home Assistant adapter — implements SourceFacade over the HA REST API.

Calendars are `calendar.*` entities, chore lists are `todo.*` entities, and
commands are HA service calls. Authenticates with a long-lived access token.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

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

_TIMEOUT_SECONDS = 10


def _parse_event(raw: dict, source_id: str) -> RawEvent | None:
    """Parse one HA calendar event; None if it is malformed."""
    try:
        return RawEvent(
            source_id=source_id,
            summary=raw.get("summary") or "(no title)",
            start=parse_instant(raw.get("start") or ""),
            end=parse_instant(raw.get("end") or raw.get("start") or ""),
            location=raw.get("location") or None,
            description=raw.get("description") or None,
            uid=raw.get("uid") or None,
        )
    except (ValueError, TypeError, AttributeError) as exc:
        logger.warning("Skipping malformed event from %s: %s", source_id, exc)
        return None


class HomeAssistantFacade:
    """Home Assistant implementation of SourceFacade."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float = _TIMEOUT_SECONDS,
    ) -> None:
        if base_url is None or token is None:
            from nightlight.config import settings

            base_url = base_url or settings.HA_URL
            token = token or settings.HA_TOKEN

        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _call_service(
        self, domain: str, service: str, data: dict[str, Any],
        return_response: bool = False,
    ) -> Any:
        url = f"{self._base_url}/api/services/{domain}/{service}"
        if return_response:
            url += "?return_response"
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(url, json=data, headers=self._headers())
            resp.raise_for_status()
            return resp.json()

    async def fetch_events(
        self, source_id: str, start: datetime, end: datetime
    ) -> list[RawEvent]:
        url = f"{self._base_url}/api/calendars/{source_id}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(
                    url,
                    params={"start": start.isoformat(), "end": end.isoformat()},
                    headers=self._headers(),
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SourceUnavailable(f"{source_id}: {exc}") from exc

        if not isinstance(data, list):
            raise SourceUnavailable(f"{source_id}: unexpected response {type(data).__name__}")

        events = [ev for ev in (_parse_event(raw, source_id) for raw in data) if ev]
        logger.info("Fetched %d event(s) from %s", len(events), source_id)
        return events

    async def list_task_items(self, list_id: str) -> list[ChoreTask]:
        try:
            data = await self._call_service(
                "todo", "get_items", {"entity_id": list_id}, return_response=True,
            )
            items = data["service_response"][list_id]["items"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise ListUnavailable(f"{list_id}: {exc}") from exc

        return [
            task_from_label(
                label=item.get("summary", ""),
                list_id=list_id,
                status=item.get("status", TaskStatus.PENDING.value),
                uid=item.get("uid"),
            )
            for item in items
        ]

    async def update_task_status(
        self, list_id: str, identifier: str, status: TaskStatus
    ) -> None:
        try:
            await self._call_service(
                "todo", "update_item",
                {"entity_id": list_id, "item": identifier, "status": TaskStatus(status).value},
            )
        except httpx.HTTPError as exc:
            raise UpdateRejected(f"{list_id}/{identifier}: {exc}") from exc
        logger.debug("Todo item %s in %s set to %s", identifier, list_id, status)

    async def invoke_command(
        self, domain: str, action: str, payload: dict[str, Any]
    ) -> None:
        try:
            await self._call_service(domain, action, payload)
        except httpx.HTTPError as exc:
            raise CommandRejected(f"{domain}.{action}: {exc}") from exc
        logger.info("Service %s.%s called", domain, action)
