"""Shared test fixtures and configuration.

Sets up fake environment variables so nightlight.config doesn't sys.exit(),
and provides common fixtures like a temp marker DB and an in-memory facade.
"""

import os

# Patch env vars BEFORE any nightlight imports
os.environ.setdefault("SOURCE_PROVIDER", "homeassistant")
os.environ.setdefault("HA_TOKEN", "fake-token-for-tests")
os.environ.setdefault("HA_URL", "http://ha.test:8123")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("DATABASE_PATH", ":memory:")

import asyncio
import dataclasses

import pytest


class FakeFacade:
    """In-memory SourceFacade with switchable failures and call recording."""

    def __init__(self):
        self.events = {}          # source_id -> list[RawEvent]
        self.lists = {}           # list_id -> list[ChoreTask]
        self.failing_sources = set()
        self.failing_lists = set()
        self.rejected_items = set()
        self.fetch_calls = []
        self.list_calls = []
        self.updates = []
        self.commands = []

    async def fetch_events(self, source_id, start, end):
        from nightlight.ports.source_port import SourceUnavailable

        self.fetch_calls.append((source_id, start, end))
        await asyncio.sleep(0)
        if source_id in self.failing_sources:
            raise SourceUnavailable(f"{source_id} is down")
        return list(self.events.get(source_id, []))

    async def list_task_items(self, list_id):
        from nightlight.ports.source_port import ListUnavailable

        self.list_calls.append(list_id)
        await asyncio.sleep(0)
        if list_id in self.failing_lists:
            raise ListUnavailable(f"{list_id} is down")
        return [dataclasses.replace(t) for t in self.lists.get(list_id, [])]

    async def update_task_status(self, list_id, identifier, status):
        from nightlight.data.models import TaskStatus
        from nightlight.ports.source_port import UpdateRejected

        self.updates.append((list_id, identifier, status))
        await asyncio.sleep(0)
        if identifier in self.rejected_items:
            raise UpdateRejected(f"{identifier} rejected")
        for task in self.lists.get(list_id, []):
            if task.identifier == identifier:
                task.status = TaskStatus(status)

    async def invoke_command(self, domain, action, payload):
        self.commands.append((domain, action, payload))


@pytest.fixture
def facade():
    """Return an empty FakeFacade."""
    return FakeFacade()


@pytest.fixture
def marker_db(tmp_path):
    """Return a MarkerDB instance backed by a temp file."""
    from nightlight.data.db import MarkerDB
    return MarkerDB(db_path=str(tmp_path / "test_markers.db"))
