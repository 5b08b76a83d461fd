"""Tests for the CalDAV source facade.

All CalDAV client calls are mocked.
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from nightlight.adapters.caldav_facade import (
    CalDAVFacade,
    _build_vevent,
    _parse_vevent,
    _parse_vtodo,
)
from nightlight.core.fragmenter import fragment_events
from nightlight.core.time_grid import time_block
from nightlight.data.models import TaskStatus
from nightlight.ports.source_port import (
    CommandRejected,
    ListUnavailable,
    SourceUnavailable,
    UpdateRejected,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PATCH_GET_CAL = "nightlight.adapters.caldav_facade._get_calendar"


def _make_caldav_event(uid="test-uid-123", summary="Test Event", dtstart="20240315T100000",
                       dtend="20240315T110000", all_day=False):
    """Create a mock caldav.Event with realistic iCalendar data."""
    value = ";VALUE=DATE" if all_day else ""
    ev = MagicMock()
    ev.data = (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "BEGIN:VEVENT\r\n"
        f"UID:{uid}\r\n"
        f"SUMMARY:{summary}\r\n"
        f"DTSTART{value}:{dtstart}\r\n"
        f"DTEND{value}:{dtend}\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )
    return ev


def _make_caldav_todo(summary, uid, status="NEEDS-ACTION"):
    todo = MagicMock()
    todo.data = (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "BEGIN:VTODO\r\n"
        f"UID:{uid}\r\n"
        f"SUMMARY:{summary}\r\n"
        f"STATUS:{status}\r\n"
        "END:VTODO\r\n"
        "END:VCALENDAR\r\n"
    )
    return todo


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestBuildVevent:
    def test_builds_basic_vevent(self):
        result = _build_vevent(
            summary="Dentist",
            start=datetime(2026, 2, 14, 16, 0),
            end=datetime(2026, 2, 14, 17, 0),
            description="Checkup",
            location="High St",
            uid="test-uid",
        )
        assert "SUMMARY:Dentist" in result
        assert "DESCRIPTION:Checkup" in result
        assert "LOCATION:High St" in result
        assert "UID:test-uid" in result
        assert "BEGIN:VEVENT" in result

    def test_all_day_uses_date_values(self):
        result = _build_vevent(summary="Holiday", start=date(2026, 8, 1), end=date(2026, 8, 8))
        assert "DTSTART;VALUE=DATE:20260801" in result
        assert "DESCRIPTION" not in result


class TestParseVevent:
    def test_timed(self):
        ev = _parse_vevent(_make_caldav_event(), "Family")
        assert ev.summary == "Test Event"
        assert ev.start == datetime(2024, 3, 15, 10, 0)
        assert ev.uid == "test-uid-123"
        assert ev.source_id == "Family"

    def test_all_day(self):
        ev = _parse_vevent(
            _make_caldav_event(dtstart="20240315", dtend="20240316", all_day=True), "Family"
        )
        assert ev.is_all_day is True
        assert ev.end == date(2024, 3, 16)

    def test_garbage_returns_none(self):
        bad = MagicMock()
        bad.data = "not ical"
        assert _parse_vevent(bad, "Family") is None

    def test_inverted_event_returns_none(self):
        ev = _make_caldav_event(dtstart="20240315T110000", dtend="20240315T100000")
        assert _parse_vevent(ev, "Family") is None

    def test_timed_duration_sets_end(self):
        ev = MagicMock()
        ev.data = (
            "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n"
            "UID:d1\r\nSUMMARY:Swim meet\r\n"
            "DTSTART:20240315T090000Z\r\nDURATION:PT2H\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )
        parsed = _parse_vevent(ev, "Family")
        assert parsed.end == datetime(2024, 3, 15, 11, 0, tzinfo=timezone.utc)
        frag = fragment_events([parsed], tz=timezone.utc)[0]
        assert time_block(frag, tz=timezone.utc).height == 120

    def test_all_day_duration_spans_days(self):
        ev = MagicMock()
        ev.data = (
            "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n"
            "UID:d2\r\nSUMMARY:Trip\r\n"
            "DTSTART;VALUE=DATE:20240316\r\nDURATION:P3D\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )
        parsed = _parse_vevent(ev, "Family")
        assert parsed.end == date(2024, 3, 19)
        days = [f.display_date for f in fragment_events([parsed], tz=timezone.utc)]
        assert days == [date(2024, 3, 16), date(2024, 3, 17), date(2024, 3, 18)]

    def test_all_day_without_end_lasts_one_day(self):
        ev = MagicMock()
        ev.data = (
            "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n"
            "UID:d3\r\nSUMMARY:Bin day\r\n"
            "DTSTART;VALUE=DATE:20240316\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )
        assert _parse_vevent(ev, "Family").end == date(2024, 3, 17)

    def test_timed_without_end_is_instant(self):
        ev = MagicMock()
        ev.data = (
            "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\n"
            "UID:d4\r\nSUMMARY:Reminder\r\n"
            "DTSTART:20240315T090000\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )
        parsed = _parse_vevent(ev, "Family")
        assert parsed.end == parsed.start


class TestParseVtodo:
    def test_completed_with_prefix(self):
        task = _parse_vtodo(_make_caldav_todo("2. Homework", "t1", "COMPLETED"), "Chores")
        assert task.period_index == 2
        assert task.status is TaskStatus.COMPLETED
        assert task.uid == "t1"

    def test_needs_action(self):
        task = _parse_vtodo(_make_caldav_todo("Feed cat", "t2"), "Chores")
        assert task.period_index == 0
        assert task.status is TaskStatus.PENDING


# ---------------------------------------------------------------------------
# CalDAVFacade
# ---------------------------------------------------------------------------


class TestFetchEvents:
    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_fetch(self, mock_get_cal):
        mock_cal = MagicMock()
        mock_cal.search.return_value = [_make_caldav_event(summary="Swim")]
        mock_get_cal.return_value = mock_cal

        start, end = datetime(2024, 3, 1), datetime(2024, 4, 1)
        events = await CalDAVFacade().fetch_events("Family", start, end)

        assert [e.summary for e in events] == ["Swim"]
        mock_get_cal.assert_called_once_with("Family")
        mock_cal.search.assert_called_once_with(start=start, end=end, event=True, expand=True)

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_missing_calendar_is_unavailable(self, mock_get_cal):
        mock_get_cal.side_effect = LookupError("Calendar 'Nope' not found")
        with pytest.raises(SourceUnavailable):
            await CalDAVFacade().fetch_events("Nope", datetime(2024, 3, 1), datetime(2024, 4, 1))


class TestTaskItems:
    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_list(self, mock_get_cal):
        mock_cal = MagicMock()
        mock_cal.todos.return_value = [
            _make_caldav_todo("1. Make bed", "t1", "COMPLETED"),
            _make_caldav_todo("Feed cat", "t2"),
        ]
        mock_get_cal.return_value = mock_cal

        tasks = await CalDAVFacade().list_task_items("Chores")

        assert [t.label for t in tasks] == ["1. Make bed", "Feed cat"]
        mock_cal.todos.assert_called_once_with(include_completed=True)

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_list_unavailable(self, mock_get_cal):
        mock_get_cal.side_effect = ConnectionError("offline")
        with pytest.raises(ListUnavailable):
            await CalDAVFacade().list_task_items("Chores")

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_complete_by_uid(self, mock_get_cal):
        done = _make_caldav_todo("1. Make bed", "t1")
        other = _make_caldav_todo("Feed cat", "t2")
        mock_cal = MagicMock()
        mock_cal.todos.return_value = [other, done]
        mock_get_cal.return_value = mock_cal

        await CalDAVFacade().update_task_status("Chores", "t1", TaskStatus.COMPLETED)

        done.complete.assert_called_once()
        other.complete.assert_not_called()

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_reopen_by_label(self, mock_get_cal):
        todo = _make_caldav_todo("1. Make bed", "t1", "COMPLETED")
        mock_cal = MagicMock()
        mock_cal.todos.return_value = [todo]
        mock_get_cal.return_value = mock_cal

        await CalDAVFacade().update_task_status("Chores", "1. Make bed", TaskStatus.PENDING)

        todo.uncomplete.assert_called_once()

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_unknown_item_rejected(self, mock_get_cal):
        mock_cal = MagicMock()
        mock_cal.todos.return_value = []
        mock_get_cal.return_value = mock_cal

        with pytest.raises(UpdateRejected, match="not found"):
            await CalDAVFacade().update_task_status("Chores", "ghost", TaskStatus.COMPLETED)


class TestInvokeCommand:
    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_create_event(self, mock_get_cal):
        mock_cal = MagicMock()
        mock_get_cal.return_value = mock_cal

        await CalDAVFacade().invoke_command("calendar", "create_event", {
            "entity_id": "Family",
            "summary": "Dentist",
            "start_date_time": "2026-02-14T16:00:00",
            "end_date_time": "2026-02-14T17:00:00",
        })

        mock_get_cal.assert_called_once_with("Family")
        vcal = mock_cal.save_event.call_args.args[0]
        assert "SUMMARY:Dentist" in vcal

    @pytest.mark.asyncio
    async def test_unsupported_command(self):
        with pytest.raises(CommandRejected, match="Unsupported"):
            await CalDAVFacade().invoke_command("light", "turn_on", {})

    @pytest.mark.asyncio
    @patch(_PATCH_GET_CAL)
    async def test_save_failure_rejected(self, mock_get_cal):
        mock_cal = MagicMock()
        mock_cal.save_event.side_effect = Exception("403 Forbidden")
        mock_get_cal.return_value = mock_cal

        with pytest.raises(CommandRejected):
            await CalDAVFacade().invoke_command("calendar", "create_event", {
                "entity_id": "Family",
                "summary": "Holiday",
                "start_date": "2026-08-01",
                "end_date": "2026-08-08",
            })
