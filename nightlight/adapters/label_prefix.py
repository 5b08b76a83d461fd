"""Label prefix adapter — period tags encoded in task labels.

Existing todo lists tag chores with their period as a numeric prefix, e.g.
"1. Make bed" belongs to the first configured period. Facades run labels
through here; the core only ever sees an explicit `period_index`.
"""

from __future__ import annotations

import re

from nightlight.core.chore_engine import UNASSIGNED_PERIOD
from nightlight.data.models import ChoreTask, TaskStatus

_PREFIX_RE = re.compile(r"^\s*(\d+)\.\s*(.*)$")


def period_index_from_label(label: str) -> int:
    """Period index encoded in the label, UNASSIGNED_PERIOD if there is none."""
    match = _PREFIX_RE.match(label or "")
    if match is None:
        return UNASSIGNED_PERIOD
    return int(match.group(1))


def strip_period_prefix(label: str) -> str:
    match = _PREFIX_RE.match(label or "")
    if match is None:
        return (label or "").strip()
    return match.group(2).strip()


def task_from_label(
    label: str,
    list_id: str,
    status: str | TaskStatus,
    uid: str | None = None,
) -> ChoreTask:
    """Build a ChoreTask from a raw todo item.

    The full label is kept so label-based writes still match the backend item.
    """
    try:
        parsed_status = TaskStatus(status)
    except ValueError:
        parsed_status = TaskStatus.PENDING
    return ChoreTask(
        label=label,
        period_index=period_index_from_label(label),
        list_id=list_id,
        status=parsed_status,
        uid=uid or None,
    )
