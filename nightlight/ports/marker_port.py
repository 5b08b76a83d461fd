"""Marker port — abstract single-value persistence.

Used for the daily reset marker; durable across restarts.
"""

from __future__ import annotations

from typing import Protocol


class MarkerStore(Protocol):
    """Abstract key/value store used by core modules."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...
