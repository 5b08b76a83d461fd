"""
Nightlight — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from nightlight.data.models import CalendarSource, ChorePeriod

# Load .env from project root (two levels up from nightlight/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Source facade: "homeassistant" | "caldav"
    SOURCE_PROVIDER: str = "homeassistant"

    # Home Assistant (only needed when SOURCE_PROVIDER=homeassistant)
    HA_URL: str = "http://homeassistant.local:8123"
    HA_TOKEN: str = ""

    # CalDAV (only needed when SOURCE_PROVIDER=caldav)
    CALDAV_URL: str = ""
    CALDAV_USERNAME: str = ""
    CALDAV_PASSWORD: str = ""

    # Calendars: "calendar.family|Family|#6366f1|mdi:home, ..."
    CALENDAR_SOURCES: list[CalendarSource] = []

    # Chores: task list ids and "Morning=06:00-09:00, ..." periods
    CHORE_LISTS: list[str] = []
    CHORE_PERIODS: list[ChorePeriod] = []

    TIMEZONE: str = "Europe/London"

    # Views
    AGENDA_HORIZON_DAYS: int = 30
    MIN_VISIBLE_MINUTES: int = 15

    # Refresh loop
    REFRESH_DEBOUNCE_MS: int = 50
    REFRESH_INTERVAL_SECONDS: int = 30

    # SQLite (reset marker)
    DATABASE_PATH: str = "data/nightlight.db"

    @field_validator("CALENDAR_SOURCES", mode="before")
    @classmethod
    def parse_sources(cls, v: str | list) -> list:
        if isinstance(v, list):
            return v
        if not isinstance(v, str) or not v.strip():
            return []
        sources = []
        for chunk in v.split(","):
            parts = [p.strip() for p in chunk.split("|")]
            if not parts[0]:
                continue
            sources.append(
                CalendarSource(
                    id=parts[0],
                    display_name=parts[1] if len(parts) > 1 and parts[1] else parts[0],
                    color=parts[2] if len(parts) > 2 and parts[2] else "#6366f1",
                    icon=parts[3] if len(parts) > 3 and parts[3] else None,
                )
            )
        return sources

    @field_validator("CHORE_LISTS", mode="before")
    @classmethod
    def parse_lists(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [item.strip() for item in v.split(",") if item.strip()]
        return []

    @field_validator("CHORE_PERIODS", mode="before")
    @classmethod
    def parse_periods(cls, v: str | list) -> list:
        if isinstance(v, list):
            return v
        if not isinstance(v, str) or not v.strip():
            return []
        from nightlight.core.chore_engine import parse_time_of_day

        periods = []
        for chunk in v.split(","):
            if not chunk.strip():
                continue
            name, _, span = chunk.partition("=")
            start, _, end = span.partition("-")
            periods.append(
                ChorePeriod(
                    name=name.strip(),
                    start_of_day=parse_time_of_day(start),
                    end_of_day=parse_time_of_day(end),
                )
            )
        return periods

    @field_validator(
        "AGENDA_HORIZON_DAYS",
        "MIN_VISIBLE_MINUTES",
        "REFRESH_DEBOUNCE_MS",
        "REFRESH_INTERVAL_SECONDS",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    provider = os.getenv("SOURCE_PROVIDER", "homeassistant").lower()
    ha_token = os.getenv("HA_TOKEN", "")

    if provider == "homeassistant" and (not ha_token or ha_token.startswith("your-")):
        print("ERROR: HA_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    if provider == "caldav" and not os.getenv("CALDAV_URL", ""):
        print("ERROR: CALDAV_URL is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        SOURCE_PROVIDER=provider,
        HA_URL=os.getenv("HA_URL", "http://homeassistant.local:8123"),
        HA_TOKEN=ha_token,
        CALDAV_URL=os.getenv("CALDAV_URL", ""),
        CALDAV_USERNAME=os.getenv("CALDAV_USERNAME", ""),
        CALDAV_PASSWORD=os.getenv("CALDAV_PASSWORD", ""),
        CALENDAR_SOURCES=os.getenv("CALENDAR_SOURCES", ""),
        CHORE_LISTS=os.getenv("CHORE_LISTS", ""),
        CHORE_PERIODS=os.getenv("CHORE_PERIODS", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/London"),
        AGENDA_HORIZON_DAYS=os.getenv("AGENDA_HORIZON_DAYS", "30"),
        MIN_VISIBLE_MINUTES=os.getenv("MIN_VISIBLE_MINUTES", "15"),
        REFRESH_DEBOUNCE_MS=os.getenv("REFRESH_DEBOUNCE_MS", "50"),
        REFRESH_INTERVAL_SECONDS=os.getenv("REFRESH_INTERVAL_SECONDS", "30"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/nightlight.db"),
    )


# Singleton — imported by all other modules as:
#   from nightlight.config import settings
settings = _load_settings()
