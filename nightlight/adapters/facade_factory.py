"""Source facade factory — creates the right adapter based on config."""

from __future__ import annotations

from nightlight.config import settings
from nightlight.ports.source_port import SourceFacade


def create_source_facade() -> SourceFacade:
    """Return the facade matching the SOURCE_PROVIDER setting."""
    provider = settings.SOURCE_PROVIDER.lower()

    if provider == "homeassistant":
        from nightlight.adapters.homeassistant_facade import HomeAssistantFacade

        return HomeAssistantFacade(base_url=settings.HA_URL, token=settings.HA_TOKEN)

    if provider == "caldav":
        from nightlight.adapters.caldav_facade import CalDAVFacade

        return CalDAVFacade()

    raise ValueError(f"Unknown SOURCE_PROVIDER: {provider!r}")
