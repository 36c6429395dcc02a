import httpx

from .base import RawHit, SearchProvider
from .mock import MockSource
from .rules import UK, UK_SITES, Region, SiteRule
from .serper import SerperSource

from applyflow.config import Settings
from applyflow.log import get_logger

log = get_logger(__name__)

__all__ = [
    "RawHit", "SearchProvider", "MockSource", "SerperSource",
    "Region", "SiteRule", "UK", "UK_SITES", "get_source",
]


def get_source(settings: Settings, client: httpx.AsyncClient, *, offline: bool = False) -> SearchProvider:
    if offline:
        log.info("Offline mode — using MockSource")
        return MockSource()
    settings.require("serper_api_key")
    log.info("Registered source: Serper (Google Search)")
    return SerperSource(settings.serper_api_key, client)
