"""Offline job source for demo runs and tests: no network, deterministic hits."""
from __future__ import annotations

import re

from applyflow.log import get_logger
from applyflow.sources.base import RawHit, SearchProvider

log = get_logger(__name__)

_SITE_RE = re.compile(r"site:(\S+)")
_INURL_RE = re.compile(r"(?<![-\w])inurl:(\S+?)\)?(?:\s|$)")
_ROLE_RE = re.compile(r'"([^"]+)"')

_COMPANIES: tuple[str, ...] = ("Northwind Labs", "Acme Analytics", "Brightline Health")


class MockSource(SearchProvider):
    name = "mock"

    def __init__(self, per_query: int = 2) -> None:
        self.per_query = per_query
        self.queries: list[str] = []

    async def search(self, query: str, region: str, num: int = 10) -> list[RawHit]:
        self.queries.append(query)
        site = _SITE_RE.search(query)
        host = site.group(1) if site else "jobs.example.com"
        token = _INURL_RE.search(query)
        path = token.group(1) if token else "job"
        role_match = _ROLE_RE.search(query)
        role = role_match.group(1) if role_match else "Software Engineer"
        slug = re.sub(r"[^a-z0-9]+", "-", role.lower()).strip("-")

        hits = [
            RawHit(
                title=f"{role} - {company}",
                link=f"https://{host}/{path}/{slug}-{i}",
                snippet=f"{company} is hiring a {role}. Hybrid, full time.",
                date=f"{i + 1} days ago",
            )
            for i, company in enumerate(_COMPANIES[: min(self.per_query, num)])
        ]
        log.debug("MockSource q=%r -> %d hits", query, len(hits))
        return hits
