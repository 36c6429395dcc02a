"""Query every job site, keep genuine postings, dedupe by link."""
from __future__ import annotations

import asyncio
from typing import Sequence

from applyflow.errors import ProviderError
from applyflow.log import get_logger
from applyflow.models import SearchHit
from applyflow.sources.base import RawHit, SearchProvider
from applyflow.sources.rules import (
    UK,
    UK_SITES,
    Region,
    SiteRule,
    build_fallback_query,
    build_site_query,
    guess_company,
    looks_like_job_posting,
    normalize_query,
)

log = get_logger(__name__)

DEFAULT_ROLE = "Software Engineer"
DEFAULT_LOCATION = "Worldwide"
MAX_RESULTS = 40
NO_SNIPPET = "No description available (snippet empty)."


def _to_hit(raw: RawHit, location: str) -> SearchHit:
    title = raw.title.strip() or "Untitled"
    return SearchHit(
        title=title,
        company=guess_company(title),
        location=location,
        description=raw.snippet.strip() or NO_SNIPPET,
        url=raw.link.strip(),
        date=raw.date or None,
    )


class JobSearchAggregator:
    def __init__(
        self,
        provider: SearchProvider,
        *,
        rules: Sequence[SiteRule] = UK_SITES,
        region: Region = UK,
        max_results: int = MAX_RESULTS,
        per_source: int = 10,
    ) -> None:
        self.provider = provider
        self.rules = tuple(rules)
        self.region = region
        self.max_results = max_results
        self.per_source = per_source

    async def _query(self, rule: SiteRule, query: str) -> list[RawHit] | ProviderError:
        try:
            return await self.provider.search(query, self.region.code, num=self.per_source)
        except ProviderError as exc:
            log.warning("[%s] search failed: %s", rule.host, exc)
            return exc

    async def _query_all(self, queries: list[str]) -> list[list[RawHit] | None]:
        """One request per rule, concurrently. Raises only if every rule failed."""
        answers = await asyncio.gather(
            *(self._query(rule, q) for rule, q in zip(self.rules, queries))
        )
        failures = [a for a in answers if isinstance(a, ProviderError)]
        if self.rules and len(failures) == len(self.rules):
            raise failures[-1]
        return [None if isinstance(a, ProviderError) else a for a in answers]

    async def search(self, query: str, location: str = "") -> list[SearchHit]:
        role = normalize_query(query) or DEFAULT_ROLE
        loc = (location or "").strip() or DEFAULT_LOCATION

        hits: list[SearchHit] = []
        seen: set[str] = set()

        strict = await self._query_all([build_site_query(r, role, self.region) for r in self.rules])
        for rule, raw_hits in zip(self.rules, strict):
            for raw in raw_hits or []:
                link = raw.link.strip()
                if not link or link in seen:
                    continue
                if not looks_like_job_posting(link, rule):
                    continue
                seen.add(link)
                hits.append(_to_hit(raw, loc))
        log.info("Strict search for %r: %d postings from %d sources", role, len(hits), len(self.rules))

        if not hits:
            log.info("No postings passed URL filters — running loose fallback queries")
            loose = await self._query_all(
                [build_fallback_query(r, role, self.region) for r in self.rules]
            )
            for raw_hits in loose:
                for raw in raw_hits or []:
                    link = raw.link.strip()
                    if not link or link in seen:
                        continue
                    seen.add(link)
                    hits.append(_to_hit(raw, loc))
            log.info("Fallback search for %r: %d postings", role, len(hits))

        return hits[: self.max_results]
