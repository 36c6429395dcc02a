"""Serper (Google Search API) job-listing source."""
from __future__ import annotations

import httpx

from applyflow.errors import ConfigError, ProviderError
from applyflow.log import get_logger
from applyflow.retry import retry_async
from applyflow.sources.base import RawHit, SearchProvider

log = get_logger(__name__)

SERPER_ENDPOINT = "https://google.serper.dev/search"


class SerperSource(SearchProvider):
    name = "serper"

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        *,
        endpoint: str = SERPER_ENDPOINT,
        timeout: float = 15.0,
        retries: int = 2,
        base_delay: float = 2.0,
    ) -> None:
        if not api_key:
            raise ConfigError("SERPER_API_KEY is missing")
        self.api_key = api_key
        self.client = client
        self.endpoint = endpoint
        self.timeout = timeout
        self.retries = retries
        self.base_delay = base_delay

    async def _post(self, body: dict) -> dict:
        try:
            r = await self.client.post(
                self.endpoint,
                json=body,
                headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
            r.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderError.from_http("Serper", exc) from exc
        try:
            data = r.json()
        except ValueError as exc:
            raise ProviderError(f"Serper returned invalid JSON: {exc}") from exc
        return data if isinstance(data, dict) else {}

    async def search(self, query: str, region: str, num: int = 10) -> list[RawHit]:
        body = {"q": query, "gl": region, "hl": "en", "num": num}
        data = await retry_async(
            lambda: self._post(body),
            retries=self.retries,
            base_delay=self.base_delay,
            label="Serper search",
        )
        organic = data.get("organic")
        if not isinstance(organic, list):
            return []
        hits: list[RawHit] = []
        for item in organic:
            if not isinstance(item, dict):
                continue
            hits.append(
                RawHit(
                    title=str(item.get("title") or "").strip(),
                    link=str(item.get("link") or "").strip(),
                    snippet=str(item.get("snippet") or "").strip(),
                    date=str(item.get("date") or "").strip() or None,
                )
            )
        log.debug("Serper q=%r returned %d hits", query, len(hits))
        return hits
