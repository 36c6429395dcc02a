"""Jina reranker: reorder search hits by semantic relevance, fail-open."""
from __future__ import annotations

from dataclasses import dataclass

import httpx

from applyflow.errors import ConfigError, ProviderError
from applyflow.log import get_logger
from applyflow.models import SearchHit

log = get_logger(__name__)

JINA_RERANK_URL = "https://api.jina.ai/v1/rerank"
JINA_MODEL = "jina-reranker-v2-base-multilingual"

MAX_QUERY_CHARS = 400
MAX_DOCUMENT_CHARS = 2000
HIT_DOCUMENT_CHARS = 1800
DEFAULT_TOP_N = 20


@dataclass(frozen=True)
class RerankScore:
    index: int
    relevance_score: float


class JinaReranker:
    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        *,
        model: str = JINA_MODEL,
        endpoint: str = JINA_RERANK_URL,
        timeout: float = 15.0,
    ) -> None:
        if not api_key:
            raise ConfigError("JINA_API_KEY is missing")
        self.api_key = api_key
        self.client = client
        self.model = model
        self.endpoint = endpoint
        self.timeout = timeout

    async def rerank(self, query: str, documents: list[str], top_n: int = DEFAULT_TOP_N) -> list[RerankScore]:
        if not documents:
            return []
        body = {
            "model": self.model,
            "query": (query or "")[:MAX_QUERY_CHARS],
            "documents": [(d or "")[:MAX_DOCUMENT_CHARS] for d in documents],
            "top_n": min(top_n, len(documents)),
        }
        try:
            r = await self.client.post(
                self.endpoint,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as exc:
            raise ProviderError.from_http("Jina", exc) from exc
        except ValueError as exc:
            raise ProviderError(f"Jina returned invalid JSON: {exc}") from exc

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        scores: list[RerankScore] = []
        for item in results:
            try:
                scores.append(RerankScore(int(item["index"]), float(item["relevance_score"])))
            except (KeyError, TypeError, ValueError):
                continue
        return scores


def hit_document(hit: SearchHit) -> str:
    return f"{hit.title}\n{hit.company}\n{hit.location}\n{hit.description}"[:HIT_DOCUMENT_CHARS]


async def rerank_hits(
    reranker: JinaReranker | None,
    query: str,
    hits: list[SearchHit],
    *,
    top_n: int = DEFAULT_TOP_N,
) -> list[SearchHit]:
    """Hits sorted by descending relevance; the input list itself on any failure.

    Hits the reranker did not score sink to the end in their original order.
    """
    if reranker is None or len(hits) < 2:
        return hits
    try:
        ranked = await reranker.rerank(
            query, [hit_document(h) for h in hits], top_n=min(top_n, len(hits))
        )
    except ProviderError as exc:
        log.warning("Rerank failed, keeping search order: %s", exc)
        return hits
    if not ranked:
        return hits

    by_index = {r.index: r.relevance_score for r in ranked if 0 <= r.index < len(hits)}
    order = sorted(range(len(hits)), key=lambda i: -by_index.get(i, -1.0))
    log.info("Reranked %d hits (%d scored)", len(hits), len(by_index))
    return [hits[i] for i in order]
