"""Turn a resume (and optional user keywords) into a short job search query."""
from __future__ import annotations

import json
import re

from applyflow.errors import ProviderError
from applyflow.llm import LLMClient, clamp_text, parse_json_object
from applyflow.log import get_logger
from applyflow.retry import retry

log = get_logger(__name__)

TITLE_HINTS: tuple[str, ...] = (
    "software engineer", "frontend developer", "backend developer", "full stack",
    "devops", "data analyst", "data scientist", "product manager", "project manager",
    "program manager", "technical program manager", "it support", "helpdesk",
    "field service", "network engineer", "system administrator", "cybersecurity",
    "qa engineer", "tester", "account manager", "sales", "customer support",
    "delivery driver", "courier", "warehouse", "cook", "chef", "kitchen",
    "barista", "cashier", "retail", "cleaner",
)

SKILL_HINTS: tuple[str, ...] = (
    "react", "next.js", "node", "typescript", "javascript", "python", "java", "c#",
    "sql", "postgres", "mongodb", "aws", "azure", "docker", "kubernetes", "jira",
    "itil", "windows", "linux", "network", "troubleshooting",
)

QUERY_SYSTEM_PROMPT = """You build a single, high-quality English job search query from a resume.
Return STRICT JSON only:
{ "query": string }

Rules:
- query MUST NOT include any city/country names.
- query should be 2 to 8 words.
- Focus on role + 2-4 key skills (if relevant).
- If resume suggests non-technical roles, use practical role terms (e.g., "delivery driver", "kitchen assistant").
- If userKeywords provided, incorporate them but still follow the rules.
Return ONLY JSON."""


@retry(max_attempts=2, base_delay=2.0)
async def _ask_llm(llm: LLMClient, user: str) -> str:
    return await llm.complete(QUERY_SYSTEM_PROMPT, user)


def is_auto_query(query: str) -> bool:
    """True for the "derive the query from my CV" keyword values."""
    t = (query or "").strip().lower()
    if t in ("auto", "auto-from-cv", "from-cv", "auto from cv", "auto (from cv)"):
        return True
    return "auto" in t and "cv" in t


def heuristic_query(resume_text: str) -> str:
    t = (resume_text or "").lower()
    titles = [x for x in TITLE_HINTS if x in t][:2]
    skills = [s for s in SKILL_HINTS if s in t][:4]
    base = titles[0] if titles else "job"
    extra = " " + " ".join(skills[:3]) if skills else ""
    return re.sub(r"\s{2,}", " ", f"{base}{extra}").strip()


async def build_search_query(
    resume_text: str = "",
    user_keywords: str = "",
    llm: LLMClient | None = None,
) -> str:
    keywords = "" if is_auto_query(user_keywords) else (user_keywords or "").strip()
    has_user = len(keywords) >= 2
    resume = (resume_text or "").strip()

    def fallback() -> str:
        return keywords if has_user else heuristic_query(resume)

    if llm is None:
        return fallback()

    user = json.dumps(
        {"userKeywords": keywords if has_user else None, "resumeText": clamp_text(resume, 20000)}
    )
    try:
        raw = await _ask_llm(llm, user)
    except ProviderError as exc:
        log.warning("Query building failed (%s), using fallback", exc)
        return fallback()

    payload = parse_json_object(raw) or {}
    query = str(payload.get("query") or "").strip()
    if len(query) >= 2:
        log.info("Search query from resume: %r", query)
        return query
    return fallback()
