"""Shared fixtures: search hits, a scripted LLM double and an offline settings object."""
from __future__ import annotations

import json
import os
import re
from typing import Any, Callable
from unittest.mock import AsyncMock

os.environ.setdefault("APPLYFLOW_NO_LOG_FILE", "1")

import pytest

from applyflow.config import Settings
from applyflow.errors import ProviderError
from applyflow.models import SearchHit

RESUME_TEXT = (
    "Jane Doe\nSenior Software Engineer\n"
    "Seven years building Python and Django services on AWS with Docker and Postgres.\n"
    "Led a team of four, shipped a payments platform, mentored juniors."
)


def make_hit(i: int = 0, *, title: str | None = None, company: str = "Acme") -> SearchHit:
    return SearchHit(
        title=title or f"Backend Engineer {i}",
        company=company,
        location="London",
        description=f"Python role number {i}. Django, AWS, Postgres.",
        url=f"https://uk.indeed.com/viewjob?jk={i}",
    )


def match_payload(percent: int, **extra: Any) -> str:
    payload = {
        "matchPercentage": percent,
        "matchingSkills": ["Python", "AWS"],
        "missingSkills": ["Kubernetes"],
        "strengths": ["Backend depth"],
        "gaps": ["No Go"],
        "analysis": f"Scored {percent}.",
        "recommendedKeywords": ["Django"],
        "salaryRange": "£60k–£75k",
        "seniorityFit": "good",
    }
    payload.update(extra)
    return json.dumps(payload)


def llm_double(respond: Callable[..., Any]) -> AsyncMock:
    """An object with an async ``complete(system, user, *, json_mode)`` driven by *respond*.

    *respond* may return a string or raise.
    """
    llm = AsyncMock()
    llm.complete = AsyncMock(side_effect=respond)
    return llm


def title_of(user_text: str) -> str:
    """Job title from a scoring request body ("<title> @ <company>" first line)."""
    return user_text.split(" @ ", 1)[0]


def percent_by_title(scores: dict[str, int]) -> Callable[..., str]:
    def respond(system: str, user: str, *, json_mode: bool = True) -> str:
        return match_payload(scores[title_of(user)])

    return respond


@pytest.fixture
def hits() -> list[SearchHit]:
    return [make_hit(i) for i in range(5)]


@pytest.fixture
def offline_settings(tmp_path) -> Settings:
    return Settings(openai_api_key="sk-test", output_dir=tmp_path / "out")


@pytest.fixture
def scripted_llm() -> AsyncMock:
    """Answers query, scoring and generation prompts like a well-behaved model."""

    def respond(system: str, user: str, *, json_mode: bool = True) -> str:
        if "search query" in system:
            return json.dumps({"query": "backend engineer python"})
        if "matching evaluator" in system:
            m = re.search(r"-(\d+)$", title_of(user))
            return match_payload(90 - 10 * int(m.group(1)) if m else 50)
        if "application materials" in system:
            return json.dumps({
                "customCv": "SUMMARY\nBackend engineer.\n\nEXPERIENCE\nEngineer — Acme | 2019–2024\n- Built payment APIs serving two million users",
                "coverLetter": "Dear hiring team,\n\nI would love to join your platform group and bring my backend experience.",
                "interviewQa": [
                    {"q": "Why this role?", "a": "It fits my backend work.", "type": "general"},
                    {"q": "How do you scale Postgres?", "a": "Read replicas and careful indexing.", "type": "technical"},
                    {"q": "Describe a failure.", "a": "A missed migration; we added checks.", "type": "general"},
                ],
            })
        raise ProviderError(f"unexpected prompt: {system[:40]}")

    return llm_double(respond)
