"""Data models for search hits, match results and generated materials."""
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, replace
from typing import Any, Literal

SeniorityFit = Literal["perfect", "good", "average", "poor"]
SENIORITY_FITS: tuple[str, ...] = ("perfect", "good", "average", "poor")


def job_id_for(url: str) -> str:
    """Stable id derived from the canonical link, so re-runs keep identity."""
    return hashlib.sha256(url.encode()).hexdigest()[:12]


def _str_list(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value[:limit]]


def clamp_percent(value: Any) -> int:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(round(max(0.0, min(100.0, number))))


@dataclass(frozen=True)
class SearchHit:
    title: str
    company: str
    location: str
    description: str
    url: str
    date: str | None = None

    @property
    def id(self) -> str:
        return job_id_for(self.url)


@dataclass(frozen=True)
class MatchResult:
    """Scoring provider output, normalised once at the boundary."""

    match_percentage: int = 0
    matching_skills: list[str] = field(default_factory=list)
    missing_skills: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    analysis: str = ""
    recommended_keywords: list[str] = field(default_factory=list)
    salary_range: str = "N/A"
    seniority_fit: SeniorityFit = "average"

    @classmethod
    def from_payload(cls, payload: Any) -> "MatchResult":
        if not isinstance(payload, dict):
            return cls.unparsed()
        fit = str(payload.get("seniorityFit") or "average")
        if fit not in SENIORITY_FITS:
            fit = "average"
        return cls(
            match_percentage=clamp_percent(payload.get("matchPercentage")),
            matching_skills=_str_list(payload.get("matchingSkills"), 12),
            missing_skills=_str_list(payload.get("missingSkills"), 12),
            strengths=_str_list(payload.get("strengths"), 8),
            gaps=_str_list(payload.get("gaps"), 8),
            analysis=str(payload.get("analysis") or "")[:1000],
            recommended_keywords=_str_list(payload.get("recommendedKeywords"), 10),
            salary_range=str(payload.get("salaryRange") or "N/A")[:50],
            seniority_fit=fit,  # type: ignore[arg-type]
        )

    @classmethod
    def from_json(cls, text: str) -> "MatchResult":
        try:
            payload = json.loads(text or "{}")
        except json.JSONDecodeError:
            return cls.unparsed()
        return cls.from_payload(payload)

    @classmethod
    def unparsed(cls) -> "MatchResult":
        return cls(analysis="Could not analyze match.")


@dataclass
class MatchedJob:
    id: str
    title: str
    company: str
    location: str
    url: str
    description: str
    match_percent: int
    matching_skills: list[str] = field(default_factory=list)
    missing_skills: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    analysis: str = ""
    recommended_keywords: list[str] = field(default_factory=list)
    salary_range: str = "N/A"
    seniority_fit: SeniorityFit = "average"
    selected: bool = False
    scored: bool = True

    @classmethod
    def from_match(cls, hit: SearchHit, match: MatchResult) -> "MatchedJob":
        return cls(
            id=hit.id,
            title=hit.title,
            company=hit.company,
            location=hit.location,
            url=hit.url,
            description=hit.description,
            match_percent=clamp_percent(match.match_percentage),
            matching_skills=list(match.matching_skills),
            missing_skills=list(match.missing_skills),
            strengths=list(match.strengths),
            gaps=list(match.gaps),
            analysis=match.analysis,
            recommended_keywords=list(match.recommended_keywords),
            salary_range=match.salary_range,
            seniority_fit=match.seniority_fit,
        )

    @classmethod
    def degraded(cls, hit: SearchHit, reason: str) -> "MatchedJob":
        """Zero-score placeholder for a job whose scoring failed."""
        return cls(
            id=hit.id,
            title=hit.title,
            company=hit.company,
            location=hit.location,
            url=hit.url,
            description=hit.description,
            match_percent=0,
            analysis=f"Match failed: {shorten_reason(reason)}",
            scored=False,
        )

    def with_selected(self, selected: bool) -> "MatchedJob":
        return replace(self, selected=selected)


def shorten_reason(reason: str, limit: int = 200) -> str:
    text = (reason or "").strip()
    if not text:
        return "Unknown"
    return text[:limit] + "…" if len(text) > limit else text


@dataclass(frozen=True)
class InterviewQA:
    q: str
    a: str
    type: Literal["general", "technical"] = "general"


@dataclass(frozen=True)
class GeneratedMaterials:
    custom_cv: str = ""
    cover_letter: str = ""
    interview_qa: list[InterviewQA] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "GeneratedMaterials":
        if not isinstance(payload, dict):
            return cls()
        qa: list[InterviewQA] = []
        raw_qa = payload.get("interviewQa")
        if isinstance(raw_qa, list):
            for item in raw_qa:
                if not isinstance(item, dict):
                    continue
                q = str(item.get("q") or "").strip()
                a = str(item.get("a") or "").strip()
                if not q or not a:
                    continue
                kind = "technical" if item.get("type") == "technical" else "general"
                qa.append(InterviewQA(q=q, a=a, type=kind))
        return cls(
            custom_cv=str(payload.get("customCv") or ""),
            cover_letter=str(payload.get("coverLetter") or ""),
            interview_qa=qa,
        )

    def interview_qa_text(self) -> str:
        """Q&A list as ``Q:``/``A:`` lines, the shape the layout engine detects."""
        return "\n\n".join(f"Q: {item.q}\nA: {item.a}" for item in self.interview_qa)
