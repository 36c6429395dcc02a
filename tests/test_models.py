"""Payload normalisation for match results and generated materials."""
from __future__ import annotations

import pytest

from conftest import make_hit
from applyflow.models import (
    GeneratedMaterials,
    InterviewQA,
    MatchedJob,
    MatchResult,
    clamp_percent,
    job_id_for,
    shorten_reason,
)


class TestClampPercent:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(150, 100), (-5, 0), (72.6, 73), ("81", 81), ("abc", 0), (None, 0), (float("nan"), 0)],
    )
    def test_clamps_and_rounds(self, raw, expected) -> None:
        assert clamp_percent(raw) == expected


class TestMatchResult:
    def test_lists_and_text_are_capped(self) -> None:
        result = MatchResult.from_payload({
            "matchPercentage": 88,
            "matchingSkills": [f"s{i}" for i in range(20)],
            "missingSkills": [f"m{i}" for i in range(20)],
            "strengths": [f"st{i}" for i in range(20)],
            "gaps": [f"g{i}" for i in range(20)],
            "recommendedKeywords": [f"k{i}" for i in range(20)],
            "analysis": "a" * 1500,
            "salaryRange": "£" + "9" * 80,
            "seniorityFit": "perfect",
        })
        assert result.match_percentage == 88
        assert len(result.matching_skills) == 12 and len(result.missing_skills) == 12
        assert len(result.strengths) == 8 and len(result.gaps) == 8
        assert len(result.recommended_keywords) == 10
        assert len(result.analysis) == 1000
        assert len(result.salary_range) == 50
        assert result.seniority_fit == "perfect"

    def test_defaults_for_missing_or_invalid_fields(self) -> None:
        result = MatchResult.from_payload({"seniorityFit": "legendary", "matchingSkills": "python"})
        assert result.seniority_fit == "average"
        assert result.salary_range == "N/A"
        assert result.matching_skills == []
        assert result.match_percentage == 0

    def test_malformed_json(self) -> None:
        result = MatchResult.from_json("{not json")
        assert result.analysis == "Could not analyze match."
        assert result.match_percentage == 0

    def test_non_object_json(self) -> None:
        assert MatchResult.from_json("[1, 2]").analysis == "Could not analyze match."


class TestMatchedJob:
    def test_id_is_stable_per_link(self) -> None:
        hit = make_hit(3)
        assert hit.id == job_id_for(hit.url) == make_hit(3).id
        assert len(hit.id) == 12
        assert make_hit(4).id != hit.id

    def test_from_match_copies_hit_and_scores(self) -> None:
        hit = make_hit(1)
        job = MatchedJob.from_match(hit, MatchResult(match_percentage=64, matching_skills=["Python"]))
        assert (job.id, job.title, job.url) == (hit.id, hit.title, hit.url)
        assert job.match_percent == 64
        assert job.selected is False and job.scored is True

    def test_degraded_entry(self) -> None:
        job = MatchedJob.degraded(make_hit(1), "x" * 300)
        assert job.match_percent == 0 and job.scored is False
        assert job.analysis == "Match failed: " + "x" * 200 + "…"

    def test_with_selected_returns_copy(self) -> None:
        job = MatchedJob.degraded(make_hit(1), "err")
        picked = job.with_selected(True)
        assert picked.selected is True and job.selected is False


class TestShortenReason:
    def test_short_reason_untouched(self) -> None:
        assert shorten_reason("  timeout  ") == "timeout"

    def test_empty_reason(self) -> None:
        assert shorten_reason("") == "Unknown"


class TestGeneratedMaterials:
    def test_from_payload_skips_incomplete_pairs(self) -> None:
        materials = GeneratedMaterials.from_payload({
            "customCv": "CV",
            "coverLetter": "Letter",
            "interviewQa": [
                {"q": "Why us?", "a": "Mission.", "type": "general"},
                {"q": "Big-O of dict lookup?", "a": "O(1) average.", "type": "technical"},
                {"q": "No answer"},
                "junk",
                {"q": "Odd type?", "a": "Yes.", "type": "behavioural"},
            ],
        })
        assert materials.custom_cv == "CV" and materials.cover_letter == "Letter"
        assert [qa.type for qa in materials.interview_qa] == ["general", "technical", "general"]

    def test_missing_parts_default_to_empty(self) -> None:
        materials = GeneratedMaterials.from_payload({})
        assert materials == GeneratedMaterials()

    def test_interview_qa_text(self) -> None:
        materials = GeneratedMaterials(interview_qa=[InterviewQA("One?", "1."), InterviewQA("Two?", "2.")])
        assert materials.interview_qa_text() == "Q: One?\nA: 1.\n\nQ: Two?\nA: 2."
