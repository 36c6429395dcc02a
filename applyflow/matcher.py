"""Score candidate-to-job fit for a handful of postings and keep a mergeable list.

Each posting is scored independently through the batch runner. A posting
whose scoring fails still appears in the list, as a zero-score entry whose
``analysis`` says why, so callers always get one entry per posting.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from applyflow.batch import ItemFailure, Progress, run_batch_lenient
from applyflow.errors import ProviderError
from applyflow.llm import LLMClient, clamp_text, parse_json_object
from applyflow.log import get_logger
from applyflow.models import MatchedJob, MatchResult, SearchHit
from applyflow.retry import is_retryable

log = get_logger(__name__)

MAX_SCORED_JOBS = 5
MAX_MATCH_INPUT_CHARS = 25000

MATCH_SYSTEM_PROMPT = """You are an ATS-style job matching evaluator.
Return STRICT JSON only:
{
  "matchPercentage": number (0-100),
  "matchingSkills": string[],
  "missingSkills": string[],
  "strengths": string[],
  "gaps": string[],
  "analysis": string,
  "recommendedKeywords": string[],
  "salaryRange": string,
  "seniorityFit": "perfect"|"good"|"average"|"poor"
}
INPUT FORMAT:
Everything above "Candidate:" is JOB.
Everything below "Candidate:" is CANDIDATE.
Return ONLY JSON."""


class JobLike(Protocol):
    title: str
    company: str
    location: str
    description: str


def job_context_text(job: JobLike, resume_text: str) -> str:
    """Job posting above ``Candidate:``, resume below it."""
    return (
        f"{job.title} @ {job.company}\nLocation: {job.location or ''}\n\n"
        f"{job.description or ''}\n\nCandidate:\n{(resume_text or '').strip()}"
    )


class MatchScorer:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def score(self, text: str, *, structured: bool = True) -> MatchResult:
        """One scoring request.

        ``structured`` asks the provider for a JSON object response. The plain
        variant accepts JSON wrapped in prose, but an answer with no JSON
        object at all is an error.
        """
        raw = await self.llm.complete(
            MATCH_SYSTEM_PROMPT, clamp_text(text, MAX_MATCH_INPUT_CHARS), json_mode=structured
        )
        if structured:
            return MatchResult.from_json(raw)
        payload = parse_json_object(raw)
        if payload is None:
            raise ProviderError("Scoring response contained no JSON object")
        return MatchResult.from_payload(payload)


@dataclass(frozen=True)
class ScoringPolicy:
    """A structured attempt, then at most one plain attempt.

    Rate-limit failures skip the plain attempt and propagate so the batch
    runner can back off and retry the whole item.
    """

    fallback: bool = True

    async def score(self, scorer: MatchScorer, text: str) -> MatchResult:
        try:
            return await scorer.score(text, structured=True)
        except ProviderError as exc:
            if not self.fallback or is_retryable(exc):
                raise
            log.warning("Structured scoring failed (%s), retrying with a plain request", exc)
        return await scorer.score(text, structured=False)


class MatchSession:
    """The displayed list of matched jobs for one candidate.

    ``selected`` flags belong to the caller; every merge carries them over by
    job id, so re-running the scorer never clears a selection.
    """

    def __init__(
        self,
        scorer: MatchScorer,
        *,
        policy: ScoringPolicy | None = None,
        concurrency: int = 2,
        retries: int = 3,
        base_delay: float = 1.0,
        limit: int = MAX_SCORED_JOBS,
        on_update: Callable[[list[MatchedJob]], None] | None = None,
        on_progress: Callable[[Progress], None] | None = None,
    ) -> None:
        self.scorer = scorer
        self.policy = policy or ScoringPolicy()
        self.concurrency = concurrency
        self.retries = retries
        self.base_delay = base_delay
        self.limit = limit
        self.on_update = on_update
        self.on_progress = on_progress
        self.jobs: list[MatchedJob] = []
        self._baseline: dict[str, bool] = {}
        # one stop token per run; a newer run never revives an older one
        self._stop = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        """Stop starting new items; items already in flight finish but are dropped."""
        self._stop.set()

    def set_selected(self, job_id: str, selected: bool) -> bool:
        for i, job in enumerate(self.jobs):
            if job.id == job_id:
                self.jobs[i] = job.with_selected(selected)
                return True
        return False

    def selected_jobs(self) -> list[MatchedJob]:
        return [j for j in self.jobs if j.selected]

    def merge(self, incoming: Sequence[MatchedJob]) -> list[MatchedJob]:
        """Replace the list with *incoming*, keeping known selections, best first."""
        known = dict(self._baseline)
        known.update({j.id: j.selected for j in self.jobs})
        merged = [j.with_selected(known[j.id]) if j.id in known else j for j in incoming]
        # sorted() is stable: equal scores keep arrival order
        self.jobs = sorted(merged, key=lambda j: -j.match_percent)
        if self.on_update is not None:
            self.on_update(list(self.jobs))
        return self.jobs

    async def _score_one(self, hit: SearchHit, resume_text: str, stop: asyncio.Event) -> MatchedJob | None:
        if stop.is_set():
            return None
        match = await self.policy.score(self.scorer, job_context_text(hit, resume_text))
        return MatchedJob.from_match(hit, match)

    async def run(self, resume_text: str, hits: Sequence[SearchHit]) -> list[MatchedJob]:
        """Score the top hits, merging each result as it lands.

        Starting a run supersedes any run still in flight: its pending items
        never start and its late results are dropped.
        """
        top = list(hits)[: self.limit]
        self._stop.set()
        stop = self._stop = asyncio.Event()
        if not top:
            self.jobs = []
            return []
        self._baseline = {j.id: j.selected for j in self.jobs}
        arrived: list[MatchedJob] = []

        def on_result(index: int, value: MatchedJob | ItemFailure | None) -> None:
            if stop.is_set() or value is None:
                return
            if isinstance(value, ItemFailure):
                log.warning("Scoring failed for %s: %s", top[index].title, value.error)
                value = MatchedJob.degraded(top[index], value.error)
            arrived.append(value)
            self.merge(arrived)

        log.info("Scoring %d job(s), concurrency=%d", len(top), self.concurrency)
        await run_batch_lenient(
            top,
            lambda hit, _i: self._score_one(hit, resume_text, stop),
            concurrency=self.concurrency,
            retries=self.retries,
            base_delay=self.base_delay,
            on_progress=self.on_progress,
            on_result=on_result,
        )
        failed = sum(1 for j in arrived if not j.scored)
        log.info("Scored %d job(s), %d failed", len(arrived), failed)
        return list(self.jobs)
