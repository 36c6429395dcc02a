"""
Job application agent.

Runs: resume → search query → search → rerank → score → select → generate
materials → render PDFs → run report.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import httpx

from applyflow.batch import ItemFailure
from applyflow.config import Settings, load_profile, load_settings
from applyflow.errors import ConfigError
from applyflow.generator import MaterialsGenerator
from applyflow.layout.pdf import safe_filename, write_pdf
from applyflow.llm import LLMClient
from applyflow.log import get_logger
from applyflow.matcher import MatchScorer, MatchSession
from applyflow.models import GeneratedMaterials, MatchedJob
from applyflow.query_builder import build_search_query
from applyflow.report import build_run_report, write_run_report
from applyflow.rerank import JinaReranker, rerank_hits
from applyflow.resume_text import MIN_RESUME_CHARS, load_resume
from applyflow.search import JobSearchAggregator
from applyflow.sources import SearchProvider, get_source

log = get_logger(__name__)

RERANK_PROMPT = "Find the best matching jobs for this profile: "
MAX_RANKED_HITS = 30


def select_top(jobs: list[MatchedJob], count: int, min_match: int = 0) -> list[MatchedJob]:
    """The *count* best scored jobs at or above *min_match*, best first."""
    eligible = [j for j in jobs if j.scored and j.match_percent >= min_match]
    return eligible[: max(count, 0)]


def write_materials(job: MatchedJob, materials: GeneratedMaterials, out_dir: Path) -> list[Path]:
    """Render the non-empty parts of *materials* to PDFs named after the job."""
    stem = f"{job.company}_{job.title}"[:60] + f"_{job.id}"
    subject = f"{job.title} @ {job.company}"
    written: list[Path] = []
    if materials.custom_cv.strip():
        written.append(write_pdf(
            out_dir / safe_filename(f"{stem}_cv"), "Tailored CV",
            materials.custom_cv, mode="resume", subject=subject,
        ))
    if materials.cover_letter.strip():
        written.append(write_pdf(
            out_dir / safe_filename(f"{stem}_cover_letter"), "Cover Letter",
            materials.cover_letter, mode="cover", subject=subject,
        ))
    if materials.interview_qa:
        written.append(write_pdf(
            out_dir / safe_filename(f"{stem}_interview_qa"), "Interview Q&A",
            materials.interview_qa_text(), mode="qa", subject=subject,
        ))
    return written


async def run_async(
    *,
    resume_path: Path | None = None,
    keywords: str | None = None,
    location: str | None = None,
    select: int | None = None,
    min_match: int | None = None,
    generate: bool = True,
    out_dir: Path | None = None,
    offline: bool = False,
    write_report: bool = True,
    settings: Settings | None = None,
    llm: LLMClient | None = None,
    source: SearchProvider | None = None,
) -> dict[str, Any]:
    settings = settings or load_settings()
    profile = load_profile()

    resume_value = resume_path or profile.get("resume_path")
    if not resume_value:
        raise ConfigError("No resume given: pass --resume or set resume_path in config/profile.yaml")
    keywords = profile["keywords"] if keywords is None else keywords
    location = profile["location"] if location is None else location
    select = int(profile["select_top"] if select is None else select)
    min_match = int(profile["min_match"] if min_match is None else min_match)
    out_dir = out_dir or settings.output_dir

    resume_text = load_resume(Path(resume_value))
    llm = llm or LLMClient.from_settings(settings)

    async with httpx.AsyncClient() as client:
        source = source or get_source(settings, client, offline=offline)
        reranker = None
        if settings.jina_api_key and not offline:
            reranker = JinaReranker(settings.jina_api_key, client)

        # 1. Search
        query = await build_search_query(resume_text, keywords, llm)
        aggregator = JobSearchAggregator(source, max_results=settings.max_results)
        hits = await aggregator.search(query, location)
        searched = len(hits)

        # 2. Rerank against the query
        if len(resume_text) > MIN_RESUME_CHARS and len(hits) > 1:
            hits = await rerank_hits(reranker, RERANK_PROMPT + query, hits)
        hits = hits[:MAX_RANKED_HITS]

    # 3. Score the top postings
    session = MatchSession(
        MatchScorer(llm),
        concurrency=settings.concurrency,
        retries=settings.retries,
    )
    jobs = await session.run(resume_text, hits)
    for job in select_top(jobs, select, min_match):
        session.set_selected(job.id, True)
    selected = session.selected_jobs()
    log.info("Selected %d of %d scored job(s)", len(selected), len(session.jobs))

    # 4. Materials for the selection
    files: dict[str, list[Path]] = {}
    generation_errors: dict[str, str] = {}
    if generate and selected:
        generator = MaterialsGenerator(llm)
        results = await generator.generate_many(
            selected, resume_text,
            concurrency=settings.concurrency, retries=settings.retries,
        )
        for job in selected:
            result = results[job.id]
            if isinstance(result, ItemFailure):
                log.error("Generation failed for %s @ %s: %s", job.title, job.company, result.error)
                generation_errors[job.id] = result.error
                continue
            files[job.id] = write_materials(job, result, out_dir)

    # 5. Run report
    report_content = build_run_report(
        query, session.jobs, files, searched=searched, generation_errors=generation_errors,
    )
    report_path = write_run_report(report_content, out_dir) if write_report else None

    pdf_count = sum(len(paths) for paths in files.values())
    log.info(
        "Run complete — found=%d, scored=%d, selected=%d, pdfs=%d",
        searched, len(session.jobs), len(selected), pdf_count,
    )
    return {
        "query": query,
        "jobs_found": searched,
        "scored_count": len(session.jobs),
        "selected_count": len(selected),
        "pdfs_written": pdf_count,
        "generation_failures": len(generation_errors),
        "report_path": str(report_path) if report_path else None,
        "jobs": session.jobs,
    }


def run(**kwargs: Any) -> dict[str, Any]:
    return asyncio.run(run_async(**kwargs))
