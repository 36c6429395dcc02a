"""Generate a tailored CV, cover letter and interview Q&A for a selected job."""
from __future__ import annotations

from typing import Sequence

from applyflow.batch import ItemFailure, run_batch_lenient
from applyflow.errors import ProviderError
from applyflow.llm import LLMClient, clamp_text, parse_json_object
from applyflow.log import get_logger
from applyflow.matcher import JobLike, job_context_text
from applyflow.models import GeneratedMaterials, MatchedJob

log = get_logger(__name__)

MAX_GENERATE_INPUT_CHARS = 25000

GENERATE_SYSTEM_PROMPT = """You write job application materials.
Everything above "Candidate:" is the JOB; everything below is the CANDIDATE's resume.
Return STRICT JSON only:
{
  "customCv": string,
  "coverLetter": string,
  "interviewQa": [{"q": string, "a": string, "type": "general"|"technical"}]
}
Rules:
- customCv: ATS-friendly plain text resume tailored to the job. Use section
  headings on their own line (SUMMARY, EXPERIENCE, EDUCATION, SKILLS), "- "
  bullets, and "Role — Company, 2019–2021" lines for positions.
- coverLetter: under 350 words, first person, no placeholders like [Your Name].
- interviewQa: 6 to 10 likely interview questions with strong answers grounded
  in the candidate's real experience.
- Never invent employers, degrees or certifications.
Return ONLY JSON."""


class MaterialsGenerator:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def generate(self, job: JobLike, resume_text: str) -> GeneratedMaterials:
        text = clamp_text(job_context_text(job, resume_text), MAX_GENERATE_INPUT_CHARS)
        raw = await self.llm.complete(GENERATE_SYSTEM_PROMPT, text)
        payload = parse_json_object(raw)
        if payload is None:
            raise ProviderError("Generation response contained no JSON object")
        materials = GeneratedMaterials.from_payload(payload)
        log.info(
            "Materials generated for %s @ %s (%d Q&A)",
            job.title, job.company, len(materials.interview_qa),
        )
        return materials

    async def generate_many(
        self,
        jobs: Sequence[MatchedJob],
        resume_text: str,
        *,
        concurrency: int = 2,
        retries: int = 3,
        base_delay: float = 1.0,
    ) -> dict[str, GeneratedMaterials | ItemFailure]:
        """Materials per job id; a failed job maps to its :class:`ItemFailure`."""
        results = await run_batch_lenient(
            list(jobs),
            lambda job, _i: self.generate(job, resume_text),
            concurrency=concurrency,
            retries=retries,
            base_delay=base_delay,
        )
        return {job.id: result for job, result in zip(jobs, results)}
