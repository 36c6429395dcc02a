"""Markdown report of one run: matched jobs, selections and generated files."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from applyflow.log import get_logger
from applyflow.models import MatchedJob

log = get_logger(__name__)


def _short_url_label(url: str) -> str:
    host = urlparse(url).hostname or ""
    for prefix in ("www.", "uk.", "m."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    parts = host.split(".")
    return parts[0].capitalize() if parts and parts[0] else "Link"


def _clip(text: str, limit: int) -> str:
    return text[:limit] + ("…" if len(text) > limit else "")


def build_run_report(
    query: str,
    jobs: list[MatchedJob],
    files: dict[str, list[Path]],
    *,
    searched: int = 0,
    generation_errors: dict[str, str] | None = None,
) -> str:
    generation_errors = generation_errors or {}
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    selected = [j for j in jobs if j.selected]
    lines: list[str] = [f"# Job Match Report — {date}", ""]
    lines.append(f"Query: `{query}`")
    lines.append("")
    lines.append(
        f"**{searched}** postings found | **{len(jobs)}** scored | **{len(selected)}** selected"
    )
    lines.append("")

    if jobs:
        lines.append("## Matches")
        lines.append("")
        for j in jobs:
            badge = "✅" if j.selected else ("⚠️" if not j.scored else "\U0001f517")
            lines.append(f"### {badge} {j.title} @ {j.company}")
            lines.append(f"- **Match:** {j.match_percent}% — {j.seniority_fit} fit")
            lines.append(f"- **Location:** {j.location}")
            if j.matching_skills:
                lines.append(f"- **Matching:** {', '.join(j.matching_skills[:6])}")
            if j.missing_skills:
                lines.append(f"- **Missing:** {', '.join(j.missing_skills[:6])}")
            if j.salary_range and j.salary_range != "N/A":
                lines.append(f"- **Salary:** {j.salary_range}")
            lines.append(f"- **Analysis:** {_clip(j.analysis, 300)}")
            if j.url:
                lines.append(f"- **Apply:** [{_short_url_label(j.url)}]({j.url})")
            for path in files.get(j.id, []):
                lines.append(f"- **File:** `{path.name}`")
            if j.id in generation_errors:
                lines.append(f"- _Generation failed: {_clip(generation_errors[j.id], 120)}_")
            lines.append("")

        lines.append("---")
        lines.append("")
        lines.append("| # | Role | Company | Match | Selected |")
        lines.append("|--:|------|---------|------:|----------|")
        for i, j in enumerate(jobs, 1):
            mark = "yes" if j.selected else ""
            lines.append(f"| {i} | {_clip(j.title, 40)} | {_clip(j.company, 22)} | {j.match_percent}% | {mark} |")
        lines.append("")
    else:
        lines.append("_No matching postings found._")
        lines.append("")

    log.info("Built run report: %d jobs, %d selected", len(jobs), len(selected))
    return "\n".join(lines)


def write_run_report(content: str, out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    path = out_dir / f"report_{date}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
