#!/usr/bin/env python3
"""Entry point to run the job application agent."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from applyflow.errors import ApplyflowError
from applyflow.log import get_logger

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="applyflow",
        description="Search job postings, score them against a resume and write application PDFs.",
    )
    parser.add_argument("--resume", type=Path, help="resume file (.pdf, .docx, .txt, .md)")
    parser.add_argument("--keywords", help='search keywords, or "auto" to derive them from the resume')
    parser.add_argument("--location", help="display location for results")
    parser.add_argument("--select", type=int, help="number of top matches to generate materials for")
    parser.add_argument("--min-match", type=int, help="minimum match percentage to auto-select")
    parser.add_argument("--out", type=Path, help="output directory for PDFs and the report")
    parser.add_argument("--no-generate", action="store_true", help="score only, skip materials")
    parser.add_argument("--offline", action="store_true", help="use canned search results")
    parser.add_argument("--render", type=Path, metavar="FILE", help="render a text file to PDF and exit")
    parser.add_argument("--title", default="Document", help="title for --render")
    parser.add_argument("--mode", choices=("auto", "qa", "prose"), default="auto", help="layout mode for --render")
    return parser.parse_args(argv)


def _render(args: argparse.Namespace) -> int:
    from applyflow.layout.pdf import safe_filename, write_pdf

    src: Path = args.render
    content = src.read_text(encoding="utf-8", errors="ignore")
    out_dir = args.out or src.parent
    path = write_pdf(out_dir / safe_filename(src.stem), args.title, content, mode=args.mode)
    log.info("Rendered %s → %s", src.name, path)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.render:
        return _render(args)

    from applyflow.agent import run

    try:
        result = run(
            resume_path=args.resume,
            keywords=args.keywords,
            location=args.location,
            select=args.select,
            min_match=args.min_match,
            generate=not args.no_generate,
            out_dir=args.out,
            offline=args.offline,
        )
    except ApplyflowError as exc:
        log.error("%s", exc)
        return 1
    except (FileNotFoundError, ValueError) as exc:
        log.error("Cannot read resume: %s", exc)
        return 1

    log.info("Run complete.")
    log.info("  Query: %s", result["query"])
    log.info("  Jobs found: %d", result["jobs_found"])
    log.info("  Scored: %d", result["scored_count"])
    log.info("  Selected: %d", result["selected_count"])
    log.info("  PDFs written: %d", result["pdfs_written"])
    if result["report_path"]:
        log.info("  Report: %s", result["report_path"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
