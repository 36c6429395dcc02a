"""Read a candidate resume into plain text.

Supports PDF (via pypdf), DOCX (via stdlib zipfile) and TXT/MD.
"""
from __future__ import annotations

import re
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from pypdf import PdfReader

from applyflow.log import get_logger

log = get_logger(__name__)

MIN_RESUME_CHARS = 20

_DOCX_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together."""
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%), applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


def _extract_pdf(path: Path) -> str:
    reader = PdfReader(str(path))
    return "\n".join(_fix_spacing(page.extract_text() or "") for page in reader.pages)


def _extract_docx(path: Path) -> str:
    texts: list[str] = []
    with zipfile.ZipFile(path) as zf:
        with zf.open("word/document.xml") as f:
            tree = ElementTree.parse(f)
            for para in tree.iter(f"{_DOCX_NS}p"):
                parts = [node.text for node in para.iter(f"{_DOCX_NS}t") if node.text]
                if parts:
                    texts.append("".join(parts))
    return "\n".join(texts)


def extract_text(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in (".txt", ".md"):
        return path.read_text(encoding="utf-8", errors="ignore")
    if suffix == ".docx":
        return _extract_docx(path)
    if suffix == ".pdf":
        return _extract_pdf(path)
    raise ValueError(f"Unsupported resume format: {suffix}")


def load_resume(path: Path) -> str:
    """Resume text, stripped of NUL bytes; too-short text is rejected."""
    if not path.exists():
        raise FileNotFoundError(f"Resume not found: {path}")
    log.info("Extracting text from %s", path.name)
    text = extract_text(path).replace("\x00", "").strip()
    if len(text) < MIN_RESUME_CHARS:
        raise ValueError(f"Could not extract enough text from {path.name}")
    return text
