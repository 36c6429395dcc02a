"""Classify generated text into document blocks.

One forward pass over normalised lines. Q&A mode is chosen when the text
has at least three ``Q:`` and three ``A:`` lines (or when forced); every
other document goes through prose mode, where lines become section
headings, subheadings, bullets or paragraphs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Union

Mode = Literal["auto", "qa", "prose", "resume", "cover"]

_UNDERLINE_RE = re.compile(r"^(?:={3,}|-{3,})$")
_BULLET_RE = re.compile(r"^(?:[-•]\s+|\d+\.\s+)")
_BULLET_MARK_RE = re.compile(r"^[-•]\s+")
_YEAR_RE = re.compile(r"\b(?:20\d{2}|19\d{2})\b")
_TITLE_LIKE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9 &/(),.-]+$")
_SECTION_RE = re.compile(
    r"^(?:professional summary|summary|experience|work experience|education|skills"
    r"|technical skills|projects|certifications|additional information|profile"
    r"|cover letter|interview q&a|interview qa):?$",
    re.IGNORECASE,
)
_RESUME_RE = re.compile(r"^resume$", re.IGNORECASE)
_Q_RE = re.compile(r"^q:\s*", re.IGNORECASE)
_A_RE = re.compile(r"^a:\s*", re.IGNORECASE)

QA_TITLE = "Interview Q&A"
FALLBACK_HEADING = "Content"


@dataclass(frozen=True)
class SectionHeading:
    text: str


@dataclass(frozen=True)
class Subheading:
    text: str


@dataclass(frozen=True)
class Bullet:
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class QAPair:
    question: str
    answer: str


Block = Union[SectionHeading, Subheading, Bullet, Paragraph, QAPair]


# ── Line tests ──────────────────────────────────────────────────────────


def normalize_lines(text: str) -> list[str]:
    unified = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    return [line.rstrip() for line in unified.split("\n")]


def is_underline(line: str) -> bool:
    return bool(_UNDERLINE_RE.match((line or "").strip()))


def strip_underlines(lines: list[str]) -> list[str]:
    """Drop ``===``/``---`` lines that underline the line above them."""
    out: list[str] = []
    for line in lines:
        if is_underline(line) and out and out[-1].strip():
            continue
        out.append(line)
    return out


def is_bullet(line: str) -> bool:
    return bool(_BULLET_RE.match(line.strip()))


def is_subheading(line: str) -> bool:
    """Lines like "Role — Company | 2019–2021"."""
    t = line.strip()
    return len(t) <= 120 and ("—" in t or "|" in t or bool(_YEAR_RE.search(t)))


def is_all_caps(line: str) -> bool:
    letters = re.sub(r"[^A-Za-z]", "", line or "")
    return len(letters) >= 4 and letters == letters.upper()


def looks_like_heading(line: str) -> bool:
    t = (line or "").strip()
    if not t:
        return False
    if _SECTION_RE.match(t):
        return True
    if is_all_caps(t):
        return True
    return len(t) <= 48 and bool(_TITLE_LIKE_RE.match(t))


# ── Q&A ─────────────────────────────────────────────────────────────────


def detect_qa(lines: list[str]) -> bool:
    q_count = sum(1 for line in lines if line.strip().lower().startswith("q:"))
    a_count = sum(1 for line in lines if line.strip().lower().startswith("a:"))
    return q_count >= 3 and a_count >= 3


def parse_qa(lines: list[str]) -> list[QAPair]:
    pairs: list[QAPair] = []
    question = answer = ""

    def flush() -> None:
        if question.strip() and answer.strip():
            pairs.append(QAPair(question.strip(), answer.strip()))

    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if _Q_RE.match(line):
            flush()
            question, answer = _Q_RE.sub("", line, count=1).strip(), ""
            continue
        if _A_RE.match(line):
            answer = _A_RE.sub("", line, count=1).strip()
            continue
        # continuation of whichever part is open
        if answer:
            answer += " " + line
        elif question:
            question += " " + line
    flush()
    return pairs


# ── Prose ───────────────────────────────────────────────────────────────


def classify_line(line: str) -> Block:
    t = line.strip()
    if is_bullet(t):
        return Bullet(_BULLET_MARK_RE.sub("", t, count=1).strip())
    if is_subheading(t):
        return Subheading(t)
    return Paragraph(t)


def heading_text(line: str) -> str:
    t = line.strip()
    return t[:-1].rstrip() if t.endswith(":") else t


def resolve_mode(mode: Mode, lines: list[str]) -> Literal["qa", "prose"]:
    if mode == "qa":
        return "qa"
    if mode == "auto" and detect_qa(lines):
        return "qa"
    return "prose"


def parse_blocks(text: str, mode: Mode = "auto") -> list[Block]:
    lines = strip_underlines(normalize_lines(text))

    if resolve_mode(mode, lines) == "qa":
        return [SectionHeading(QA_TITLE), *parse_qa(lines)]

    blocks: list[Block] = []
    buffer: list[str] = []
    saw_heading = False

    def flush() -> None:
        for part in buffer:
            if part.strip():
                blocks.append(classify_line(part))
        buffer.clear()

    for raw in lines:
        line = raw.strip()
        if not line:
            flush()
            continue
        if _RESUME_RE.match(line):
            continue
        if looks_like_heading(line):
            saw_heading = True
            flush()
            blocks.append(SectionHeading(heading_text(line)))
            continue
        buffer.append(line)
    flush()

    content = "\n".join(lines).strip()
    if not saw_heading and content:
        return [SectionHeading(FALLBACK_HEADING), Paragraph(content)]
    return blocks
