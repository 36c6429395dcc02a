"""Render a laid-out document to PDF bytes with the reportlab canvas."""
from __future__ import annotations

import io
import re
from datetime import date
from pathlib import Path

from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from applyflow.layout.blocks import Mode
from applyflow.layout.engine import CircleOp, LaidOutDocument, RectOp, TextOp, layout_text
from applyflow.log import get_logger

log = get_logger(__name__)

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9._-]")


def safe_filename(name: str, suffix: str = ".pdf") -> str:
    base = _UNSAFE_RE.sub("_", (name or "").strip()) or "document"
    return base if base.lower().endswith(suffix) else base + suffix


def _draw_text(c: canvas.Canvas, op: TextOp, page_height: float) -> None:
    # engine y is the top of the line box; reportlab wants the baseline
    baseline = page_height - op.y - pdfmetrics.getAscent(op.font, op.size)
    c.setFillColor(colors.HexColor(op.color))
    c.setFont(op.font, op.size)
    if op.align == "right":
        c.drawRightString(op.x + op.width, baseline, op.text)
    elif op.align == "center":
        c.drawCentredString(op.x + op.width / 2, baseline, op.text)
    else:
        c.drawString(op.x, baseline, op.text)


def render_pdf(doc: LaidOutDocument) -> bytes:
    """Replay every page's draw operations onto a canvas."""
    if not doc.footers_stamped:
        log.warning("Rendering %r before footers were stamped", doc.title)
    width, height = doc.geometry.width, doc.geometry.height
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height))
    c.setTitle(doc.title)
    c.setAuthor(doc.author)
    c.setSubject(doc.subject)
    c.setCreator("applyflow")

    for page in doc.pages:
        for op in page.ops:
            if isinstance(op, RectOp):
                c.setFillColor(colors.HexColor(op.color))
                c.rect(op.x, height - op.y - op.height, op.width, op.height, stroke=0, fill=1)
            elif isinstance(op, CircleOp):
                c.setFillColor(colors.HexColor(op.color))
                c.circle(op.x, height - op.y, op.radius, stroke=0, fill=1)
            else:
                _draw_text(c, op, height)
        c.showPage()

    c.save()
    data = buf.getvalue()
    log.debug("Rendered %r: %d page(s), %d bytes", doc.title, doc.page_count, len(data))
    return data


def text_to_pdf(
    title: str,
    content: str,
    *,
    mode: Mode = "auto",
    author: str = "Agent",
    subject: str = "",
    generated_on: date | None = None,
) -> bytes:
    doc = layout_text(
        title, content, mode=mode, author=author, subject=subject, generated_on=generated_on
    )
    return render_pdf(doc)


def write_pdf(path: Path, title: str, content: str, *, mode: Mode = "auto", subject: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(text_to_pdf(title, content, mode=mode, subject=subject))
    log.info("PDF written → %s", path)
    return path
