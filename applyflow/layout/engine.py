"""Lay classified blocks out onto pages as draw operations.

Coordinates are in points with the origin at the top-left of the page and
``y`` growing downwards. Layout runs in two passes: content first, then
footers, because "Page X of N" needs N and N is only known once all
content has flowed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit

from applyflow.layout.blocks import (
    Block,
    Bullet,
    Mode,
    Paragraph,
    QAPair,
    SectionHeading,
    Subheading,
    parse_blocks,
)
from applyflow.log import get_logger

log = get_logger(__name__)

Align = Literal["left", "right", "center"]

LINE_HEIGHT = 1.2

# Space a block needs below the cursor before it may start on this page
BLOCK_MIN_HEIGHT: dict[type, float] = {
    SectionHeading: 52,
    Subheading: 18,
    Bullet: 18,
    Paragraph: 22,
    QAPair: 80,
}


@dataclass(frozen=True)
class Theme:
    accent: str = "#0F766E"
    ink: str = "#111111"
    muted: str = "#444444"
    light: str = "#F3F4F6"
    on_accent: str = "#FFFFFF"
    question_bg: str = "#EEF2FF"
    question_ink: str = "#111827"
    divider: str = "#E5E7EB"


@dataclass(frozen=True)
class Fonts:
    sans: str = "Helvetica"
    sans_bold: str = "Helvetica-Bold"
    serif: str = "Times-Roman"
    serif_bold: str = "Times-Bold"


@dataclass(frozen=True)
class PageGeometry:
    width: float = A4[0]
    height: float = A4[1]
    margin: float = 54
    band_height: float = 64

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def bottom(self) -> float:
        return self.height - self.margin

    @property
    def page_room(self) -> float:
        """Vertical space for content on a fresh page, below the title band."""
        return self.bottom - self.band_height - 32


# ── Draw operations ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    color: str


@dataclass(frozen=True)
class CircleOp:
    x: float
    y: float
    radius: float
    color: str


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    width: float
    text: str
    font: str
    size: float
    color: str
    align: Align = "left"


DrawOp = Union[RectOp, CircleOp, TextOp]


@dataclass
class Page:
    number: int
    ops: list[DrawOp] = field(default_factory=list)

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass
class LaidOutDocument:
    title: str
    pages: list[Page]
    author: str = "Agent"
    subject: str = ""
    geometry: PageGeometry = field(default_factory=PageGeometry)
    fonts: Fonts = field(default_factory=Fonts)
    footers_stamped: bool = False

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass
class LayoutContext:
    """Page cursor plus the pages produced so far. Only the engine writes it."""

    title: str
    geometry: PageGeometry = field(default_factory=PageGeometry)
    theme: Theme = field(default_factory=Theme)
    fonts: Fonts = field(default_factory=Fonts)
    pages: list[Page] = field(default_factory=list)
    y: float = 0.0

    @property
    def page(self) -> Page:
        return self.pages[-1]

    @property
    def margin(self) -> float:
        return self.geometry.margin

    @property
    def content_width(self) -> float:
        return self.geometry.content_width

    def remaining(self) -> float:
        return self.geometry.bottom - self.y

    def emit(self, op: DrawOp) -> None:
        self.page.ops.append(op)


# ── Cursor and page flow ────────────────────────────────────────────────


def needs_break(ctx: LayoutContext, height: float) -> bool:
    return not ctx.pages or ctx.y + height > ctx.geometry.bottom


def start_page(ctx: LayoutContext) -> None:
    """New page with the title band; the cursor lands just below it."""
    g, theme = ctx.geometry, ctx.theme
    ctx.pages.append(Page(number=len(ctx.pages) + 1))

    ctx.emit(RectOp(0, 0, g.width, g.band_height, theme.accent))
    title_lines = wrap(ctx.title, ctx.fonts.sans_bold, 18, ctx.content_width)[:2]
    y = 22.0
    for line in title_lines:
        ctx.emit(TextOp(ctx.margin, y, ctx.content_width, line, ctx.fonts.sans_bold, 18, theme.on_accent))
        y += 18 * LINE_HEIGHT * 0.9

    ctx.y = g.band_height + 18
    ctx.emit(RectOp(ctx.margin, ctx.y, ctx.content_width, 2, theme.accent))
    ctx.y += 14


def ensure_space(ctx: LayoutContext, height: float) -> None:
    if needs_break(ctx, height):
        start_page(ctx)


def wrap(text: str, font: str, size: float, width: float) -> list[str]:
    return simpleSplit(text or "", font, size, width) or []


def move_down(ctx: LayoutContext, lines: float, size: float) -> None:
    ctx.y += lines * size * LINE_HEIGHT


def flow_text(
    ctx: LayoutContext,
    text: str,
    *,
    x: float,
    width: float,
    font: str,
    size: float,
    color: str,
    line_gap: float = 0.0,
) -> None:
    """Wrap *text* and write it line by line, continuing on a new page if needed."""
    leading = size * LINE_HEIGHT + line_gap
    for line in wrap(text, font, size, width):
        if needs_break(ctx, leading):
            start_page(ctx)
        ctx.emit(TextOp(x, ctx.y, width, line, font, size, color))
        ctx.y += leading


# ── Block drawers ───────────────────────────────────────────────────────


def draw_section_heading(ctx: LayoutContext, text: str) -> None:
    font, size = ctx.fonts.sans_bold, 12
    leading = size * LINE_HEIGHT
    lines = wrap(text, font, size, ctx.content_width - 14) or [""]
    while lines:
        fit = max(1, int((ctx.remaining() - 28) // leading) + 1)
        chunk, lines = lines[:fit], lines[fit:]
        y0 = ctx.y
        chip_h = 18 + (len(chunk) - 1) * leading
        ctx.emit(RectOp(ctx.margin, y0 - 2, ctx.content_width, chip_h + 6, ctx.theme.light))
        ctx.emit(RectOp(ctx.margin, y0 - 2, 6, chip_h + 6, ctx.theme.accent))
        y = y0 + 2
        for line in chunk:
            ctx.emit(TextOp(ctx.margin + 14, y, ctx.content_width - 14, line, font, size, ctx.theme.ink))
            y += leading
        ctx.y = y0 + chip_h + 10
        if lines:
            start_page(ctx)


def draw_subheading(ctx: LayoutContext, text: str) -> None:
    flow_text(ctx, text, x=ctx.margin, width=ctx.content_width,
              font=ctx.fonts.serif_bold, size=11, color=ctx.theme.ink)
    move_down(ctx, 0.15, 11)


def draw_paragraph(ctx: LayoutContext, text: str) -> None:
    flow_text(ctx, text, x=ctx.margin, width=ctx.content_width,
              font=ctx.fonts.serif, size=11, color=ctx.theme.ink, line_gap=3)
    move_down(ctx, 0.45, 11)


def draw_bullet(ctx: LayoutContext, text: str) -> None:
    ctx.emit(CircleOp(ctx.margin + 4, ctx.y + 6, 2.2, ctx.theme.accent))
    flow_text(ctx, text, x=ctx.margin + 14, width=ctx.content_width - 14,
              font=ctx.fonts.serif, size=11, color=ctx.theme.ink, line_gap=3)
    move_down(ctx, 0.25, 11)


def draw_qa(ctx: LayoutContext, question: str, answer: str) -> None:
    q_font, q_size = ctx.fonts.sans_bold, 11
    q_leading = q_size * LINE_HEIGHT
    q_lines = wrap(f"Q: {question}", q_font, q_size, ctx.content_width - 20) or [""]
    needed = max(22.0, len(q_lines) * q_leading + 8) + 30
    # a question taller than a page starts here and continues in a fresh box
    if needed <= ctx.geometry.page_room:
        ensure_space(ctx, needed)

    while q_lines:
        fit = max(1, int((ctx.remaining() - 14) // q_leading))
        chunk, q_lines = q_lines[:fit], q_lines[fit:]
        box_h = max(22.0, len(chunk) * q_leading + 8)
        q_y = ctx.y
        ctx.emit(RectOp(ctx.margin, q_y - 2, ctx.content_width, box_h, ctx.theme.question_bg))
        y = q_y + 3
        for line in chunk:
            ctx.emit(TextOp(ctx.margin + 10, y, ctx.content_width - 20, line, q_font, q_size, ctx.theme.question_ink))
            y += q_leading
        ctx.y = q_y + box_h + 6
        if q_lines:
            start_page(ctx)

    flow_text(ctx, f"A: {answer}", x=ctx.margin, width=ctx.content_width,
              font=ctx.fonts.serif, size=11, color=ctx.theme.ink, line_gap=3)
    move_down(ctx, 0.6, 11)
    if not needs_break(ctx, 1):
        ctx.emit(RectOp(ctx.margin, ctx.y, ctx.content_width, 1, ctx.theme.divider))
    ctx.y += 10


def draw_block(ctx: LayoutContext, block: Block) -> None:
    ensure_space(ctx, BLOCK_MIN_HEIGHT[type(block)])
    if isinstance(block, SectionHeading):
        draw_section_heading(ctx, block.text)
    elif isinstance(block, Subheading):
        draw_subheading(ctx, block.text)
    elif isinstance(block, Bullet):
        draw_bullet(ctx, block.text)
    elif isinstance(block, QAPair):
        draw_qa(ctx, block.question, block.answer)
    else:
        draw_paragraph(ctx, block.text)


# ── Public entry points ─────────────────────────────────────────────────


def safe_title(title: str | None) -> str:
    t = (title or "").strip()
    return t[:160] if t else "Document"


def layout_blocks(
    title: str,
    blocks: list[Block],
    *,
    author: str = "Agent",
    subject: str = "",
    theme: Theme | None = None,
    fonts: Fonts | None = None,
    geometry: PageGeometry | None = None,
) -> LaidOutDocument:
    """Content pass: flow *blocks* onto pages. Footers are not drawn yet."""
    ctx = LayoutContext(
        title=safe_title(title),
        geometry=geometry or PageGeometry(),
        theme=theme or Theme(),
        fonts=fonts or Fonts(),
    )
    start_page(ctx)
    for block in blocks:
        draw_block(ctx, block)
    log.debug("Laid out %r: %d blocks on %d page(s)", ctx.title, len(blocks), len(ctx.pages))
    return LaidOutDocument(
        title=ctx.title,
        pages=ctx.pages,
        author=author,
        subject=subject,
        geometry=ctx.geometry,
        fonts=ctx.fonts,
    )


def stamp_footers(
    doc: LaidOutDocument,
    *,
    generated_on: date | None = None,
    theme: Theme | None = None,
) -> LaidOutDocument:
    """Footer pass: date on the left, "Page X of N" on the right of every page."""
    theme = theme or Theme()
    g = doc.geometry
    stamp = (generated_on or date.today()).isoformat()
    total = doc.page_count
    footer_y = g.bottom + 14
    for page in doc.pages:
        page.ops.append(TextOp(g.margin, footer_y, g.content_width, f"Generated on {stamp}",
                               doc.fonts.sans, 9, theme.muted, "left"))
        page.ops.append(TextOp(g.margin, footer_y, g.content_width, f"Page {page.number} of {total}",
                               doc.fonts.sans, 9, theme.muted, "right"))
    doc.footers_stamped = True
    return doc


def layout_text(
    title: str,
    content: str,
    *,
    mode: Mode = "auto",
    author: str = "Agent",
    subject: str = "",
    generated_on: date | None = None,
    theme: Theme | None = None,
    fonts: Fonts | None = None,
) -> LaidOutDocument:
    """Classify, lay out and footer a block of generated text."""
    theme = theme or Theme()
    blocks = parse_blocks(content, mode)
    doc = layout_blocks(title, blocks, author=author, subject=subject, theme=theme, fonts=fonts)
    return stamp_footers(doc, generated_on=generated_on, theme=theme)
