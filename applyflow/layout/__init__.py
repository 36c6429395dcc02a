from .blocks import Block, Bullet, Paragraph, QAPair, SectionHeading, Subheading, parse_blocks
from .engine import LaidOutDocument, layout_blocks, layout_text, stamp_footers
from .pdf import render_pdf, safe_filename, text_to_pdf, write_pdf

__all__ = [
    "Block", "Bullet", "Paragraph", "QAPair", "SectionHeading", "Subheading",
    "parse_blocks", "LaidOutDocument", "layout_blocks", "layout_text",
    "stamp_footers", "render_pdf", "safe_filename", "text_to_pdf", "write_pdf",
]
