"""Drive a composed document through the cursor, stamp footers, emit PDF."""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar, Optional, Sequence, Tuple

from .builders import Document, compose
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .formatting import format_timestamp
from .layout import LayoutCursor, Page, TextOp
from .models import DocumentKind
from .pdf import write_pdf
from .sections import RenderContext, render_section

LOGGER = logging.getLogger(__name__)

FOOTER_FONT_SIZE = 8.0
AUTHOR = "costreport"

_SLUG_PATTERN = re.compile(r"[^a-z0-9åäö]+")


@dataclass(frozen=True)
class Artifact:
    filename: str
    content: bytes
    page_count: int
    kind: DocumentKind
    warnings: Tuple[str, ...] = ()

    media_type: ClassVar[str] = "application/pdf"


def slugify(subject: Optional[str]) -> str:
    text = unicodedata.normalize("NFC", subject or "").lower()
    return _SLUG_PATTERN.sub("_", text).strip("_")


def derive_filename(subject: Optional[str], stamp: Optional[date], suffix: str) -> str:
    """``Nytt kök, Gävle`` on 2025-03-05 -> ``nytt_kök_gävle_2025-03-05_offert.pdf``."""

    parts = [slugify(subject), stamp.isoformat() if stamp else "", suffix]
    return "_".join(part for part in parts if part) + ".pdf"


def stamp_footers(pages: Sequence[Page], config: EngineConfig, generated_at: datetime) -> None:
    """Second pass: every page learns the final page count."""

    theme = config.theme
    geometry = config.page
    total = len(pages)
    generated = f"Genererad {format_timestamp(generated_at, config.locale)}"
    for number, page in enumerate(pages, start=1):
        y = page.height - geometry.footer_offset
        page.add(TextOp(geometry.margin_left, y, generated, font=theme.font, size=FOOTER_FONT_SIZE,
                        color=theme.muted, tag="footer"))
        page.add(TextOp(page.width - geometry.margin_right, y, f"Sida {number} av {total}", font=theme.font,
                        size=FOOTER_FONT_SIZE, color=theme.muted, align="right", tag="footer"))


def layout_document(document: Document, config: EngineConfig) -> Tuple[LayoutCursor, RenderContext]:
    cursor = LayoutCursor(document.page)
    ctx = RenderContext(cursor, config, list(document.warnings))
    for warning in document.warnings:
        LOGGER.warning("%s", warning)
    for section in document.sections:
        render_section(ctx, section)
    return cursor, ctx


def render_document(document: Document, config: EngineConfig, now: datetime) -> Artifact:
    cursor, ctx = layout_document(document, config)
    pages = cursor.pages
    stamp_footers(pages, config, now)
    content = write_pdf(pages, title=document.title, author=AUTHOR, subject=document.subject)
    filename = derive_filename(document.subject, document.file_date, document.file_suffix)
    LOGGER.info("Generated %s: %d page(s), %d warning(s)", filename, len(pages), len(ctx.warnings))
    return Artifact(
        filename=filename,
        content=content,
        page_count=len(pages),
        kind=document.kind,
        warnings=tuple(ctx.warnings),
    )


def assemble(record: object, config: Optional[EngineConfig] = None, now: Optional[datetime] = None) -> Artifact:
    """Compose, lay out and serialize one record.

    Raises :class:`~costreport.errors.DocumentError` for a missing record or
    an unknown kind; everything else degrades to placeholders and warnings.
    """

    config = config or DEFAULT_ENGINE_CONFIG
    now = now or datetime.now()
    return render_document(compose(record, config, now), config, now)


__all__ = [
    "Artifact",
    "assemble",
    "derive_filename",
    "layout_document",
    "render_document",
    "slugify",
    "stamp_footers",
]
