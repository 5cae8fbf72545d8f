"""Section variants that make up a document, and how each one is drawn."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Union

from .config import RGB, EngineConfig
from .layout import LayoutCursor
from .models import Phase
from .tables import CellStyle, Column, RowStyle, TableStyle, measure_table, render_table
from .textfit import ELLIPSIS, ascent, line_height, text_width, truncate_text, wrap_text
from .timeline import HEADER_GAP, HEADER_HEIGHT, ROW_HEIGHT, render_timeline

LOGGER = logging.getLogger(__name__)

HEADING_SIZE = 12.0
HEADING_HEIGHT = 9.0
SECTION_GAP = 6.0
BULLET = "•"
TIMELINE_UNAVAILABLE = "Tidslinjen kunde inte ritas."


@dataclass(frozen=True)
class Highlight:
    label: str
    value: str


@dataclass(frozen=True)
class CoverSection:
    kind: ClassVar[str] = "cover"

    title: str
    subject: str
    lines: Tuple[str, ...] = ()
    highlight: Optional[Highlight] = None
    centered: bool = True
    new_page: bool = True


@dataclass(frozen=True)
class KeyValueRow:
    label: str
    value: str
    emphasis: bool = False
    rule_above: bool = False
    color: Optional[RGB] = None


@dataclass(frozen=True)
class KeyValueSection:
    kind: ClassVar[str] = "key-value"

    title: Optional[str]
    rows: Tuple[KeyValueRow, ...]
    label_width: float = 70.0
    value_align: str = "right"
    width: Optional[float] = None
    new_page: bool = False


@dataclass(frozen=True)
class TableSection:
    kind: ClassVar[str] = "table"

    title: Optional[str]
    columns: Tuple[Column, ...]
    rows: Tuple[Tuple[Any, ...], ...]
    style: TableStyle = field(default_factory=TableStyle)
    title_color: Optional[RGB] = None
    footnote: Optional[str] = None
    new_page: bool = False


@dataclass(frozen=True)
class TimelineSection:
    kind: ClassVar[str] = "timeline"

    title: Optional[str]
    phases: Tuple[Phase, ...]
    total_units: int
    subtitle: Optional[str] = None
    new_page: bool = False


@dataclass(frozen=True)
class TextSection:
    kind: ClassVar[str] = "text"

    title: Optional[str]
    paragraphs: Tuple[str, ...]
    bullets: bool = False
    color: Optional[RGB] = None
    size: float = 10.0
    italic: bool = False
    new_page: bool = False


Section = Union[CoverSection, KeyValueSection, TableSection, TimelineSection, TextSection]


@dataclass
class RenderContext:
    cursor: LayoutCursor
    config: EngineConfig
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        LOGGER.warning("%s", message)
        self.warnings.append(message)


def _heading_height(title: Optional[str]) -> float:
    return HEADING_HEIGHT if title else 0.0


def _draw_heading(ctx: RenderContext, title: Optional[str], color: Optional[RGB] = None) -> None:
    if not title:
        return
    theme = ctx.config.theme
    cursor = ctx.cursor
    cursor.text(
        cursor.left,
        cursor.current_y + ascent(HEADING_SIZE),
        title,
        font=theme.bold_font,
        size=HEADING_SIZE,
        color=color or theme.dark,
        tag="section-heading",
    )
    cursor.advance(HEADING_HEIGHT)


def _place(ctx: RenderContext, total: float, lead: float) -> None:
    """Start a section here if it fits, else on a new page.

    Sections too tall for any page only need their lead (heading plus first
    row) to fit.
    """

    cursor = ctx.cursor
    if cursor.reserve(total):
        return
    cursor.ensure_space(total if cursor.fits_blank_page(total) else lead)


def _gap(cursor: LayoutCursor) -> None:
    if cursor.reserve(SECTION_GAP):
        cursor.advance(SECTION_GAP)


def _fit_cover_lines(ctx: RenderContext, lines: List[str], available: float, step: float, font: str, size: float,
                     what: str) -> List[str]:
    """Keep the lines that fit in ``available``; the last kept one gets an ellipsis."""

    keep = max(int((available + 1e-9) // step), 0)
    if len(lines) <= keep:
        return lines
    ctx.cursor.overflows += 1
    ctx.warn(f"Cover {what} clipped to {keep} of {len(lines)} lines")
    kept = lines[:keep]
    if kept:
        kept[-1] = truncate_text(kept[-1] + ELLIPSIS, font, size, ctx.cursor.content_width)
    return kept


def _render_cover(ctx: RenderContext, section: CoverSection) -> None:
    cursor = ctx.cursor
    theme = ctx.config.theme
    page = cursor.geometry
    cursor.start_fresh_page()
    cursor.rect(0, 0, page.width, 6.0, fill=theme.primary, tag="cover-band")

    if section.centered:
        center = page.width / 2
        subject_step = line_height(18) + 1
        line_step = line_height(11) + 1.5
        tail = 4.0 + (8.0 + 24.0 if section.highlight is not None else 0.0)
        cursor.advance(25.0)
        cursor.text(center, cursor.current_y + ascent(26), section.title, font=theme.bold_font, size=26,
                    color=theme.primary, align="center", tag="cover-title")
        cursor.advance(16.0)
        subject = _fit_cover_lines(ctx, wrap_text(section.subject, theme.bold_font, 18, cursor.content_width),
                                   cursor.remaining - tail, subject_step, theme.bold_font, 18, "subject")
        for line in subject:
            cursor.text(center, cursor.current_y + ascent(18), line, font=theme.bold_font, size=18,
                        color=theme.dark, align="center", tag="cover-subject")
            cursor.advance(subject_step)
        cursor.advance(4.0)
        lines = _fit_cover_lines(ctx, list(section.lines), cursor.remaining - (tail - 4.0), line_step, theme.font, 11,
                                 "details")
        for line in lines:
            cursor.text(center, cursor.current_y + ascent(11), line, font=theme.font, size=11,
                        color=theme.muted, align="center", tag="cover-line")
            cursor.advance(line_step)
        if section.highlight is not None:
            cursor.advance(8.0)
            box_width = max(90.0, text_width(section.highlight.value, theme.bold_font, 18) + 20)
            top = cursor.current_y
            cursor.rect(center - box_width / 2, top, box_width, 24.0, fill=theme.panel, stroke=theme.primary,
                        line_width=0.4, radius=3.0, tag="cover-highlight")
            cursor.text(center, top + 5 + ascent(10), section.highlight.label, font=theme.font, size=10,
                        color=theme.muted, align="center", tag="cover-highlight-label")
            cursor.text(center, top + 12 + ascent(18), section.highlight.value, font=theme.bold_font, size=18,
                        color=theme.primary, align="center", tag="cover-highlight-value")
            cursor.advance(24.0)
    else:
        subject_step = line_height(14) + 1
        line_step = line_height(10) + 1
        tail = 2.0 + 3.0
        cursor.advance(4.0)
        cursor.text(cursor.left, cursor.current_y + ascent(20), section.title, font=theme.bold_font, size=20,
                    color=theme.primary, tag="cover-title")
        cursor.advance(10.0)
        subject = _fit_cover_lines(ctx, wrap_text(section.subject, theme.bold_font, 14, cursor.content_width),
                                   cursor.remaining - tail, subject_step, theme.bold_font, 14, "subject")
        for line in subject:
            cursor.text(cursor.left, cursor.current_y + ascent(14), line, font=theme.bold_font, size=14,
                        color=theme.dark, tag="cover-subject")
            cursor.advance(subject_step)
        cursor.advance(2.0)
        lines = _fit_cover_lines(ctx, list(section.lines), cursor.remaining - 3.0, line_step, theme.font, 10,
                                 "details")
        for line in lines:
            cursor.text(cursor.left, cursor.current_y + ascent(10), line, font=theme.font, size=10,
                        color=theme.muted, tag="cover-line")
            cursor.advance(line_step)
        cursor.advance(3.0)
        cursor.line(cursor.left, cursor.current_y, cursor.left + cursor.content_width, cursor.current_y,
                    color=theme.grid, width=0.5, tag="cover-rule")
    cursor.advance(SECTION_GAP * 2)


def _key_value_table(ctx: RenderContext, section: KeyValueSection):
    theme = ctx.config.theme
    columns = (
        Column("", width=section.label_width, style=CellStyle(color=theme.muted)),
        Column("", align=section.value_align),
    )
    rows = tuple((row.label, row.value) for row in section.rows)
    row_styles = tuple(
        RowStyle(
            bold=row.emphasis,
            color=row.color,
            size=11.0 if row.emphasis else None,
            rule_above=row.rule_above,
        )
        for row in section.rows
    )
    style = TableStyle(striped=False, show_header=False, font_size=10.0, padding=1.5, text_color=theme.dark)
    return columns, rows, row_styles, style


def _render_key_value(ctx: RenderContext, section: KeyValueSection) -> None:
    cursor = ctx.cursor
    columns, rows, row_styles, style = _key_value_table(ctx, section)
    lead, total = measure_table(cursor, columns, rows, style, width=section.width, row_styles=row_styles,
                                placeholder=ctx.config.locale.placeholder)
    heading = _heading_height(section.title)
    _place(ctx, heading + total, heading + lead)
    _draw_heading(ctx, section.title)
    render_table(cursor, columns, rows, style, width=section.width, row_styles=row_styles,
                 placeholder=ctx.config.locale.placeholder)
    _gap(cursor)


def _render_table(ctx: RenderContext, section: TableSection) -> None:
    cursor = ctx.cursor
    placeholder = ctx.config.locale.placeholder
    lead, total = measure_table(cursor, section.columns, section.rows, section.style, placeholder=placeholder)
    heading = _heading_height(section.title)
    _place(ctx, heading + lead, heading + lead)
    _draw_heading(ctx, section.title, section.title_color)
    result = render_table(cursor, section.columns, section.rows, section.style, placeholder=placeholder)
    if result.clipped_rows:
        ctx.warn(f"{result.clipped_rows} row(s) in table {section.title or '(untitled)'} were clipped")
    if section.footnote:
        theme = ctx.config.theme
        cursor.ensure_space(line_height(9) + 2)
        cursor.advance(2.0)
        cursor.text(cursor.left + cursor.content_width, cursor.current_y + ascent(9), section.footnote,
                    font=theme.bold_font, size=9, color=theme.dark, align="right", tag="table-footnote")
        cursor.advance(line_height(9))
    _gap(cursor)


def _render_timeline(ctx: RenderContext, section: TimelineSection) -> None:
    cursor = ctx.cursor
    theme = ctx.config.theme
    heading = _heading_height(section.title) + (line_height(9) + 2 if section.subtitle else 0.0)
    block = HEADER_HEIGHT + HEADER_GAP
    _place(ctx, heading + block + len(section.phases) * ROW_HEIGHT, heading + block + ROW_HEIGHT)
    _draw_heading(ctx, section.title)
    if section.subtitle:
        cursor.text(cursor.left, cursor.current_y + ascent(9), section.subtitle, font=theme.font, size=9,
                    color=theme.muted, tag="timeline-subtitle")
        cursor.advance(line_height(9) + 2)
    problem = render_timeline(cursor, section.phases, section.total_units, config=ctx.config)
    if problem is not None:
        ctx.warn(f"Timeline not drawn: {problem}")
        cursor.text(cursor.left, cursor.current_y + ascent(9), TIMELINE_UNAVAILABLE, font=theme.italic_font,
                    size=9, color=theme.muted, tag="timeline-error")
        cursor.advance(line_height(9))
    _gap(cursor)


def _render_text(ctx: RenderContext, section: TextSection) -> None:
    cursor = ctx.cursor
    theme = ctx.config.theme
    font = theme.italic_font if section.italic else theme.font
    lh = line_height(section.size)
    indent = text_width(f"{BULLET} ", font, section.size) if section.bullets else 0.0
    lines: List[Tuple[float, str]] = []
    for paragraph in section.paragraphs:
        wrapped = wrap_text(paragraph, font, section.size, cursor.content_width - indent)
        for number, line in enumerate(wrapped):
            if section.bullets and number == 0:
                lines.append((0.0, f"{BULLET} {line}"))
            else:
                lines.append((indent, line))
    heading = _heading_height(section.title)
    total = heading + len(lines) * lh
    if not cursor.fits_blank_page(total):
        keep = max(int((cursor.content_height - heading) // lh), 0)
        cursor.overflows += 1
        ctx.warn(
            f"Text block {section.title or '(untitled)'} needs {total:.1f}mm; "
            f"clipped to {keep} of {len(lines)} lines"
        )
        lines = lines[:keep]
        total = heading + len(lines) * lh
    cursor.ensure_space(total)
    _draw_heading(ctx, section.title)
    for offset, line in lines:
        cursor.text(cursor.left + offset, cursor.current_y + ascent(section.size), line, font=font,
                    size=section.size, color=section.color or theme.dark, tag="text-line")
        cursor.advance(lh)
    _gap(cursor)


_RENDERERS: Dict[str, Callable[[RenderContext, Any], None]] = {
    CoverSection.kind: _render_cover,
    KeyValueSection.kind: _render_key_value,
    TableSection.kind: _render_table,
    TimelineSection.kind: _render_timeline,
    TextSection.kind: _render_text,
}


def render_section(ctx: RenderContext, section: Section) -> None:
    if section.new_page and section.kind != CoverSection.kind:
        ctx.cursor.start_fresh_page()
    LOGGER.debug("Rendering %s section %r on page %d", section.kind, getattr(section, "title", None),
                 ctx.cursor.page_index + 1)
    _RENDERERS[section.kind](ctx, section)


__all__ = [
    "CoverSection",
    "Highlight",
    "KeyValueRow",
    "KeyValueSection",
    "RenderContext",
    "Section",
    "TIMELINE_UNAVAILABLE",
    "TableSection",
    "TextSection",
    "TimelineSection",
    "render_section",
]
