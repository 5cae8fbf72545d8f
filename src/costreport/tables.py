"""Banded table rendering with header repetition across page breaks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .config import RGB
from .layout import LayoutCursor
from .textfit import ELLIPSIS, ascent, line_height, truncate_text, wrap_text

LOGGER = logging.getLogger(__name__)

MIN_FLEX_WIDTH = 10.0


@dataclass(frozen=True)
class CellStyle:
    color: Optional[RGB] = None
    bold: bool = False
    fill: Optional[RGB] = None


@dataclass(frozen=True)
class RowStyle:
    """Row-level emphasis, e.g. for totals in a key-value table."""

    bold: bool = False
    color: Optional[RGB] = None
    size: Optional[float] = None
    rule_above: bool = False


@dataclass(frozen=True)
class Column:
    header: str
    width: Optional[float] = None
    align: str = "left"
    formatter: Optional[Callable[[Any], str]] = None
    highlight: Optional[Callable[[Any], Optional[CellStyle]]] = None
    style: Optional[CellStyle] = None
    wrap: bool = True

    def format(self, value: Any, placeholder: str) -> str:
        if self.formatter is not None:
            return self.formatter(value)
        if value is None:
            return placeholder
        return str(value)


@dataclass(frozen=True)
class TableStyle:
    striped: bool = True
    show_header: bool = True
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    font_size: float = 9.0
    header_font_size: Optional[float] = None
    padding: float = 2.0
    header_fill: RGB = (13, 148, 136)
    header_color: RGB = (255, 255, 255)
    text_color: RGB = (30, 41, 59)
    stripe_fill: RGB = (245, 245, 245)


@dataclass(frozen=True)
class TableResult:
    rows_drawn: int
    header_bands: int
    pages: Tuple[int, ...]
    clipped_rows: int = 0


@dataclass
class _Cell:
    lines: List[str]
    font: str
    size: float
    color: RGB
    fill: Optional[RGB]
    align: str


@dataclass
class _Row:
    cells: List[_Cell]
    height: float
    rule_above: bool = False


def resolve_widths(columns: Sequence[Column], total_width: float) -> List[float]:
    """Fixed widths are kept, flexible ones share the remainder.

    If the result is wider than ``total_width`` every column is scaled down
    proportionally.
    """

    fixed = sum(column.width for column in columns if column.width is not None)
    flexible = sum(1 for column in columns if column.width is None)
    flex_width = max((total_width - fixed) / flexible, MIN_FLEX_WIDTH) if flexible else 0.0
    widths = [column.width if column.width is not None else flex_width for column in columns]
    used = sum(widths)
    if used > total_width > 0:
        scale = total_width / used
        widths = [width * scale for width in widths]
    return widths


def _header_height(style: TableStyle) -> float:
    if not style.show_header:
        return 0.0
    size = style.header_font_size or style.font_size
    return line_height(size) + 2 * style.padding


def _prepare_row(
    values: Sequence[Any],
    columns: Sequence[Column],
    widths: Sequence[float],
    style: TableStyle,
    row_style: Optional[RowStyle],
    placeholder: str,
) -> _Row:
    size = (row_style.size if row_style and row_style.size else None) or style.font_size
    cells: List[_Cell] = []
    n_lines = 1
    for index, (column, width) in enumerate(zip(columns, widths)):
        value = values[index] if index < len(values) else None
        text = column.format(value, placeholder)
        bold = bool(row_style and row_style.bold)
        color = style.text_color
        fill = None
        for override in (column.style, column.highlight(value) if column.highlight else None):
            if override is None:
                continue
            bold = bold or override.bold
            color = override.color or color
            fill = override.fill or fill
        if row_style is not None and row_style.color is not None:
            color = row_style.color
        font = style.bold_font if bold else style.font
        inner = max(width - 2 * style.padding, 1.0)
        if column.wrap:
            lines = wrap_text(text, font, size, inner)
        else:
            lines = [truncate_text(text, font, size, inner)]
        n_lines = max(n_lines, len(lines))
        cells.append(_Cell(lines, font, size, color, fill, column.align))
    height = n_lines * line_height(size) + 2 * style.padding
    return _Row(cells, height, rule_above=bool(row_style and row_style.rule_above))


def _clip_row(row: _Row, available: float, style: TableStyle) -> _Row:
    size = max(cell.size for cell in row.cells) if row.cells else style.font_size
    max_lines = max(int((available - 2 * style.padding) // line_height(size)), 1)
    for cell in row.cells:
        if len(cell.lines) > max_lines:
            cell.lines = cell.lines[:max_lines]
            cell.lines[-1] = cell.lines[-1].rstrip() + ELLIPSIS
    return _Row(row.cells, max_lines * line_height(size) + 2 * style.padding, row.rule_above)


def _prepare(
    cursor: LayoutCursor,
    columns: Sequence[Column],
    rows: Sequence[Sequence[Any]],
    style: TableStyle,
    widths: Sequence[float],
    row_styles: Optional[Sequence[Optional[RowStyle]]],
    placeholder: str,
) -> Tuple[List[_Row], int]:
    available = cursor.content_height - _header_height(style)
    prepared: List[_Row] = []
    clipped = 0
    for index, values in enumerate(rows):
        row_style = row_styles[index] if row_styles and index < len(row_styles) else None
        row = _prepare_row(values, columns, widths, style, row_style, placeholder)
        if row.height > available:
            clipped += 1
            cursor.overflows += 1
            LOGGER.warning(
                "Table row %d is %.1fmm tall and cannot fit a blank page (%.1fmm); clipping",
                index,
                row.height,
                available,
            )
            row = _clip_row(row, available, style)
        prepared.append(row)
    return prepared, clipped


def measure_table(
    cursor: LayoutCursor,
    columns: Sequence[Column],
    rows: Sequence[Sequence[Any]],
    style: Optional[TableStyle] = None,
    *,
    width: Optional[float] = None,
    row_styles: Optional[Sequence[Optional[RowStyle]]] = None,
    placeholder: str = "—",
) -> Tuple[float, float]:
    """Return ``(lead, total)``: header plus first row, and the whole table.

    ``total`` ignores page breaks; it is what the table would need on a
    single page.
    """

    style = style or TableStyle()
    widths = resolve_widths(columns, width if width is not None else cursor.content_width)
    header_h = _header_height(style)
    available = cursor.content_height - header_h
    heights = []
    for index, values in enumerate(rows):
        row_style = row_styles[index] if row_styles and index < len(row_styles) else None
        row = _prepare_row(values, columns, widths, style, row_style, placeholder)
        heights.append(min(row.height, available))
    lead = header_h + (heights[0] if heights else 0.0)
    return lead, header_h + sum(heights)


def _draw_header(cursor: LayoutCursor, columns: Sequence[Column], widths: Sequence[float], x: float, style: TableStyle) -> None:
    height = _header_height(style)
    size = style.header_font_size or style.font_size
    top = cursor.current_y
    cursor.rect(x, top, sum(widths), height, fill=style.header_fill, tag="table-header")
    baseline = top + style.padding + ascent(size)
    cell_x = x
    for column, width in zip(columns, widths):
        inner = max(width - 2 * style.padding, 1.0)
        label = truncate_text(column.header, style.bold_font, size, inner)
        cursor.text(
            _aligned_x(cell_x, width, column.align, style.padding),
            baseline,
            label,
            font=style.bold_font,
            size=size,
            color=style.header_color,
            align=column.align,
            tag="table-header-text",
        )
        cell_x += width
    cursor.advance(height)


def _aligned_x(cell_x: float, width: float, align: str, padding: float) -> float:
    if align == "right":
        return cell_x + width - padding
    if align == "center":
        return cell_x + width / 2
    return cell_x + padding


def _draw_row(cursor: LayoutCursor, row: _Row, index: int, widths: Sequence[float], x: float, style: TableStyle) -> None:
    top = cursor.current_y
    total = sum(widths)
    if style.striped and index % 2 == 1:
        cursor.rect(x, top, total, row.height, fill=style.stripe_fill, tag="table-stripe")
    if row.rule_above:
        cursor.line(x, top, x + total, top, color=style.text_color, width=0.3, tag="table-rule")
    cell_x = x
    for cell, width in zip(row.cells, widths):
        if cell.fill is not None:
            cursor.rect(cell_x, top, width, row.height, fill=cell.fill, tag="table-cell-fill")
        lh = line_height(cell.size)
        text_x = _aligned_x(cell_x, width, cell.align, style.padding)
        for line_no, line in enumerate(cell.lines):
            cursor.text(
                text_x,
                top + style.padding + line_no * lh + ascent(cell.size),
                line,
                font=cell.font,
                size=cell.size,
                color=cell.color,
                align=cell.align,
                tag="table-cell",
            )
        cell_x += width
    cursor.advance(row.height)


def render_table(
    cursor: LayoutCursor,
    columns: Sequence[Column],
    rows: Sequence[Sequence[Any]],
    style: Optional[TableStyle] = None,
    *,
    x: Optional[float] = None,
    width: Optional[float] = None,
    row_styles: Optional[Sequence[Optional[RowStyle]]] = None,
    placeholder: str = "—",
) -> TableResult:
    """Draw ``rows`` under a header band, breaking pages between rows.

    The header is redrawn at the top of every continuation page. Stripe
    parity follows the row index across the whole table, so a row keeps its
    shade regardless of where the page breaks fall.
    """

    style = style or TableStyle()
    x = cursor.left if x is None else x
    widths = resolve_widths(columns, width if width is not None else cursor.content_width)
    prepared, clipped = _prepare(cursor, columns, rows, style, widths, row_styles, placeholder)
    header_h = _header_height(style)

    lead = header_h + (prepared[0].height if prepared else 0.0)
    cursor.ensure_space(lead)
    first_page = cursor.page_index
    header_bands = 0
    if style.show_header:
        _draw_header(cursor, columns, widths, x, style)
        header_bands += 1

    for index, row in enumerate(prepared):
        if not cursor.reserve(row.height):
            cursor.break_page()
            if style.show_header:
                _draw_header(cursor, columns, widths, x, style)
                header_bands += 1
        cursor.ensure_space(row.height)
        _draw_row(cursor, row, index, widths, x, style)

    return TableResult(
        rows_drawn=len(prepared),
        header_bands=header_bands,
        pages=cursor.pages_spanned(first_page),
        clipped_rows=clipped,
    )


__all__ = [
    "CellStyle",
    "Column",
    "RowStyle",
    "TableResult",
    "TableStyle",
    "render_table",
    "resolve_widths",
    "measure_table",
]
