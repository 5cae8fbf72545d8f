"""Replay retained pages onto a reportlab canvas."""

from __future__ import annotations

import io
import logging
from typing import Callable, Dict, Optional, Sequence

from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from .layout import LineOp, Page, RectOp, TextOp

LOGGER = logging.getLogger(__name__)


def _rgb(color) -> tuple:
    r, g, b = color
    return r / 255.0, g / 255.0, b / 255.0


def _draw_text(canv: canvas.Canvas, op: TextOp, page_height: float) -> None:
    canv.setFont(op.font, op.size)
    canv.setFillColorRGB(*_rgb(op.color))
    x = op.x * mm
    y = (page_height - op.y) * mm
    if op.align == "right":
        canv.drawRightString(x, y, op.text)
    elif op.align == "center":
        canv.drawCentredString(x, y, op.text)
    else:
        canv.drawString(x, y, op.text)


def _draw_rect(canv: canvas.Canvas, op: RectOp, page_height: float) -> None:
    if op.fill is None and op.stroke is None:
        return
    if op.fill is not None:
        canv.setFillColorRGB(*_rgb(op.fill))
    if op.stroke is not None:
        canv.setStrokeColorRGB(*_rgb(op.stroke))
        canv.setLineWidth(op.line_width * mm)
    x = op.x * mm
    y = (page_height - op.y - op.height) * mm
    width = op.width * mm
    height = op.height * mm
    fill = 1 if op.fill is not None else 0
    stroke = 1 if op.stroke is not None else 0
    if op.radius > 0:
        canv.roundRect(x, y, width, height, min(op.radius, op.height / 2) * mm, stroke=stroke, fill=fill)
    else:
        canv.rect(x, y, width, height, stroke=stroke, fill=fill)


def _draw_line(canv: canvas.Canvas, op: LineOp, page_height: float) -> None:
    canv.setStrokeColorRGB(*_rgb(op.color))
    canv.setLineWidth(op.width * mm)
    canv.line(op.x1 * mm, (page_height - op.y1) * mm, op.x2 * mm, (page_height - op.y2) * mm)


_DRAWERS: Dict[type, Callable] = {
    TextOp: _draw_text,
    RectOp: _draw_rect,
    LineOp: _draw_line,
}


def write_pdf(
    pages: Sequence[Page],
    *,
    title: Optional[str] = None,
    author: Optional[str] = None,
    subject: Optional[str] = None,
) -> bytes:
    """Render ``pages`` to PDF bytes in memory."""

    buffer = io.BytesIO()
    first = pages[0] if pages else None
    pagesize = (first.width * mm, first.height * mm) if first else (210 * mm, 297 * mm)
    canv = canvas.Canvas(buffer, pagesize=pagesize, invariant=1)
    if title:
        canv.setTitle(title)
    if author:
        canv.setAuthor(author)
    if subject:
        canv.setSubject(subject)
    for page in pages:
        canv.setPageSize((page.width * mm, page.height * mm))
        for op in page.ops:
            _DRAWERS[type(op)](canv, op, page.height)
        canv.showPage()
    canv.save()
    data = buffer.getvalue()
    LOGGER.debug("Wrote %d page(s), %d bytes", len(pages), len(data))
    return data


__all__ = ["write_pdf"]
