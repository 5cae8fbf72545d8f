"""Page model and the layout cursor every renderer draws through.

Coordinates are millimetres with ``y`` growing downward from the top edge of
the page. Pages are retained as lists of drawing operations so that a final
pass (page footers) can still add to them once the page count is known.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .config import RGB, PageGeometry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    font: str = "Helvetica"
    size: float = 10.0
    color: RGB = (0, 0, 0)
    align: str = "left"
    tag: str = ""


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[RGB] = None
    stroke: Optional[RGB] = None
    line_width: float = 0.3
    radius: float = 0.0
    tag: str = ""


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: RGB = (0, 0, 0)
    width: float = 0.3
    tag: str = ""


DrawOp = Union[TextOp, RectOp, LineOp]


@dataclass
class Page:
    index: int
    width: float
    height: float
    ops: List[DrawOp] = field(default_factory=list)

    def add(self, op: DrawOp) -> None:
        self.ops.append(op)

    def tagged(self, tag: str) -> List[DrawOp]:
        return [op for op in self.ops if op.tag == tag]

    def texts(self, tag: Optional[str] = None) -> List[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp) and (tag is None or op.tag == tag)]

    @property
    def is_blank(self) -> bool:
        return not self.ops


class LayoutCursor:
    """Vertical position tracker owning the pages of one document."""

    def __init__(self, geometry: PageGeometry) -> None:
        self.geometry = geometry
        self.page_height = geometry.height
        self.margin_top = geometry.margin_top
        self.margin_bottom = geometry.margin_bottom
        self.current_y = geometry.margin_top
        self.page_index = 0
        self.pages: List[Page] = [Page(0, geometry.width, geometry.height)]
        self.overflows = 0

    @property
    def page(self) -> Page:
        return self.pages[self.page_index]

    @property
    def left(self) -> float:
        return self.geometry.margin_left

    @property
    def content_width(self) -> float:
        return self.geometry.content_width

    @property
    def limit(self) -> float:
        return self.page_height - self.margin_bottom

    @property
    def content_height(self) -> float:
        return self.limit - self.margin_top

    @property
    def remaining(self) -> float:
        return self.limit - self.current_y

    @property
    def at_page_top(self) -> bool:
        return math.isclose(self.current_y, self.margin_top)

    def reserve(self, height: float) -> bool:
        """True when ``height`` fits below the cursor on the current page."""

        return self.current_y + height <= self.limit + 1e-9

    def advance(self, height: float) -> None:
        self.current_y += height

    def break_page(self) -> None:
        self.page_index += 1
        if self.page_index == len(self.pages):
            self.pages.append(Page(self.page_index, self.geometry.width, self.geometry.height))
        self.current_y = self.margin_top
        LOGGER.debug("Page break -> page %d", self.page_index + 1)

    def ensure_space(self, height: float) -> float:
        """Return a drawing origin for a block of ``height``.

        Breaks the page when the block does not fit. A block taller than a
        blank page is counted as an overflow and placed at the top of a page;
        the caller is expected to clip it.
        """

        if self.reserve(height):
            return self.current_y
        if not self.at_page_top:
            self.break_page()
            if self.reserve(height):
                return self.current_y
        self.overflows += 1
        LOGGER.warning(
            "Block of %.1fmm exceeds the %.1fmm content area on page %d; clipping",
            height,
            self.content_height,
            self.page_index + 1,
        )
        return self.current_y

    def start_fresh_page(self) -> None:
        if self.page.is_blank and self.at_page_top:
            return
        self.break_page()

    def fits_blank_page(self, height: float) -> bool:
        return height <= self.content_height + 1e-9

    # drawing helpers

    def draw(self, op: DrawOp) -> None:
        self.page.add(op)

    def text(self, x: float, y: float, text: str, **style) -> None:
        if text:
            self.draw(TextOp(x, y, text, **style))

    def rect(self, x: float, y: float, width: float, height: float, **style) -> None:
        if width > 0 and height > 0:
            self.draw(RectOp(x, y, width, height, **style))

    def line(self, x1: float, y1: float, x2: float, y2: float, **style) -> None:
        self.draw(LineOp(x1, y1, x2, y2, **style))

    def pages_spanned(self, first_index: int) -> Tuple[int, ...]:
        return tuple(range(first_index, self.page_index + 1))


__all__ = ["DrawOp", "LayoutCursor", "LineOp", "Page", "RectOp", "TextOp"]
