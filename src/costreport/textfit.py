"""Text measurement in millimetres using reportlab font metrics."""

from __future__ import annotations

import re
from typing import List

from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

ELLIPSIS = "..."
LINE_SPACING = 1.2

# only ASCII blanks break a line; a no-break space never splits a grouped amount
_BREAKABLE = re.compile(r"[ \t\r\f\v]+")


def text_width(text: str, font: str, size: float) -> float:
    return stringWidth(str(text), font, size) / mm


def line_height(size: float, spacing: float = LINE_SPACING) -> float:
    return size * spacing / mm


def ascent(size: float) -> float:
    """Approximate distance from the top of a line box to its baseline."""

    return size * 0.8 / mm


def fits(text: str, font: str, size: float, max_width: float) -> bool:
    return text_width(text, font, size) <= max_width


def _split_long_token(token: str, font: str, size: float, max_width: float) -> List[str]:
    if fits(token, font, size, max_width):
        return [token]
    chunks: List[str] = []
    remaining = token
    while remaining:
        lo, hi = 1, len(remaining)
        fit = 1
        while lo <= hi:
            mid = (lo + hi) // 2
            if fits(remaining[:mid], font, size, max_width):
                fit = mid
                lo = mid + 1
            else:
                hi = mid - 1
        chunks.append(remaining[:fit])
        remaining = remaining[fit:]
    return chunks


def wrap_text(text: object, font: str, size: float, max_width: float) -> List[str]:
    """Greedy word wrap; explicit newlines are kept as paragraph breaks."""

    raw = "" if text is None else str(text)
    if max_width <= 0:
        return [raw]
    lines: List[str] = []
    for paragraph in raw.splitlines() or [""]:
        words: List[str] = []
        for word in _BREAKABLE.split(paragraph):
            if not word:
                continue
            words.extend(_split_long_token(word, font, size, max_width))
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if fits(candidate, font, size, max_width):
                current = candidate
            else:
                if current:
                    lines.append(current)
                current = word
        lines.append(current)
    return lines


def truncate_text(text: object, font: str, size: float, max_width: float, ellipsis: str = ELLIPSIS) -> str:
    """Cut ``text`` on a whole character so it fits, appending ``ellipsis``."""

    raw = "" if text is None else str(text)
    if fits(raw, font, size, max_width):
        return raw
    if not fits(ellipsis, font, size, max_width):
        return ""
    lo, hi = 0, len(raw)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if fits(raw[:mid].rstrip() + ellipsis, font, size, max_width):
            lo = mid
        else:
            hi = mid - 1
    return raw[:lo].rstrip() + ellipsis


__all__ = ["ELLIPSIS", "ascent", "fits", "line_height", "text_width", "truncate_text", "wrap_text"]
