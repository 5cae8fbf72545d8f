"""Gantt-style timeline layout and rendering."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULT_ENGINE_CONFIG, RGB, EngineConfig
from .errors import InvalidRange
from .layout import LayoutCursor
from .models import Phase
from .textfit import ascent, text_width, truncate_text

LOGGER = logging.getLogger(__name__)

ROW_HEIGHT = 12.0
HEADER_HEIGHT = 10.0
HEADER_GAP = 4.0
LABEL_WIDTH = 55.0
BAR_INSET = 2.0
BAR_LABEL_PADDING = 1.0
NAME_FONT_SIZE = 8.0
UNIT_FONT_SIZE = 7.0
BAR_FONT_SIZE = 7.0
MIN_GRID_SPACING = 1.0


@dataclass(frozen=True)
class Bar:
    """A laid-out phase; ``x`` is relative to the axis origin and ``row_y``
    to the top of the first row."""

    index: int
    name: str
    x: float
    width: float
    row_y: float
    fill: RGB
    border: RGB
    label: Optional[str] = None


def unit_width(total_units: int, axis_width: float) -> float:
    if axis_width <= 0:
        return 0.0
    return axis_width / max(total_units, 1)


def resolve_phase_colors(color_key: Optional[str], config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> Tuple[RGB, RGB]:
    """Return ``(border, fill)`` for a palette key, falling back to the default."""

    palette = config.phase_palette
    key = (color_key or "").strip().lower()
    if key not in palette:
        if key:
            LOGGER.debug("Unknown phase color %r; using %s", color_key, config.default_phase_color)
        key = config.default_phase_color
    return palette[key]


def validate_phases(phases: Sequence[Phase], total_units: int) -> List[InvalidRange]:
    """All range problems in ``phases``; empty when the input is drawable."""

    if not phases:
        return []
    if total_units <= 0:
        return [InvalidRange(f"total span must be positive, got {total_units}")]
    problems: List[InvalidRange] = []
    for index, phase in enumerate(phases):
        reason = None
        if phase.start_unit < 1:
            reason = f"start unit {phase.start_unit} is before unit 1"
        elif phase.start_unit > total_units:
            reason = f"start unit {phase.start_unit} is beyond the declared span of {total_units}"
        elif phase.duration_units < 1:
            reason = f"duration {phase.duration_units} is shorter than one unit"
        if reason:
            problems.append(InvalidRange(reason, phase_index=index, phase_name=phase.name))
    return problems


def layout_bars(
    phases: Sequence[Phase],
    total_units: int,
    axis_width: float,
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    row_height: float = ROW_HEIGHT,
    duration_suffix: str = "v",
) -> List[Bar]:
    """Map phases onto the axis in input order, one row each.

    Overlapping phases are left overlapping. Bars are clipped at the end of
    the axis and widened to ``config.min_bar_width`` if narrower.
    """

    width_per_unit = unit_width(total_units, axis_width)
    if width_per_unit <= 0:
        return []
    bars: List[Bar] = []
    for index, phase in enumerate(phases):
        x = (phase.start_unit - 1) * width_per_unit
        width = phase.duration_units * width_per_unit
        if x + width > axis_width:
            width = max(axis_width - x, 0.0)
        width = max(width, config.min_bar_width)
        border, fill = resolve_phase_colors(phase.color_key, config)
        label = f"{phase.duration_units}{duration_suffix}"
        if text_width(label, config.theme.bold_font, BAR_FONT_SIZE) + 2 * BAR_LABEL_PADDING > width:
            label = None
        bars.append(
            Bar(
                index=index,
                name=phase.name,
                x=x,
                width=width,
                row_y=index * row_height,
                fill=fill,
                border=border,
                label=label,
            )
        )
    return bars


def _label_step(total_units: int, width_per_unit: float, prefix: str, font: str) -> int:
    widest = text_width(f"{prefix}{total_units}", font, UNIT_FONT_SIZE) + 1.0
    return max(1, math.ceil(widest / width_per_unit)) if width_per_unit > 0 else total_units or 1


def _grid_step(width_per_unit: float) -> int:
    """Units between grid lines, so lines stay at least MIN_GRID_SPACING apart."""

    if width_per_unit <= 0:
        return 1
    return max(1, math.ceil(MIN_GRID_SPACING / width_per_unit))


def _draw_unit_header(
    cursor: LayoutCursor,
    origin_x: float,
    axis_width: float,
    total_units: int,
    config: EngineConfig,
    unit_prefix: str,
) -> None:
    theme = config.theme
    top = cursor.current_y
    width_per_unit = unit_width(total_units, axis_width)
    step = _label_step(total_units, width_per_unit, unit_prefix, theme.font)
    baseline = top + (HEADER_HEIGHT - 2) / 2 + ascent(UNIT_FONT_SIZE) / 2
    for unit in range(1, total_units + 1, step):
        cursor.text(
            origin_x + (unit - 0.5) * width_per_unit,
            baseline,
            f"{unit_prefix}{unit}",
            font=theme.font,
            size=UNIT_FONT_SIZE,
            color=theme.muted,
            align="center",
            tag="timeline-unit",
        )
    cursor.line(
        cursor.left,
        top + HEADER_HEIGHT - 2,
        origin_x + axis_width,
        top + HEADER_HEIGHT - 2,
        color=theme.grid,
        width=0.3,
        tag="timeline-header-rule",
    )


def render_timeline(
    cursor: LayoutCursor,
    phases: Sequence[Phase],
    total_units: int,
    axis_width: Optional[float] = None,
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    label_width: float = LABEL_WIDTH,
    unit_prefix: str = "V",
) -> Optional[InvalidRange]:
    """Draw the phase chart; returns the first range problem instead of drawing.

    When the rows do not fit on one page the chart continues on the next one
    with the unit header repeated.
    """

    problems = validate_phases(phases, total_units)
    if problems:
        return problems[0]
    if not phases:
        return None

    theme = config.theme
    if axis_width is None:
        axis_width = cursor.content_width - label_width
    origin_x = cursor.left + label_width
    bars = layout_bars(phases, total_units, axis_width, config=config)
    if not bars:
        return None

    width_per_unit = unit_width(total_units, axis_width)
    grid_step = _grid_step(width_per_unit)
    grid_units = list(range(0, total_units + 1, grid_step))
    if grid_units[-1] != total_units:
        grid_units.append(total_units)
    header_block = HEADER_HEIGHT + HEADER_GAP
    rows_per_page = max(int((cursor.content_height - header_block) // ROW_HEIGHT), 1)
    # the first chunk fills what is left of the current page
    first_rows = int((cursor.remaining - header_block + 1e-9) // ROW_HEIGHT)
    if first_rows < 1:
        first_rows = rows_per_page
    chunks = [bars[:first_rows]]
    chunks.extend(bars[start:start + rows_per_page] for start in range(first_rows, len(bars), rows_per_page))

    for chunk_no, chunk in enumerate(chunks):
        block_height = header_block + len(chunk) * ROW_HEIGHT
        if chunk_no:
            cursor.break_page()
        cursor.ensure_space(block_height)
        _draw_unit_header(cursor, origin_x, axis_width, total_units, config, unit_prefix)
        rows_top = cursor.current_y + header_block
        rows_bottom = rows_top + len(chunk) * ROW_HEIGHT
        for unit in grid_units:
            grid_x = origin_x + unit * width_per_unit
            cursor.line(grid_x, rows_top - 2, grid_x, rows_bottom, color=theme.subgrid, width=0.1, tag="timeline-grid")

        offset = chunk[0].row_y
        for bar in chunk:
            row_top = rows_top + bar.row_y - offset
            name = truncate_text(bar.name, theme.font, NAME_FONT_SIZE, label_width - 3)
            cursor.text(
                cursor.left,
                row_top + ROW_HEIGHT / 2 + ascent(NAME_FONT_SIZE) / 2,
                name,
                font=theme.font,
                size=NAME_FONT_SIZE,
                color=theme.dark,
                tag="timeline-name",
            )
            cursor.rect(
                origin_x + bar.x,
                row_top + BAR_INSET,
                bar.width,
                ROW_HEIGHT - 2 * BAR_INSET,
                fill=bar.fill,
                stroke=bar.border,
                line_width=0.3,
                radius=1.5,
                tag="timeline-bar",
            )
            if bar.label:
                cursor.text(
                    origin_x + bar.x + bar.width / 2,
                    row_top + ROW_HEIGHT / 2 + ascent(BAR_FONT_SIZE) / 2,
                    bar.label,
                    font=theme.bold_font,
                    size=BAR_FONT_SIZE,
                    color=theme.dark,
                    align="center",
                    tag="timeline-bar-label",
                )
            cursor.line(
                cursor.left,
                row_top + ROW_HEIGHT,
                origin_x + axis_width,
                row_top + ROW_HEIGHT,
                color=theme.subgrid,
                width=0.1,
                tag="timeline-row-rule",
            )
        cursor.advance(block_height)
    return None


__all__ = [
    "Bar",
    "LABEL_WIDTH",
    "ROW_HEIGHT",
    "layout_bars",
    "render_timeline",
    "resolve_phase_colors",
    "unit_width",
    "validate_phases",
]
