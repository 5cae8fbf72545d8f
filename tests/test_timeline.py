from __future__ import annotations

from dataclasses import replace

import pytest

from costreport.config import DEFAULT_ENGINE_CONFIG, PHASE_PALETTE
from costreport.errors import InvalidRange
from costreport.models import Phase
from costreport.sections import TIMELINE_UNAVAILABLE, RenderContext, TimelineSection, render_section
from costreport.timeline import (
    LABEL_WIDTH,
    ROW_HEIGHT,
    layout_bars,
    render_timeline,
    resolve_phase_colors,
    unit_width,
    validate_phases,
)


def test_bar_position_scales_with_axis():
    width = 100.0
    (bar,) = layout_bars([Phase("Stomme", start_unit=3, duration_units=2)], 10, width)
    assert bar.x == pytest.approx(0.2 * width)
    assert bar.width == pytest.approx(0.2 * width)
    assert bar.label == "2v"


def test_overlapping_phases_stay_overlapping():
    phases = [Phase("El", 1, 3, "blue"), Phase("VVS", 1, 3, "cyan")]
    first, second = layout_bars(phases, 10, 100.0)
    assert (first.x, first.width) == (second.x, second.width)
    assert first.row_y == 0
    assert second.row_y == pytest.approx(ROW_HEIGHT)


def test_input_order_is_kept():
    phases = [Phase("Sen", 5, 1), Phase("Tidig", 1, 1)]
    bars = layout_bars(phases, 6, 60.0)
    assert [bar.name for bar in bars] == ["Sen", "Tidig"]
    assert bars[0].x > bars[1].x


def test_unknown_color_falls_back_to_slate():
    border, fill = resolve_phase_colors("magenta")
    assert (border, fill) == PHASE_PALETTE["slate"]
    assert resolve_phase_colors(" Blue ") == PHASE_PALETTE["blue"]


def test_minimum_bar_width_and_label_omission():
    (bar,) = layout_bars([Phase("Kort", 1, 1)], 1000, 100.0)
    assert bar.width == pytest.approx(DEFAULT_ENGINE_CONFIG.min_bar_width)
    assert bar.label is None

    config = replace(DEFAULT_ENGINE_CONFIG, min_bar_width=0.0)
    (bar,) = layout_bars([Phase("Kort", 1, 1)], 1000, 100.0, config=config)
    assert bar.width == pytest.approx(0.1)


def test_bar_is_clipped_at_axis_end():
    (bar,) = layout_bars([Phase("Slut", 9, 5)], 10, 100.0)
    assert bar.x == pytest.approx(80.0)
    assert bar.width == pytest.approx(20.0)


def test_degenerate_axis_draws_nothing():
    assert unit_width(10, 0) == 0
    assert unit_width(0, 100) == 100
    assert layout_bars([Phase("A", 1, 1)], 10, 0.0) == []


def test_invalid_phase_is_reported_not_raised():
    phases = [Phase("Ok", 1, 2), Phase("Före start", 0, 2), Phase("Noll", 2, 0), Phase("Efter", 11, 1)]
    problems = validate_phases(phases, 10)
    assert [problem.phase_index for problem in problems] == [1, 2, 3]
    assert all(isinstance(problem, InvalidRange) for problem in problems)
    assert "Före start" in str(problems[0])


def test_invalid_span_is_reported():
    (problem,) = validate_phases([Phase("A", 1, 1)], 0)
    assert problem.phase_index is None
    assert validate_phases([], 0) == []


def test_render_returns_error_value_and_draws_no_bars(cursor_factory):
    cursor = cursor_factory()
    problem = render_timeline(cursor, [Phase("Fel", 0, 1)], 5)
    assert isinstance(problem, InvalidRange)
    assert problem.phase_name == "Fel"
    assert cursor.pages[0].is_blank


def test_render_draws_header_and_bars(cursor_factory):
    cursor = cursor_factory(width=297.0, height=210.0)
    phases = [Phase(f"Moment {index}", index + 1, 2, "emerald") for index in range(6)]
    assert render_timeline(cursor, phases, 8) is None

    page = cursor.pages[0]
    assert page.texts("timeline-unit")[0] == "V1"
    assert len(page.tagged("timeline-bar")) == 6
    assert page.texts("timeline-name") == [f"Moment {index}" for index in range(6)]
    assert len(page.tagged("timeline-bar-label")) == 6


def test_long_timeline_repeats_unit_header(cursor_factory):
    cursor = cursor_factory()
    phases = [Phase(f"Moment {index}", 1 + index % 10, 1) for index in range(30)]
    assert render_timeline(cursor, phases, 10) is None

    assert len(cursor.pages) == 2
    assert sum(len(page.tagged("timeline-bar")) for page in cursor.pages) == 30
    for page in cursor.pages:
        assert len(page.tagged("timeline-header-rule")) == 1
        assert page.texts("timeline-unit")[0] == "V1"


def test_huge_span_keeps_op_count_bounded(cursor_factory):
    cursor = cursor_factory()
    assert render_timeline(cursor, [Phase("A", 1, 1)], 300_000) is None

    page = cursor.pages[0]
    axis_width = cursor.content_width - LABEL_WIDTH
    assert len(page.tagged("timeline-grid")) <= axis_width + 2
    assert len(page.tagged("timeline-unit")) < 100
    assert len(page.ops) < 400


def test_timeline_starts_under_its_heading(cursor_factory):
    cursor = cursor_factory(width=297.0, height=210.0)
    ctx = RenderContext(cursor, DEFAULT_ENGINE_CONFIG)
    cursor.advance(100.0)
    phases = tuple(Phase(f"Moment {index}", 1 + index % 10, 1) for index in range(14))
    render_section(ctx, TimelineSection("TIDSLINJE", phases, 10, subtitle="Vecka 1 till 10"))

    first = cursor.pages[0]
    assert first.texts("section-heading") == ["TIDSLINJE"]
    assert first.tagged("timeline-bar")
    assert sum(len(page.tagged("timeline-bar")) for page in cursor.pages) == 14
    for page in cursor.pages:
        assert all(op.y + op.height <= cursor.limit + 1e-6 for op in page.tagged("timeline-bar"))


def test_undrawable_timeline_section_shows_a_note(cursor_factory):
    cursor = cursor_factory()
    ctx = RenderContext(cursor, DEFAULT_ENGINE_CONFIG)
    render_section(ctx, TimelineSection("TIDSLINJE", (Phase("Grund", 4, 1),), 2))

    page = cursor.pages[0]
    assert page.texts("timeline-error") == [TIMELINE_UNAVAILABLE]
    assert not page.tagged("timeline-bar")
    assert ctx.warnings and ctx.warnings[0].startswith("Timeline not drawn")
