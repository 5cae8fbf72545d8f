from __future__ import annotations

import pytest

from costreport.layout import LayoutCursor, TextOp


def test_reserve_is_a_pure_query(cursor_factory):
    cursor = cursor_factory()
    before = cursor.current_y
    assert cursor.reserve(100)
    assert not cursor.reserve(cursor.content_height + 1)
    assert cursor.current_y == before
    assert cursor.page_index == 0


def test_reserve_accepts_exact_fit(cursor_factory):
    cursor = cursor_factory()
    cursor.advance(100)
    assert cursor.reserve(cursor.remaining)


def test_break_page_resets_to_top_margin(cursor_factory):
    cursor = cursor_factory()
    cursor.advance(150)
    cursor.break_page()
    assert cursor.page_index == 1
    assert cursor.current_y == cursor.margin_top
    assert len(cursor.pages) == 2


def test_ensure_space_breaks_only_when_needed(cursor_factory):
    cursor = cursor_factory()
    assert cursor.ensure_space(50) == cursor.margin_top
    assert cursor.page_index == 0

    cursor.advance(cursor.content_height - 10)
    origin = cursor.ensure_space(20)
    assert cursor.page_index == 1
    assert origin == cursor.margin_top
    assert cursor.overflows == 0


def test_ensure_space_counts_blocks_taller_than_a_page(cursor_factory, caplog):
    cursor = cursor_factory()
    cursor.advance(10)
    with caplog.at_level("WARNING"):
        cursor.ensure_space(cursor.content_height + 50)
    assert cursor.overflows == 1
    assert cursor.page_index == 1
    assert cursor.at_page_top
    assert "exceeds" in caplog.text


def test_start_fresh_page_keeps_blank_first_page(cursor_factory):
    cursor = cursor_factory()
    cursor.start_fresh_page()
    assert cursor.page_index == 0

    cursor.text(cursor.left, 30, "innehåll")
    cursor.start_fresh_page()
    assert cursor.page_index == 1


def test_drawing_goes_to_current_page(cursor_factory):
    cursor = cursor_factory()
    cursor.text(10, 30, "första")
    cursor.break_page()
    cursor.text(10, 30, "andra")
    cursor.text(10, 40, "")
    cursor.rect(10, 40, 0, 5, fill=(0, 0, 0))

    assert cursor.pages[0].texts() == ["första"]
    assert cursor.pages[1].texts() == ["andra"]
    assert len(cursor.pages[1].ops) == 1
    assert isinstance(cursor.pages[1].ops[0], TextOp)


def test_landscape_geometry_swaps_dimensions(cursor_factory):
    cursor = cursor_factory(width=297.0, height=210.0)
    assert cursor.page_height == pytest.approx(210.0)
    assert cursor.content_height == pytest.approx(170.0)
    assert cursor.content_width == pytest.approx(267.0)


def test_pages_spanned(cursor_factory):
    cursor: LayoutCursor = cursor_factory()
    first = cursor.page_index
    cursor.break_page()
    cursor.break_page()
    assert cursor.pages_spanned(first) == (0, 1, 2)
