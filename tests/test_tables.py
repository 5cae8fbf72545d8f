from __future__ import annotations

import pytest

from costreport.layout import RectOp, TextOp
from costreport.tables import CellStyle, Column, TableStyle, measure_table, render_table, resolve_widths
from costreport.textfit import ascent

RED = (220, 38, 38)


def _columns():
    return (
        Column("Rad", 20),
        Column("Beskrivning"),
        Column("Belopp", 30, "right", formatter=lambda value: f"{value} kr"),
    )


def _rows(count: int):
    return [(f"r{index}", f"Post nummer {index}", index * 100) for index in range(count)]


def test_header_repeats_once_per_page(cursor_factory):
    cursor = cursor_factory()
    result = render_table(cursor, _columns(), _rows(40))

    assert result.rows_drawn == 40
    assert result.header_bands == 2
    assert result.pages == (0, 1)
    first, second = cursor.pages
    assert len(first.tagged("table-header")) == 1
    assert len(second.tagged("table-header")) == 1
    assert first.texts("table-header-text") == second.texts("table-header-text") == ["Rad", "Beskrivning", "Belopp"]


def test_no_row_is_dropped_or_split(cursor_factory):
    cursor = cursor_factory()
    style = TableStyle()
    long_text = "ord " * 40
    rows = [(f"r{index}", long_text if index % 4 == 0 else "kort", index) for index in range(60)]
    result = render_table(cursor, _columns(), rows, style)

    assert result.rows_drawn == 60
    assert result.clipped_rows == 0
    markers = [text for page in cursor.pages for text in page.texts("table-cell") if text.startswith("r")]
    assert markers == [f"r{index}" for index in range(60)]
    for page in cursor.pages:
        bottom = cursor.limit
        for op in page.tagged("table-cell"):
            assert op.y <= bottom
        for op in page.ops:
            if isinstance(op, RectOp) and op.tag == "table-stripe":
                assert op.y + op.height <= bottom + 1e-6


def test_stripe_parity_follows_global_row_index(cursor_factory):
    cursor = cursor_factory()
    style = TableStyle()
    render_table(cursor, _columns(), _rows(45), style)

    for page in cursor.pages:
        stripe_tops = {round(op.y, 6) for op in page.tagged("table-stripe")}
        for op in page.tagged("table-cell"):
            if not (isinstance(op, TextOp) and op.text.startswith("r")):
                continue
            index = int(op.text[1:])
            row_top = round(op.y - style.padding - ascent(style.font_size), 6)
            assert (row_top in stripe_tops) == (index % 2 == 1)


def test_highlight_colors_matching_cells(cursor_factory):
    cursor = cursor_factory()
    columns = (
        Column("Post"),
        Column("Osäkerhet", 25, highlight=lambda value: CellStyle(color=RED, bold=True) if value == "Hög" else None),
    )
    render_table(cursor, columns, [("A", "Låg"), ("B", "Hög")])

    cells = {op.text: op for op in cursor.pages[0].tagged("table-cell")}
    assert cells["Hög"].color == RED
    assert cells["Hög"].font == "Helvetica-Bold"
    assert cells["Låg"].color != RED


def test_missing_values_render_placeholder(cursor_factory):
    cursor = cursor_factory()
    render_table(cursor, (Column("A"), Column("B")), [("x", None), ("y",)])
    assert cursor.pages[0].texts("table-cell").count("—") == 2


def test_row_taller_than_page_is_clipped(cursor_factory, caplog):
    cursor = cursor_factory()
    columns = (Column("Text", 40),)
    with caplog.at_level("WARNING"):
        result = render_table(cursor, columns, [("ord " * 2000,)])
    assert result.clipped_rows == 1
    assert cursor.overflows >= 1
    assert "clipping" in caplog.text
    for page in cursor.pages:
        for op in page.tagged("table-cell"):
            assert op.y <= cursor.limit
    assert cursor.pages[-1].texts("table-cell")[-1].endswith("...")


def test_measure_matches_a_single_page_table(cursor_factory):
    cursor = cursor_factory()
    lead, total = measure_table(cursor, _columns(), _rows(5))
    start = cursor.current_y
    render_table(cursor, _columns(), _rows(5))
    assert cursor.current_y - start == pytest.approx(total)
    assert lead < total


def test_resolve_widths_shares_remainder_and_scales():
    widths = resolve_widths((Column("a", 30), Column("b"), Column("c")), 100)
    assert widths == [30, 35, 35]

    scaled = resolve_widths((Column("a", 150), Column("b", 50)), 100)
    assert sum(scaled) == pytest.approx(100)
    assert scaled[0] == pytest.approx(75)


def test_table_without_header(cursor_factory):
    cursor = cursor_factory()
    result = render_table(cursor, _columns(), _rows(3), TableStyle(show_header=False))
    assert result.header_bands == 0
    assert cursor.pages[0].tagged("table-header") == []
