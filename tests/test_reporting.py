from __future__ import annotations

from datetime import date
from decimal import Decimal

from costreport.models import Category, LineItem, TimeEntry
from costreport.reporting import hours_by_person, items_frame, make_summary_text


def test_items_frame_recomputes_totals(scenario_items):
    stale = LineItem("UE", Category.SUBCONTRACTED, unit_price=Decimal("700"), unit="lump-sum", subtotal=Decimal("1"))
    frame = items_frame(scenario_items + [stale])
    assert list(frame["TOTAL_COST"]) == [Decimal("6000"), Decimal("3000"), Decimal("700")]
    assert list(frame["CATEGORY"]) == ["labor", "material", "subcontracted"]


def test_summary_lists_top_cost_drivers(scenario_items):
    text = make_summary_text(scenario_items)
    assert text.startswith("Project subtotal: 9\u00a0000 kr")
    assert "Top cost drivers:" in text
    drivers = text.split("Top cost drivers:", 1)[1]
    assert drivers.index("Rivning och montering") < drivers.index("Material")


def test_summary_of_no_items():
    assert "No line items." in make_summary_text([])


def test_hours_by_person_sorted_with_optional_cost():
    entries = [
        TimeEntry(date(2025, 3, 3), Decimal("8"), person="Erik", billing_rate=Decimal("500")),
        TimeEntry(date(2025, 3, 4), Decimal("6"), person="Sara"),
        TimeEntry(date(2025, 3, 4), Decimal("4"), person="Erik", billing_rate=Decimal("450")),
        TimeEntry(date(2025, 3, 5), Decimal("6"), person="Ali"),
    ]
    frame = hours_by_person(entries)
    assert list(frame["PERSON"]) == ["Erik", "Ali", "Sara"]
    assert list(frame["HOURS"]) == [Decimal("12"), Decimal("6"), Decimal("6")]
    assert list(frame["ENTRIES"]) == [2, 1, 1]
    assert frame["COST"].iloc[0] == Decimal("5800")
    assert frame["COST"].iloc[1] is None


def test_hours_by_person_empty():
    frame = hours_by_person([])
    assert frame.empty
    assert list(frame.columns) == ["PERSON", "ENTRIES", "HOURS", "COST"]
