from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Sequence

import pandas as pd

from .formatting import format_money
from .models import LineItem, TimeEntry
from .pricing import ZERO, aggregate, compute_subtotal, to_decimal

ITEM_COLUMNS = ["ITEM_ID", "DESCRIPTION", "CATEGORY", "QUANTITY", "UNIT", "HOURS", "UNIT_PRICE", "TOTAL_COST"]
TIME_COLUMNS = ["DATE", "PERSON", "HOURS", "RATE", "COST"]
PERSON_COLUMNS = ["PERSON", "ENTRIES", "HOURS", "COST"]


def items_frame(items: Iterable[LineItem]) -> pd.DataFrame:
    """One row per line item; ``TOTAL_COST`` is always recomputed."""

    rows = [
        {
            "ITEM_ID": item.item_id,
            "DESCRIPTION": item.description,
            "CATEGORY": item.category.value,
            "QUANTITY": item.quantity,
            "UNIT": item.unit,
            "HOURS": item.hours,
            "UNIT_PRICE": item.unit_price,
            "TOTAL_COST": compute_subtotal(item),
        }
        for item in items
    ]
    return pd.DataFrame(rows, columns=ITEM_COLUMNS)


def make_summary_text(items: Sequence[LineItem], top: int = 5) -> str:
    totals = aggregate(items)
    frame = items_frame(items)
    lines = [
        f"Project subtotal: {format_money(totals.subtotal)} "
        f"(labor {format_money(totals.labor)}, material {format_money(totals.material)}, "
        f"subcontracted {format_money(totals.subcontracted)})."
    ]
    if frame.empty:
        lines.append("No line items.")
        return "\n".join(lines) + "\n"
    frame = frame.assign(COST_SORT=frame["TOTAL_COST"].map(float))
    drivers = frame.sort_values("COST_SORT", ascending=False, kind="mergesort").head(top)
    drivers = drivers.assign(TOTAL_COST=drivers["TOTAL_COST"].map(format_money))
    lines.append("Top cost drivers:")
    lines.append(drivers[["DESCRIPTION", "CATEGORY", "TOTAL_COST"]].to_string(index=False))
    return "\n".join(lines) + "\n"


def time_entries_frame(entries: Iterable[TimeEntry]) -> pd.DataFrame:
    rows = []
    for entry in entries:
        hours = to_decimal(entry.hours, ZERO)
        rate = to_decimal(entry.billing_rate)
        rows.append(
            {
                "DATE": entry.entry_date,
                "PERSON": (entry.person or "").strip(),
                "HOURS": hours,
                "RATE": rate,
                "COST": hours * rate if rate is not None else None,
            }
        )
    return pd.DataFrame(rows, columns=TIME_COLUMNS)


def _decimal_sum(values: pd.Series) -> Decimal:
    return sum((value for value in values.tolist() if isinstance(value, Decimal)), ZERO)


def _optional_sum(values: pd.Series) -> Optional[Decimal]:
    present = [value for value in values.tolist() if isinstance(value, Decimal)]
    return sum(present, ZERO) if present else None


def hours_by_person(entries: Iterable[TimeEntry]) -> pd.DataFrame:
    """Hours and cost per person, most hours first.

    ``COST`` is ``None`` for a person whose entries carry no billing rate.
    """

    frame = time_entries_frame(entries)
    if frame.empty:
        return pd.DataFrame(columns=PERSON_COLUMNS)
    grouped = (
        frame.groupby("PERSON", sort=True)
        .agg(ENTRIES=("HOURS", "size"), HOURS=("HOURS", _decimal_sum), COST=("COST", _optional_sum))
        .reset_index()
    )
    grouped["COST"] = [value if isinstance(value, Decimal) else None for value in grouped["COST"]]
    grouped = grouped.assign(HOURS_SORT=grouped["HOURS"].map(float))
    grouped = grouped.sort_values(["HOURS_SORT", "PERSON"], ascending=[False, True], kind="mergesort")
    return grouped[PERSON_COLUMNS].reset_index(drop=True)


__all__ = ["hours_by_person", "items_frame", "make_summary_text", "time_entries_frame"]
