from __future__ import annotations

import io
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List

import pytest
from PyPDF2 import PdfReader

from costreport.config import DEFAULT_ENGINE_CONFIG, EngineConfig, PageGeometry
from costreport.layout import LayoutCursor
from costreport.models import (
    Addon,
    Category,
    CostEstimate,
    LineItem,
    Phase,
    Schedule,
    Uncertainty,
)


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 5, 14, 30)


@pytest.fixture
def engine_config() -> EngineConfig:
    return DEFAULT_ENGINE_CONFIG


@pytest.fixture
def cursor_factory() -> Callable[..., LayoutCursor]:
    def _create(**geometry) -> LayoutCursor:
        return LayoutCursor(PageGeometry(**geometry))

    return _create


@pytest.fixture
def scenario_items() -> List[LineItem]:
    """Labor 40h x 150 plus 3000 of material: subtotal 9000."""

    return [
        LineItem("Rivning och montering", Category.LABOR, unit_price=Decimal("150"), hours=Decimal("40")),
        LineItem("Material", Category.MATERIAL, unit_price=Decimal("300"), quantity=Decimal("10"), unit="st"),
    ]


@pytest.fixture
def scenario_estimate(scenario_items) -> CostEstimate:
    return CostEstimate(
        project_name="Nytt kök, Gävle",
        items=tuple(scenario_items),
        markup_percent=Decimal("15"),
        version=2,
        client_name="Anna Svensson",
        estimate_date=date(2025, 3, 5),
        scope="Rivning av befintligt kök och montering av nytt.",
        assumptions=("Fri tillgång till lokalen",),
    )


@pytest.fixture
def long_estimate() -> CostEstimate:
    items = tuple(
        LineItem(
            f"Moment {index:03d} med en beskrivning som behöver radbrytas i tabellen",
            Category.LABOR if index % 3 == 0 else Category.MATERIAL,
            unit_price=Decimal("125.50"),
            quantity=Decimal(index % 7 + 1),
            hours=Decimal("4") if index % 3 == 0 else None,
            unit="h" if index % 3 == 0 else "st",
            uncertainty=Uncertainty.HIGH if index % 5 == 0 else Uncertainty.MEDIUM,
            tax_deduction_eligible=index % 3 == 0,
        )
        for index in range(80)
    )
    return CostEstimate(
        project_name="Stambyte Brf Linden",
        items=items,
        addons=(Addon("Golvvärme", Decimal("18000"), selected=True, description="Elektrisk golvvärme i badrum"),),
        markup_percent=Decimal("10"),
        estimate_date=date(2025, 3, 5),
        deduction_scheme="ROT",
    )


@pytest.fixture
def schedule_record() -> Schedule:
    return Schedule(
        project_name="Badrumsrenovering",
        phases=(
            Phase("Rivning", 1, 1, "rose"),
            Phase("Rör och el", 2, 2, "blue", parallel_with="Rivning"),
            Phase("Tätskikt", 4, 1, "amber"),
            Phase("Plattsättning", 5, 2, "emerald"),
        ),
        total_units=6,
        summary="Renovering av badrum i etapper.",
        start_date=date(2025, 4, 7),
    )


@pytest.fixture
def pdf_text() -> Callable[[bytes], List[str]]:
    def _extract(content: bytes) -> List[str]:
        reader = PdfReader(io.BytesIO(content))
        return [page.extract_text() or "" for page in reader.pages]

    return _extract
