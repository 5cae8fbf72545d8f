"""Decimal pricing primitives for line items, markup, tax and deductions.

Nothing in this module rounds. Full precision is kept through every sum and
product; :func:`round_display` is the only place a figure is quantized, and
it is meant to be called by formatters at the presentation boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence, Tuple

from .config import DeductionScheme
from .models import Addon, Category, LineItem

LOGGER = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_TAX_PERCENT = Decimal("25")


def to_decimal(value: object, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Coerce user-supplied numbers to :class:`Decimal` without raising.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    Strings may use a decimal comma and spaces as thousands separators.
    """

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return default
        return Decimal(str(value))
    text = str(value).replace("\u00a0", "").replace(" ", "").replace(",", ".").strip()
    if not text:
        return default
    try:
        number = Decimal(text)
    except InvalidOperation:
        return default
    return number if number.is_finite() else default


def compute_subtotal(item: LineItem) -> Decimal:
    """Subtotal of one line item; incomplete items price at zero."""

    unit_price = to_decimal(item.unit_price, ZERO)
    if item.is_lump_sum:
        return unit_price
    if item.category is Category.LABOR and item.hours is not None:
        return to_decimal(item.hours, ZERO) * unit_price
    if item.quantity is not None:
        return to_decimal(item.quantity, ZERO) * unit_price
    return ZERO


def refresh_subtotal(item: LineItem) -> LineItem:
    return replace(item, subtotal=compute_subtotal(item))


@dataclass(frozen=True)
class CategoryTotals:
    labor: Decimal = ZERO
    material: Decimal = ZERO
    subcontracted: Decimal = ZERO

    @property
    def subtotal(self) -> Decimal:
        return self.labor + self.material + self.subcontracted

    def for_category(self, category: Category) -> Decimal:
        return {
            Category.LABOR: self.labor,
            Category.MATERIAL: self.material,
            Category.SUBCONTRACTED: self.subcontracted,
        }[category]


def aggregate(items: Iterable[LineItem]) -> CategoryTotals:
    sums = {category: ZERO for category in Category}
    for item in items:
        sums[item.category] += compute_subtotal(item)
    return CategoryTotals(
        labor=sums[Category.LABOR],
        material=sums[Category.MATERIAL],
        subcontracted=sums[Category.SUBCONTRACTED],
    )


def apply_markup(subtotal: Decimal, markup_percent: object) -> Decimal:
    """Return the markup amount (not the marked-up total)."""

    return subtotal * to_decimal(markup_percent, ZERO) / HUNDRED


def apply_tax(total_excl_tax: Decimal, tax_percent: object = DEFAULT_TAX_PERCENT) -> Decimal:
    """Return the tax amount on ``total_excl_tax``."""

    return total_excl_tax * to_decimal(tax_percent, DEFAULT_TAX_PERCENT) / HUNDRED


def _scheme_key(name: Optional[str]) -> str:
    return (name or "").strip().upper()


def deduction_basis(
    items: Iterable[LineItem],
    scheme: Optional[str] = None,
    default_scheme: Optional[str] = None,
) -> Decimal:
    """Sum of labor subtotals flagged as eligible for a tax deduction.

    With ``scheme`` only items counted toward that scheme are summed: items
    pinned to it, plus unpinned items when it is the ``default_scheme``.
    """

    wanted = _scheme_key(scheme)
    fallback = _scheme_key(default_scheme)
    total = ZERO
    for item in items:
        if item.category is not Category.LABOR or not item.tax_deduction_eligible:
            continue
        if wanted and (_scheme_key(item.deduction_scheme) or fallback) != wanted:
            continue
        total += compute_subtotal(item)
    return total


def apply_deduction(basis: Decimal, deduction_percent: object, cap: Optional[Decimal] = None) -> Decimal:
    amount = basis * to_decimal(deduction_percent, ZERO) / HUNDRED
    if amount < ZERO:
        return ZERO
    if cap is not None and amount > cap:
        return cap
    return amount


def addon_total(addons: Iterable[Addon]) -> Decimal:
    return sum((to_decimal(addon.price, ZERO) for addon in addons if addon.selected), ZERO)


@dataclass(frozen=True)
class DeductionLine:
    """One scheme's credit; ``basis`` is eligible labor including VAT."""

    scheme: str
    percent: Decimal
    basis: Decimal
    amount: Decimal
    cap: Optional[Decimal] = None


@dataclass(frozen=True)
class EstimateTotals:
    """Every figure of a priced estimate, at full precision."""

    categories: CategoryTotals
    addons: Decimal
    markup_percent: Decimal
    markup: Decimal
    total_excl_tax: Decimal
    tax_percent: Decimal
    tax: Decimal
    total_incl_tax: Decimal
    addons_post_tax: bool = False
    deductions: Tuple[DeductionLine, ...] = ()
    deduction: Decimal = ZERO
    combined_cap: Optional[Decimal] = None

    @property
    def subtotal(self) -> Decimal:
        return self.categories.subtotal

    @property
    def has_deduction(self) -> bool:
        return self.deduction > ZERO

    @property
    def combined_cap_applied(self) -> bool:
        return sum((line.amount for line in self.deductions), ZERO) > self.deduction

    @property
    def amount_after_deduction(self) -> Decimal:
        return self.total_incl_tax - self.deduction


def price_estimate(
    items: Sequence[LineItem],
    *,
    addons: Sequence[Addon] = (),
    markup_percent: object = ZERO,
    tax_percent: object = DEFAULT_TAX_PERCENT,
    addons_post_tax: bool = False,
    deductions: Sequence[DeductionScheme] = (),
    combined_cap: Optional[Decimal] = None,
) -> EstimateTotals:
    """Price a list of items end to end.

    Markup applies to the item subtotal only. Selected addons join the
    taxable total after markup, or are appended after tax when
    ``addons_post_tax`` is set.

    Each scheme in ``deductions`` credits its percentage of the eligible
    labor including VAT, capped by the scheme; the first scheme takes the
    eligible items not pinned to another one. The sum is then held to
    ``combined_cap``. The deduction is reported on its own and never
    subtracted from ``total_incl_tax``.
    """

    categories = aggregate(items)
    markup_pct = to_decimal(markup_percent, ZERO)
    tax_pct = to_decimal(tax_percent, DEFAULT_TAX_PERCENT)
    markup = apply_markup(categories.subtotal, markup_pct)
    extras = addon_total(addons)

    total_excl_tax = categories.subtotal + markup
    if not addons_post_tax:
        total_excl_tax += extras
    tax = apply_tax(total_excl_tax, tax_pct)
    total_incl_tax = total_excl_tax + tax
    if addons_post_tax:
        total_incl_tax += extras

    lines = []
    default_scheme = deductions[0].name if deductions else None
    for scheme in deductions:
        labor = deduction_basis(items, scheme.name, default_scheme)
        basis = labor + apply_tax(labor, tax_pct)
        percent = to_decimal(scheme.percent, ZERO)
        amount = apply_deduction(basis, percent, scheme.cap)
        LOGGER.debug("Deduction %s: %s%% of %s (cap %s) -> %s", scheme.name, percent, basis, scheme.cap, amount)
        lines.append(DeductionLine(scheme.name, percent, basis, amount, scheme.cap))
    deduction = sum((line.amount for line in lines), ZERO)
    if combined_cap is not None and deduction > combined_cap:
        LOGGER.debug("Combined deduction %s held to %s", deduction, combined_cap)
        deduction = combined_cap

    return EstimateTotals(
        categories=categories,
        addons=extras,
        markup_percent=markup_pct,
        markup=markup,
        total_excl_tax=total_excl_tax,
        tax_percent=tax_pct,
        tax=tax,
        total_incl_tax=total_incl_tax,
        addons_post_tax=addons_post_tax,
        deductions=tuple(lines),
        deduction=deduction,
        combined_cap=combined_cap,
    )


def round_display(value: Decimal, places: int = 0) -> Decimal:
    """Quantize a figure for display, rounding halves away from zero."""

    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value, ZERO).quantize(exponent, rounding=ROUND_HALF_UP)


__all__ = [
    "CategoryTotals",
    "DeductionLine",
    "EstimateTotals",
    "addon_total",
    "aggregate",
    "apply_deduction",
    "apply_markup",
    "apply_tax",
    "compute_subtotal",
    "deduction_basis",
    "price_estimate",
    "refresh_subtotal",
    "round_display",
    "to_decimal",
]
