"""Per-kind section sequences: cover, summaries, details, timeline, free text.

Each builder projects a record onto an immutable :class:`Document`. Source
records are never modified; empty detail sections are left out so an empty
record still composes to a single page of placeholders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import EngineConfig, PageGeometry
from .errors import DocumentError
from .formatting import (
    format_date,
    format_hours,
    format_iso_date,
    format_long_date,
    format_money,
    format_percent,
    format_quantity,
    money_or_placeholder,
    text_or_placeholder,
)
from .models import (
    ActivityLog,
    Category,
    CheckResult,
    CostEstimate,
    DocumentKind,
    Inspection,
    LineItem,
    LUMP_SUM,
    Phase,
    ProjectReport,
    Schedule,
    Uncertainty,
)
from .pricing import ZERO, EstimateTotals, apply_tax, compute_subtotal, price_estimate, to_decimal
from .reporting import hours_by_person
from .sections import (
    CoverSection,
    Highlight,
    KeyValueRow,
    KeyValueSection,
    Section,
    TIMELINE_UNAVAILABLE,
    TableSection,
    TextSection,
    TimelineSection,
)
from .tables import CellStyle, Column, TableStyle
from .timeline import validate_phases

LOGGER = logging.getLogger(__name__)

FILE_SUFFIXES = {
    DocumentKind.ESTIMATE: "offert",
    DocumentKind.INSPECTION: "egenkontroll",
    DocumentKind.SCHEDULE: "planering",
    DocumentKind.ACTIVITY_LOG: "dagrapport",
    DocumentKind.PROJECT_REPORT: "projektrapport",
}

TYPE_LABELS = {
    Category.LABOR: "Arbete",
    Category.MATERIAL: "Material",
    Category.SUBCONTRACTED: "UE",
}
UNCERTAINTY_LABELS = {
    Uncertainty.LOW: "Låg",
    Uncertainty.MEDIUM: "Medel",
    Uncertainty.HIGH: "Hög",
}
STATUS_LABELS = {
    "draft": "Utkast",
    "completed": "Slutförd",
    "approved": "Godkänd",
}
RESULT_LABELS = {
    CheckResult.OK: "OK",
    CheckResult.DEVIATION: "Avvikelse",
    CheckResult.NOT_APPLICABLE: "Ej tillämplig",
}
DEVIATION_LABELS = {
    "waiting_time": "Väntetid",
    "material_delay": "Materialförsening",
    "weather": "Väder",
    "coordination": "Samordning",
    "equipment": "Utrustning",
    "safety": "Säkerhet",
    "quality": "Kvalitet",
    "other": "Övrigt",
}
LUMP_SUM_LABEL = "klump"


@dataclass(frozen=True)
class Document:
    """Immutable input to the assembler: what to draw, and how to name it."""

    kind: DocumentKind
    title: str
    subject: str
    file_suffix: str
    file_date: date
    page: PageGeometry
    sections: Tuple[Section, ...]
    warnings: Tuple[str, ...] = ()


def _weeks(count: int) -> str:
    return "1 vecka" if count == 1 else f"{count} veckor"


def _joined(parts: Sequence[Optional[str]], separator: str = ", ") -> Optional[str]:
    cleaned = [str(part).strip() for part in parts if part and str(part).strip()]
    return separator.join(cleaned) if cleaned else None


def _price(record: CostEstimate, config: EngineConfig) -> EstimateTotals:
    schemes = []
    for name in record.deduction_scheme_names:
        scheme = config.deduction_scheme(name)
        if scheme is None:
            LOGGER.warning("Unknown deduction scheme %r in %s; ignored", name, record.project_name)
            continue
        if not schemes and record.deduction_percent is not None:
            scheme = replace(scheme, percent=record.deduction_percent)
        schemes.append(scheme)
    return price_estimate(
        record.items,
        addons=record.addons,
        markup_percent=record.markup_percent,
        tax_percent=config.tax_percent,
        addons_post_tax=config.addons_post_tax(record.kind),
        deductions=tuple(schemes),
        combined_cap=config.combined_deduction_cap,
    )


def _is_priced(record: CostEstimate) -> bool:
    return bool(record.items) or any(addon.selected for addon in record.addons)


def _item_columns(config: EngineConfig) -> Tuple[Column, ...]:
    loc = config.locale
    theme = config.theme

    def uncertainty_style(value):
        if value is Uncertainty.HIGH:
            return CellStyle(color=theme.red, bold=True)
        if value is Uncertainty.LOW:
            return CellStyle(color=theme.green)
        return None

    return (
        Column("Moment", 50),
        Column("Typ", 18, formatter=lambda value: TYPE_LABELS.get(value, loc.placeholder)),
        Column("Antal", 15, "right", formatter=lambda value: format_quantity(value, loc)),
        Column("Enhet", 15, "center", wrap=False),
        Column("Tim", 12, "right", formatter=lambda value: format_quantity(value, loc)),
        Column("Á-pris", 22, "right", formatter=lambda value: format_money(value, loc), wrap=False),
        Column("Delkostnad", 25, "right", formatter=lambda value: format_money(value, loc), wrap=False),
        Column(
            "Osäkerhet",
            20,
            "center",
            formatter=lambda value: UNCERTAINTY_LABELS.get(value, loc.placeholder),
            highlight=uncertainty_style,
        ),
    )


def _item_row(item: LineItem) -> tuple:
    unit = LUMP_SUM_LABEL if item.unit == LUMP_SUM else (item.unit or None)
    hours = item.hours if item.category is Category.LABOR else None
    quantity = None if item.unit == LUMP_SUM else item.quantity
    return (
        item.description or None,
        item.category,
        quantity,
        unit,
        hours,
        item.unit_price,
        compute_subtotal(item),
        item.uncertainty,
    )


def _items_section(title: str, items: Sequence[LineItem], config: EngineConfig, *, new_page: bool) -> TableSection:
    subtotal = sum((compute_subtotal(item) for item in items), ZERO)
    return TableSection(
        title=title,
        columns=_item_columns(config),
        rows=tuple(_item_row(item) for item in items),
        style=TableStyle(font_size=8.5, header_fill=config.theme.primary, text_color=config.theme.dark),
        footnote=f"Summa: {format_money(subtotal, config.locale)}",
        new_page=new_page,
    )


def build_estimate(record: CostEstimate, config: EngineConfig, now: datetime) -> Document:
    loc = config.locale
    theme = config.theme
    totals = _price(record, config)
    priced = _is_priced(record)
    stamp = record.estimate_date or now.date()

    def money(value: Decimal) -> str:
        return money_or_placeholder(value, priced, loc)

    cover_lines = [
        f"Version {record.version} • {format_iso_date(stamp, loc)}" if record.version else format_iso_date(stamp, loc)
    ]
    if record.client_name:
        cover_lines.append(f"Kund: {record.client_name}")
    sections: List[Section] = [
        CoverSection(
            title="PROJEKTOFFERT",
            subject=text_or_placeholder(record.project_name, loc),
            lines=tuple(cover_lines),
            highlight=Highlight("Totalt inkl. moms", money(totals.total_incl_tax)),
        )
    ]

    rows = [
        KeyValueRow("Arbetskostnad", money(totals.categories.labor)),
        KeyValueRow("Materialkostnad", money(totals.categories.material)),
        KeyValueRow("UE-kostnad", money(totals.categories.subcontracted)),
        KeyValueRow("Summa", money(totals.subtotal), emphasis=True, rule_above=True),
    ]
    if totals.markup_percent:
        rows.append(KeyValueRow(f"Påslag ({format_percent(totals.markup_percent)}%)", money(totals.markup)))
    if totals.addons and not totals.addons_post_tax:
        rows.append(KeyValueRow("Tillval", money(totals.addons)))
    rows.append(KeyValueRow("Totalt exkl. moms", money(totals.total_excl_tax), emphasis=True, rule_above=True))
    rows.append(KeyValueRow(f"Moms ({format_percent(totals.tax_percent)}%)", money(totals.tax)))
    if totals.addons and totals.addons_post_tax:
        rows.append(KeyValueRow("Tillval", money(totals.addons)))
    rows.append(
        KeyValueRow("Totalt inkl. moms", money(totals.total_incl_tax), emphasis=True, rule_above=True, color=theme.primary)
    )
    if totals.has_deduction:
        for line in totals.deductions:
            if line.amount <= ZERO:
                continue
            rows.append(
                KeyValueRow(
                    f"{line.scheme}-avdrag ({format_percent(line.percent)}% inkl. moms)",
                    f"-{format_money(line.amount, loc)}",
                    color=theme.green,
                )
            )
        if totals.combined_cap_applied:
            rows.append(
                KeyValueRow(
                    f"Avdrag totalt (högst {format_money(totals.combined_cap, loc)})",
                    f"-{format_money(totals.deduction, loc)}",
                    color=theme.green,
                )
            )
        rows.append(
            KeyValueRow(
                "Att betala efter avdrag",
                format_money(totals.amount_after_deduction, loc),
                emphasis=True,
                rule_above=True,
                color=theme.primary,
            )
        )
    sections.append(KeyValueSection("SAMMANFATTNING", tuple(rows)))

    if record.items:
        sections.append(_items_section("OFFERTSPECIFIKATION", record.items, config, new_page=True))
    selected = [addon for addon in record.addons if addon.selected]
    if selected:
        sections.append(
            TableSection(
                title="TILLVAL",
                columns=(
                    Column("Tillval", 60),
                    Column("Beskrivning"),
                    Column("Pris", 30, "right", formatter=lambda value: format_money(value, loc), wrap=False),
                ),
                rows=tuple((addon.name, addon.description or None, addon.price) for addon in selected),
                style=TableStyle(header_fill=theme.primary, text_color=theme.dark),
            )
        )

    if record.scope:
        sections.append(TextSection("OMFATTNING", (record.scope,)))
    if record.assumptions:
        sections.append(TextSection("ANTAGANDEN", tuple(record.assumptions), bullets=True))
    if record.uncertainties:
        sections.append(TextSection("OSÄKERHETER", tuple(record.uncertainties), bullets=True, color=theme.amber))
    if totals.has_deduction:
        names = "/".join(line.scheme for line in totals.deductions if line.amount > ZERO)
        caps = [
            f"{line.scheme}-avdraget är högst {format_money(line.cap, loc)}"
            for line in totals.deductions
            if line.amount > ZERO and line.cap is not None
        ]
        if len(caps) > 1 and totals.combined_cap is not None:
            caps.append(f"sammanlagt högst {format_money(totals.combined_cap, loc)}")
        cap = f" {', '.join(caps)} per person och år." if caps else ""
        sections.append(
            TextSection(
                None,
                (
                    f"{names}-avdraget beräknas på arbetskostnaden inklusive moms och förutsätter att "
                    f"kunden har utrymme för avdrag.{cap}",
                ),
                size=8.0,
                italic=True,
                color=theme.muted,
            )
        )

    return Document(
        kind=record.kind,
        title=f"Offert - {record.project_name}",
        subject=record.project_name,
        file_suffix=FILE_SUFFIXES[record.kind],
        file_date=stamp,
        page=config.page,
        sections=tuple(sections),
    )


def build_inspection(record: Inspection, config: EngineConfig, now: datetime) -> Document:
    loc = config.locale
    theme = config.theme
    stamp = record.inspection_date or now.date()
    checkpoints = record.checkpoints

    lines = [f"Projekt: {text_or_placeholder(record.project_name, loc)}", f"Datum: {format_date(stamp, loc)}"]
    if record.client_name:
        lines.append(f"Kund: {record.client_name}")
    if record.template_category:
        lines.append(f"Kategori: {record.template_category}")
    sections: List[Section] = [
        CoverSection(
            title="EGENKONTROLL",
            subject=text_or_placeholder(record.template_name, loc),
            lines=tuple(lines),
            centered=False,
        )
    ]

    total = len(checkpoints)
    filled = sum(1 for point in checkpoints if point.is_set)
    ok = sum(1 for point in checkpoints if point.result is CheckResult.OK)
    deviations = [point for point in checkpoints if point.result is CheckResult.DEVIATION]
    not_applicable = sum(1 for point in checkpoints if point.result is CheckResult.NOT_APPLICABLE)

    def count(value: int) -> str:
        return str(value) if total else loc.placeholder

    summary = (
        KeyValueRow("Status", STATUS_LABELS.get(record.status, text_or_placeholder(record.status, loc))),
        KeyValueRow("Ifyllda punkter", f"{filled} av {total}" if total else loc.placeholder),
        KeyValueRow("Godkända", count(ok), color=theme.green if ok else None),
        KeyValueRow("Avvikelser", count(len(deviations)), color=theme.red if deviations else None),
        KeyValueRow("Ej tillämpliga", count(not_applicable)),
    )
    sections.append(KeyValueSection("SAMMANFATTNING", summary, label_width=50, value_align="left"))
    if record.inspector_name or record.inspector_company:
        sections.append(
            KeyValueSection(
                "KONTROLLANT",
                (
                    KeyValueRow("Namn", text_or_placeholder(record.inspector_name, loc)),
                    KeyValueRow("Företag", text_or_placeholder(record.inspector_company, loc)),
                ),
                label_width=50,
                value_align="left",
            )
        )

    def result_style(value):
        if value is CheckResult.OK:
            return CellStyle(color=theme.green, bold=True)
        if value is CheckResult.DEVIATION:
            return CellStyle(color=theme.red, bold=True)
        if value is CheckResult.NOT_APPLICABLE:
            return CellStyle(color=theme.muted)
        return None

    if checkpoints:
        sections.append(
            TableSection(
                title="KONTROLLPUNKTER",
                columns=(
                    Column("Nr", 12, "center"),
                    Column("Kontrollpunkt"),
                    Column(
                        "Resultat",
                        28,
                        "center",
                        formatter=lambda value: RESULT_LABELS.get(value, loc.placeholder),
                        highlight=result_style,
                    ),
                    Column("Kommentar", 55),
                ),
                rows=tuple(
                    (
                        number,
                        f"{point.text} *" if point.required else point.text,
                        point.result,
                        point.comment or None,
                    )
                    for number, point in enumerate(checkpoints, start=1)
                ),
                style=TableStyle(header_fill=theme.primary, text_color=theme.dark),
            )
        )
    if deviations:
        numbers = {id(point): number for number, point in enumerate(checkpoints, start=1)}
        sections.append(
            TableSection(
                title="AVVIKELSER - DETALJER",
                title_color=theme.red,
                columns=(Column("Nr", 12, "center"), Column("Kontrollpunkt", 70), Column("Kommentar")),
                rows=tuple((numbers[id(point)], point.text, point.comment or None) for point in deviations),
                style=TableStyle(header_fill=theme.red, text_color=theme.dark),
            )
        )
    if record.notes:
        sections.append(TextSection("ANTECKNINGAR", (record.notes,)))
    if any(point.required for point in checkpoints):
        sections.append(TextSection(None, ("* = Obligatorisk kontrollpunkt",), size=8.0, italic=True, color=theme.muted))

    return Document(
        kind=record.kind,
        title=f"Egenkontroll - {record.template_name}",
        subject=_joined((record.project_name, record.template_name), " ") or "",
        file_suffix=FILE_SUFFIXES[record.kind],
        file_date=stamp,
        page=config.page,
        sections=tuple(sections),
    )


def drawable_phases(schedule: Schedule) -> Tuple[Tuple[Phase, ...], List[str]]:
    """Phases that can go on the timeline, plus warnings for the rest."""

    problems = validate_phases(schedule.phases, schedule.total_units)
    if not problems:
        return tuple(schedule.phases), []
    if problems[0].phase_index is None:
        return (), [f"Timeline omitted: {problems[0]}"]
    dropped = {problem.phase_index for problem in problems}
    kept = tuple(phase for index, phase in enumerate(schedule.phases) if index not in dropped)
    return kept, [f"Dropped from timeline: {problem}" for problem in problems]


def _phase_table(phases: Sequence[Phase], config: EngineConfig) -> TableSection:
    loc = config.locale
    return TableSection(
        title="MOMENTLISTA",
        columns=(
            Column("Moment"),
            Column("Startvecka", 28, "center"),
            Column("Längd", 28, "center"),
            Column("Parallellt med", 60),
        ),
        rows=tuple(
            (
                phase.name,
                f"V{phase.start_unit}",
                _weeks(phase.duration_units),
                phase.parallel_with or loc.placeholder,
            )
            for phase in phases
        ),
        style=TableStyle(header_fill=config.theme.primary, text_color=config.theme.dark),
    )


def build_schedule(record: Schedule, config: EngineConfig, now: datetime) -> Document:
    loc = config.locale
    theme = config.theme
    page = config.page.landscape() if config.landscape_schedules else config.page
    phases, warnings = drawable_phases(record)
    duration = f"ca {_weeks(record.total_units)}" if record.total_units > 0 else loc.placeholder

    sections: List[Section] = [
        CoverSection(
            title="PROJEKTPLANERING",
            subject=text_or_placeholder(record.project_name, loc),
            lines=(f"Total projekttid: {duration}", f"Antal moment: {len(record.phases)}"),
        )
    ]
    last_unit = max((phase.end_unit for phase in phases), default=None)
    sections.append(
        KeyValueSection(
            "SAMMANFATTNING",
            (
                KeyValueRow("Total projekttid", duration),
                KeyValueRow("Antal moment", str(len(record.phases)) if record.phases else loc.placeholder),
                KeyValueRow("Startdatum", format_date(record.start_date, loc)),
                KeyValueRow("Sista vecka", f"V{last_unit}" if last_unit else loc.placeholder),
            ),
            label_width=50,
            value_align="left",
        )
    )
    if record.phases:
        sections.append(_phase_table(record.phases, config))
    if phases:
        sections.append(
            TimelineSection(
                "TIDSLINJE",
                phases,
                record.total_units,
                subtitle=f"{record.project_name} • {_weeks(record.total_units)}",
                new_page=True,
            )
        )
    elif record.phases:
        sections.append(
            TextSection("TIDSLINJE", (TIMELINE_UNAVAILABLE,), italic=True, color=theme.muted)
        )
    if record.summary:
        sections.append(TextSection("BESKRIVNING", (record.summary,)))

    return Document(
        kind=record.kind,
        title=f"Projektplanering - {record.project_name}",
        subject=record.project_name,
        file_suffix=FILE_SUFFIXES[record.kind],
        file_date=now.date(),
        page=page,
        sections=tuple(sections),
        warnings=tuple(warnings),
    )


def build_activity_log(record: ActivityLog, config: EngineConfig, now: datetime) -> Document:
    loc = config.locale
    theme = config.theme
    report = record.report
    stamp = report.report_date or now.date()

    lines = [f"Datum: {format_long_date(stamp, loc)}"]
    if record.client_name:
        lines.append(f"Kund: {record.client_name}")
    if record.company_name:
        lines.append(record.company_name)
    sections: List[Section] = [
        CoverSection("DAGRAPPORT", text_or_placeholder(record.project_name, loc), tuple(lines), centered=False)
    ]
    sections.append(
        KeyValueSection(
            "BEMANNING",
            (
                KeyValueRow("Antal personer", str(report.headcount) if report.headcount is not None else loc.placeholder),
                KeyValueRow("Timmar/person", format_hours(report.hours_per_person, loc)),
                KeyValueRow("Totala timmar", format_hours(report.effective_total_hours, loc), emphasis=True),
                KeyValueRow("Roller", _joined(report.roles) or loc.placeholder),
            ),
            label_width=50,
            value_align="left",
        )
    )

    striped = TableStyle(header_fill=theme.primary, text_color=theme.dark)
    if report.work_items:
        sections.append(
            TableSection(
                "UTFÖRT ARBETE",
                (Column("Nr", 12, "center"), Column("Arbete")),
                tuple((number, text) for number, text in enumerate(report.work_items, start=1)),
                style=striped,
            )
        )
    if report.deviations:
        sections.append(
            TableSection(
                "AVVIKELSER",
                (
                    Column("Typ", 40, formatter=lambda value: DEVIATION_LABELS.get(value, value or loc.placeholder)),
                    Column("Beskrivning"),
                    Column("Timmar", 22, "right", formatter=lambda value: format_hours(value, loc)),
                ),
                tuple((item.kind, item.description, item.hours) for item in report.deviations),
                style=TableStyle(header_fill=theme.amber, text_color=theme.dark),
                title_color=theme.amber,
            )
        )
    if report.change_orders:
        sections.append(
            TableSection(
                "ÄTA (ÄNDRINGS- OCH TILLÄGGSARBETEN)",
                (
                    Column("Anledning"),
                    Column("Konsekvens"),
                    Column("Timmar", 22, "right", formatter=lambda value: format_hours(value, loc)),
                ),
                tuple((item.reason, item.consequence or None, item.estimated_hours) for item in report.change_orders),
                style=TableStyle(header_fill=theme.blue, text_color=theme.dark),
                title_color=theme.blue,
            )
        )
    if report.extra_work:
        sections.append(
            TableSection(
                "EXTRAARBETE",
                (Column("Nr", 12, "center"), Column("Beskrivning")),
                tuple((number, text) for number, text in enumerate(report.extra_work, start=1)),
                style=striped,
            )
        )
    if report.materials_delivered or report.materials_missing:
        sections.append(
            TableSection(
                "MATERIAL",
                (
                    Column(
                        "Status",
                        35,
                        highlight=lambda value: CellStyle(color=theme.red, bold=True) if value == "Saknas" else None,
                    ),
                    Column("Material"),
                ),
                tuple(
                    row
                    for row in (
                        ("Levererat", _joined(report.materials_delivered)),
                        ("Saknas", _joined(report.materials_missing)),
                    )
                    if row[1]
                ),
                style=TableStyle(striped=False, header_fill=theme.primary, text_color=theme.dark),
            )
        )
    if report.notes:
        sections.append(TextSection("ANTECKNINGAR", (report.notes,)))

    return Document(
        kind=record.kind,
        title=f"Dagrapport - {record.project_name}",
        subject=record.project_name,
        file_suffix=FILE_SUFFIXES[record.kind],
        file_date=stamp,
        page=config.page,
        sections=tuple(sections),
    )


def build_project_report(record: ProjectReport, config: EngineConfig, now: datetime) -> Document:
    loc = config.locale
    theme = config.theme
    project = record.project
    estimate = record.estimate
    totals = _price(estimate, config) if estimate is not None else None
    has_estimate = estimate is not None and _is_priced(estimate)

    change_order_subtotal = sum((compute_subtotal(item) for item in record.change_orders), ZERO)
    change_order_total = change_order_subtotal + apply_tax(change_order_subtotal, config.tax_percent)
    vendor_total = sum((to_decimal(inv.total_incl_tax, ZERO) for inv in record.vendor_invoices), ZERO)
    labor_cost = sum(
        (
            to_decimal(entry.hours, ZERO) * entry.billing_rate
            for entry in record.time_entries
            if entry.billing_rate is not None
        ),
        ZERO,
    )
    has_costs = bool(record.vendor_invoices) or any(entry.billing_rate is not None for entry in record.time_entries)
    has_revenue = has_estimate or bool(record.change_orders)
    revenue = (totals.total_incl_tax if totals is not None and has_estimate else ZERO) + change_order_total
    costs = vendor_total + labor_cost

    address = _joined((project.address, _joined((project.postal_code, project.city), " ")))
    lines = [line for line in (project.client_name, address) if line]
    lines.append(f"Genererad {format_date(now.date(), loc)}")
    sections: List[Section] = [
        CoverSection("PROJEKTRAPPORT", text_or_placeholder(project.name, loc), tuple(lines))
    ]
    sections.append(
        KeyValueSection(
            "PROJEKTÖVERSIKT",
            (
                KeyValueRow("Kund", text_or_placeholder(project.client_name, loc)),
                KeyValueRow("Adress", text_or_placeholder(address, loc)),
                KeyValueRow("Startdatum", format_date(project.start_date, loc)),
                KeyValueRow("Status", text_or_placeholder(project.status, loc)),
                KeyValueRow("Budget", money_or_placeholder(project.budget, project.budget is not None, loc)),
            ),
            label_width=50,
            value_align="left",
        )
    )

    def money(value: Decimal, present: bool) -> str:
        return money_or_placeholder(value, present, loc)

    economy = [
        KeyValueRow(
            "Offertbelopp (inkl. moms)",
            money(totals.total_incl_tax if totals is not None else ZERO, has_estimate),
        ),
        KeyValueRow("ÄTA-arbeten (inkl. moms)", money(change_order_total, bool(record.change_orders))),
        KeyValueRow("Summa intäkter", money(revenue, has_revenue), emphasis=True, rule_above=True),
        KeyValueRow("Leverantörskostnader", money(vendor_total, bool(record.vendor_invoices))),
        KeyValueRow("Arbetskostnad", money(labor_cost, has_costs and labor_cost > ZERO)),
        KeyValueRow("Summa kostnader", money(costs, has_costs), emphasis=True, rule_above=True),
    ]
    gross = revenue - costs
    economy.append(
        KeyValueRow(
            "Bruttoresultat",
            money(gross, has_revenue or has_costs),
            emphasis=True,
            rule_above=True,
            color=(theme.green if gross >= ZERO else theme.red) if (has_revenue or has_costs) else None,
        )
    )
    if project.budget is not None:
        difference = project.budget - costs
        economy.append(KeyValueRow("Budget", format_money(project.budget, loc)))
        economy.append(
            KeyValueRow("Differens mot budget", format_money(difference, loc), color=theme.green if difference >= ZERO else theme.red)
        )
    sections.append(KeyValueSection("EKONOMISK SAMMANFATTNING", tuple(economy)))

    striped = TableStyle(header_fill=theme.primary, text_color=theme.dark)
    if estimate is not None and estimate.items:
        sections.append(_items_section("OFFERTPOSTER", estimate.items, config, new_page=True))
    if record.change_orders:
        sections.append(_items_section("ÄTA-ARBETEN", record.change_orders, config, new_page=False))
    schedule = record.schedule
    if schedule is not None and schedule.phases:
        sections.append(_phase_table(schedule.phases, config))
    if record.diary:
        sections.append(
            TableSection(
                "ARBETSDAGBOK",
                (
                    Column("Datum", 25, formatter=lambda value: format_iso_date(value, loc)),
                    Column("Personal", 20, "right"),
                    Column("Timmar", 20, "right", formatter=lambda value: format_hours(value, loc)),
                    Column("Utfört arbete"),
                    Column("Avvikelser", 22, "right"),
                ),
                tuple(
                    (
                        day.report_date,
                        day.headcount,
                        day.effective_total_hours,
                        _joined(day.work_items, "; "),
                        len(day.deviations),
                    )
                    for day in record.diary
                ),
                style=striped,
            )
        )
    if record.time_entries:
        total_hours = sum((to_decimal(entry.hours, ZERO) for entry in record.time_entries), ZERO)
        sections.append(
            TableSection(
                "TIDSRAPPORTER",
                (
                    Column("Datum", 25, formatter=lambda value: format_iso_date(value, loc)),
                    Column("Person", 40),
                    Column("Timmar", 20, "right", formatter=lambda value: format_hours(value, loc)),
                    Column("Typ", 25),
                    Column("Beskrivning"),
                ),
                tuple(
                    (entry.entry_date, entry.person, entry.hours, entry.billing_type, entry.description)
                    for entry in record.time_entries
                ),
                style=striped,
                footnote=f"Totalt: {format_hours(total_hours, loc)}",
            )
        )
        per_person = hours_by_person(record.time_entries)
        sections.append(
            TableSection(
                "TIMMAR PER PERSON",
                (
                    Column("Person"),
                    Column("Poster", 20, "right"),
                    Column("Timmar", 25, "right", formatter=lambda value: format_hours(value, loc)),
                    Column("Kostnad", 35, "right", formatter=lambda value: format_money(value, loc)),
                ),
                tuple(
                    (row.PERSON or loc.placeholder, int(row.ENTRIES), row.HOURS, row.COST)
                    for row in per_person.itertuples(index=False)
                ),
                style=striped,
            )
        )
    if record.vendor_invoices:
        sections.append(
            TableSection(
                "LEVERANTÖRSFAKTUROR",
                (
                    Column("Leverantör"),
                    Column("Fakturanr", 30),
                    Column("Datum", 25, formatter=lambda value: format_iso_date(value, loc)),
                    Column("Status", 25),
                    Column("Belopp", 32, "right", formatter=lambda value: format_money(value, loc), wrap=False),
                ),
                tuple(
                    (inv.supplier_name, inv.invoice_number, inv.invoice_date, inv.status, inv.total_incl_tax)
                    for inv in record.vendor_invoices
                ),
                style=striped,
                footnote=f"Summa: {format_money(vendor_total, loc)}",
            )
        )

    warnings: List[str] = []
    if schedule is not None and schedule.phases:
        phases, warnings = drawable_phases(schedule)
        if phases:
            sections.append(
                TimelineSection(
                    "TIDSLINJE",
                    phases,
                    schedule.total_units,
                    subtitle=f"{project.name} • {_weeks(schedule.total_units)}",
                    new_page=True,
                )
            )
    if estimate is not None and estimate.scope:
        sections.append(TextSection("OMFATTNING", (estimate.scope,)))

    return Document(
        kind=record.kind,
        title=f"Projektrapport - {project.name}",
        subject=project.name,
        file_suffix=FILE_SUFFIXES[record.kind],
        file_date=now.date(),
        page=config.page,
        sections=tuple(sections),
        warnings=tuple(warnings),
    )


Builder = Callable[[object, EngineConfig, datetime], Document]

BUILDERS: Dict[DocumentKind, Builder] = {
    DocumentKind.ESTIMATE: build_estimate,
    DocumentKind.INSPECTION: build_inspection,
    DocumentKind.SCHEDULE: build_schedule,
    DocumentKind.ACTIVITY_LOG: build_activity_log,
    DocumentKind.PROJECT_REPORT: build_project_report,
}


def compose(record: object, config: EngineConfig, now: datetime) -> Document:
    """Dispatch ``record`` to the builder registered for its ``kind``."""

    if record is None:
        raise DocumentError("No record bundle supplied")
    kind = getattr(record, "kind", None)
    builder = BUILDERS.get(kind)
    if builder is None:
        raise DocumentError(f"Unsupported document kind: {kind!r}")
    LOGGER.debug("Composing %s document", kind.value)
    return builder(record, config, now)


__all__ = [
    "BUILDERS",
    "Document",
    "FILE_SUFFIXES",
    "build_activity_log",
    "build_estimate",
    "build_inspection",
    "build_project_report",
    "build_schedule",
    "compose",
    "drawable_phases",
]
