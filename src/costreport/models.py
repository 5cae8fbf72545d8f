from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union

LUMP_SUM = "lump-sum"


class Category(str, Enum):
    LABOR = "labor"
    MATERIAL = "material"
    SUBCONTRACTED = "subcontracted"


class Uncertainty(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckResult(str, Enum):
    OK = "ok"
    DEVIATION = "deviation"
    NOT_APPLICABLE = "not-applicable"
    UNSET = "unset"


class DocumentKind(str, Enum):
    ESTIMATE = "estimate"
    INSPECTION = "inspection"
    SCHEDULE = "schedule"
    ACTIVITY_LOG = "activity_log"
    PROJECT_REPORT = "project_report"


@dataclass(frozen=True)
class LineItem:
    """One priced unit of work or material.

    ``subtotal`` is a cache of :func:`costreport.pricing.compute_subtotal`;
    renderers always recompute it rather than trusting the stored value.
    """

    description: str
    category: Category
    unit_price: Decimal = Decimal("0")
    quantity: Optional[Decimal] = None
    unit: str = ""
    hours: Optional[Decimal] = None
    uncertainty: Uncertainty = Uncertainty.MEDIUM
    tax_deduction_eligible: bool = False
    deduction_scheme: Optional[str] = None
    comment: str = ""
    item_id: str = ""
    subtotal: Optional[Decimal] = None

    @property
    def is_lump_sum(self) -> bool:
        return self.unit == LUMP_SUM


@dataclass(frozen=True)
class Addon:
    name: str
    price: Decimal = Decimal("0")
    selected: bool = False
    description: str = ""


@dataclass(frozen=True)
class Checkpoint:
    text: str
    required: bool = False
    result: CheckResult = CheckResult.UNSET
    comment: str = ""
    checkpoint_id: str = ""

    @property
    def is_set(self) -> bool:
        return self.result is not CheckResult.UNSET


@dataclass(frozen=True)
class Phase:
    name: str
    start_unit: int
    duration_units: int = 1
    color_key: str = "slate"
    parallel_with: Optional[str] = None
    description: Optional[str] = None

    @property
    def end_unit(self) -> int:
        return self.start_unit + self.duration_units - 1


@dataclass(frozen=True)
class Deviation:
    kind: str
    description: str
    hours: Optional[Decimal] = None


@dataclass(frozen=True)
class ChangeOrder:
    """Unplanned extra work (ÄTA) noted in a daily report."""

    reason: str
    consequence: str = ""
    estimated_hours: Optional[Decimal] = None


@dataclass(frozen=True)
class DailyReport:
    report_date: Optional[date] = None
    headcount: Optional[int] = None
    roles: Tuple[str, ...] = ()
    hours_per_person: Optional[Decimal] = None
    total_hours: Optional[Decimal] = None
    work_items: Tuple[str, ...] = ()
    deviations: Tuple[Deviation, ...] = ()
    change_orders: Tuple[ChangeOrder, ...] = ()
    extra_work: Tuple[str, ...] = ()
    materials_delivered: Tuple[str, ...] = ()
    materials_missing: Tuple[str, ...] = ()
    notes: Optional[str] = None

    @property
    def effective_total_hours(self) -> Optional[Decimal]:
        if self.total_hours is not None:
            return self.total_hours
        if self.headcount is not None and self.hours_per_person is not None:
            return Decimal(self.headcount) * self.hours_per_person
        return None


@dataclass(frozen=True)
class TimeEntry:
    entry_date: Optional[date]
    hours: Decimal
    person: Optional[str] = None
    billing_type: Optional[str] = None
    billing_rate: Optional[Decimal] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class VendorInvoice:
    supplier_name: str
    total_incl_tax: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    status: str = "new"


@dataclass(frozen=True)
class Project:
    name: str
    client_name: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    start_date: Optional[date] = None
    budget: Optional[Decimal] = None
    status: Optional[str] = None


# Document records: one frozen variant per document kind.


@dataclass(frozen=True)
class CostEstimate:
    kind: ClassVar[DocumentKind] = DocumentKind.ESTIMATE

    project_name: str
    items: Tuple[LineItem, ...] = ()
    addons: Tuple[Addon, ...] = ()
    markup_percent: Decimal = Decimal("0")
    scope: Optional[str] = None
    assumptions: Tuple[str, ...] = ()
    uncertainties: Tuple[str, ...] = ()
    version: Optional[int] = None
    client_name: Optional[str] = None
    estimate_date: Optional[date] = None
    deduction_scheme: Optional[str] = None
    deduction_percent: Optional[Decimal] = None

    @property
    def deduction_scheme_names(self) -> Tuple[str, ...]:
        """Scheme names in order, e.g. ``"ROT+RUT"`` -> ``("ROT", "RUT")``."""

        names: List[str] = []
        for part in re.split(r"[+,/\s]+", self.deduction_scheme or ""):
            name = part.strip().upper()
            if name and name not in names:
                names.append(name)
        return tuple(names)


@dataclass(frozen=True)
class Inspection:
    kind: ClassVar[DocumentKind] = DocumentKind.INSPECTION

    project_name: str
    template_name: str = ""
    template_category: Optional[str] = None
    inspection_date: Optional[date] = None
    client_name: Optional[str] = None
    inspector_name: Optional[str] = None
    inspector_company: Optional[str] = None
    status: str = "draft"
    notes: Optional[str] = None
    checkpoints: Tuple[Checkpoint, ...] = ()


@dataclass(frozen=True)
class Schedule:
    kind: ClassVar[DocumentKind] = DocumentKind.SCHEDULE

    project_name: str
    phases: Tuple[Phase, ...] = ()
    total_units: int = 0
    summary: Optional[str] = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class ActivityLog:
    kind: ClassVar[DocumentKind] = DocumentKind.ACTIVITY_LOG

    project_name: str
    report: DailyReport = DailyReport()
    client_name: Optional[str] = None
    company_name: Optional[str] = None


@dataclass(frozen=True)
class ProjectReport:
    kind: ClassVar[DocumentKind] = DocumentKind.PROJECT_REPORT

    project: Project
    estimate: Optional[CostEstimate] = None
    change_orders: Tuple[LineItem, ...] = ()
    schedule: Optional[Schedule] = None
    diary: Tuple[DailyReport, ...] = ()
    time_entries: Tuple[TimeEntry, ...] = ()
    vendor_invoices: Tuple[VendorInvoice, ...] = ()


DocumentRecord = Union[CostEstimate, Inspection, Schedule, ActivityLog, ProjectReport]

RECORD_TYPES = {
    DocumentKind.ESTIMATE: CostEstimate,
    DocumentKind.INSPECTION: Inspection,
    DocumentKind.SCHEDULE: Schedule,
    DocumentKind.ACTIVITY_LOG: ActivityLog,
    DocumentKind.PROJECT_REPORT: ProjectReport,
}


__all__ = [
    "ActivityLog",
    "Addon",
    "Category",
    "ChangeOrder",
    "CheckResult",
    "Checkpoint",
    "CostEstimate",
    "DailyReport",
    "Deviation",
    "DocumentKind",
    "DocumentRecord",
    "Inspection",
    "LUMP_SUM",
    "LineItem",
    "Phase",
    "Project",
    "ProjectReport",
    "RECORD_TYPES",
    "Schedule",
    "TimeEntry",
    "Uncertainty",
    "VendorInvoice",
]
