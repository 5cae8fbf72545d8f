"""Record bundles: validate JSON-like payloads and build document records.

Payloads use the same field names as the record dataclasses. Numbers may be
given as JSON numbers or as strings in either ``1200.50`` or ``1 200,50``
form. Tokens from the source system (``klump``, ``subcontractor``, ``na``)
are accepted as aliases.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type, TypeVar

from jsonschema import Draft7Validator

from .config import _BOOLEAN_TRUE
from .errors import BundleError, DocumentError
from .models import (
    ActivityLog,
    Addon,
    Category,
    ChangeOrder,
    CheckResult,
    Checkpoint,
    CostEstimate,
    DailyReport,
    Deviation,
    DocumentKind,
    DocumentRecord,
    Inspection,
    LineItem,
    LUMP_SUM,
    Phase,
    Project,
    ProjectReport,
    Schedule,
    TimeEntry,
    Uncertainty,
    VendorInvoice,
)
from .pricing import ZERO, refresh_subtotal, to_decimal

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

UNIT_ALIASES = {"klump": LUMP_SUM, "lumpsum": LUMP_SUM, "lump_sum": LUMP_SUM}
CATEGORY_ALIASES = {
    "subcontractor": Category.SUBCONTRACTED.value,
    "ue": Category.SUBCONTRACTED.value,
    "arbete": Category.LABOR.value,
}
RESULT_ALIASES = {
    "na": CheckResult.NOT_APPLICABLE.value,
    "n/a": CheckResult.NOT_APPLICABLE.value,
    "not_applicable": CheckResult.NOT_APPLICABLE.value,
    "": CheckResult.UNSET.value,
}

_NUMBER = {"type": ["number", "string", "null"]}
_INTEGER = {"type": ["integer", "string", "null"]}
_TEXT = {"type": ["string", "null"]}
_FLAG = {"type": ["boolean", "string", "null"]}
_TEXT_LIST = {"type": ["array", "null"], "items": {"type": "string"}}

_ITEM = {
    "type": "object",
    "required": ["description"],
    "properties": {
        "id": _TEXT,
        "item_id": _TEXT,
        "description": {"type": "string"},
        "category": _TEXT,
        "quantity": _NUMBER,
        "unit": _TEXT,
        "hours": _NUMBER,
        "unit_price": _NUMBER,
        "uncertainty": _TEXT,
        "tax_deduction_eligible": _FLAG,
        "rot_eligible": _FLAG,
        "rut_eligible": _FLAG,
        "deduction_scheme": _TEXT,
        "comment": _TEXT,
    },
}
_ADDON = {
    "type": "object",
    "required": ["name"],
    "properties": {"name": {"type": "string"}, "price": _NUMBER, "selected": _FLAG, "description": _TEXT},
}
_ESTIMATE = {
    "type": "object",
    "required": ["project_name"],
    "properties": {
        "project_name": {"type": "string"},
        "items": {"type": "array", "items": _ITEM},
        "addons": {"type": "array", "items": _ADDON},
        "markup_percent": _NUMBER,
        "scope": _TEXT,
        "assumptions": _TEXT_LIST,
        "uncertainties": _TEXT_LIST,
        "version": _INTEGER,
        "client_name": _TEXT,
        "estimate_date": _TEXT,
        "deduction_scheme": _TEXT,
        "deduction_percent": _NUMBER,
    },
}
_CHECKPOINT = {
    "type": "object",
    "required": ["text"],
    "properties": {
        "id": _TEXT,
        "checkpoint_id": _TEXT,
        "text": {"type": "string"},
        "required": _FLAG,
        "result": _TEXT,
        "comment": _TEXT,
    },
}
_INSPECTION = {
    "type": "object",
    "required": ["project_name"],
    "properties": {
        "project_name": {"type": "string"},
        "template_name": _TEXT,
        "template_category": _TEXT,
        "inspection_date": _TEXT,
        "client_name": _TEXT,
        "inspector_name": _TEXT,
        "inspector_company": _TEXT,
        "status": _TEXT,
        "notes": _TEXT,
        "checkpoints": {"type": "array", "items": _CHECKPOINT},
    },
}
_PHASE = {
    "type": "object",
    "required": ["name", "start_unit"],
    "properties": {
        "name": {"type": "string"},
        "start_unit": _INTEGER,
        "duration_units": _INTEGER,
        "color_key": _TEXT,
        "parallel_with": _TEXT,
        "description": _TEXT,
    },
}
_SCHEDULE = {
    "type": "object",
    "required": ["project_name"],
    "properties": {
        "project_name": {"type": "string"},
        "phases": {"type": "array", "items": _PHASE},
        "total_units": _INTEGER,
        "summary": _TEXT,
        "start_date": _TEXT,
    },
}
_DAILY_REPORT = {
    "type": "object",
    "properties": {
        "report_date": _TEXT,
        "headcount": _INTEGER,
        "roles": _TEXT_LIST,
        "hours_per_person": _NUMBER,
        "total_hours": _NUMBER,
        "work_items": _TEXT_LIST,
        "deviations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["description"],
                "properties": {"kind": _TEXT, "type": _TEXT, "description": {"type": "string"}, "hours": _NUMBER},
            },
        },
        "change_orders": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["reason"],
                "properties": {"reason": {"type": "string"}, "consequence": _TEXT, "estimated_hours": _NUMBER},
            },
        },
        "extra_work": _TEXT_LIST,
        "materials_delivered": _TEXT_LIST,
        "materials_missing": _TEXT_LIST,
        "notes": _TEXT,
    },
}
_ACTIVITY_LOG = {
    "type": "object",
    "required": ["project_name"],
    "properties": {
        "project_name": {"type": "string"},
        "report": _DAILY_REPORT,
        "client_name": _TEXT,
        "company_name": _TEXT,
    },
}
_PROJECT_REPORT = {
    "type": "object",
    "required": ["project"],
    "properties": {
        "project": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "client_name": _TEXT,
                "address": _TEXT,
                "postal_code": _TEXT,
                "city": _TEXT,
                "start_date": _TEXT,
                "budget": _NUMBER,
                "status": _TEXT,
            },
        },
        "estimate": {"anyOf": [_ESTIMATE, {"type": "null"}]},
        "change_orders": {"type": "array", "items": _ITEM},
        "schedule": {"anyOf": [_SCHEDULE, {"type": "null"}]},
        "diary": {"type": "array", "items": _DAILY_REPORT},
        "time_entries": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["hours"],
                "properties": {
                    "entry_date": _TEXT,
                    "hours": _NUMBER,
                    "person": _TEXT,
                    "billing_type": _TEXT,
                    "billing_rate": _NUMBER,
                    "description": _TEXT,
                },
            },
        },
        "vendor_invoices": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["supplier_name"],
                "properties": {
                    "supplier_name": {"type": "string"},
                    "total_incl_tax": _NUMBER,
                    "invoice_number": _TEXT,
                    "invoice_date": _TEXT,
                    "status": _TEXT,
                },
            },
        },
    },
}

SCHEMAS: Dict[DocumentKind, dict] = {
    DocumentKind.ESTIMATE: _ESTIMATE,
    DocumentKind.INSPECTION: _INSPECTION,
    DocumentKind.SCHEDULE: _SCHEDULE,
    DocumentKind.ACTIVITY_LOG: _ACTIVITY_LOG,
    DocumentKind.PROJECT_REPORT: _PROJECT_REPORT,
}

_VALIDATORS = {kind: Draft7Validator(schema) for kind, schema in SCHEMAS.items()}


# field parsers


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _texts(value: Any) -> Tuple[str, ...]:
    return tuple(text for text in (_text(entry) for entry in value or ()) if text)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _decimal(value: Any) -> Optional[Decimal]:
    number = to_decimal(value)
    if number is None and value not in (None, ""):
        LOGGER.warning("Ignoring unparseable number %r", value)
    return number


def _int(value: Any, default: Optional[int] = None) -> Optional[int]:
    number = _decimal(value)
    if number is None:
        return default
    return int(number)


def _date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        LOGGER.debug("Ignoring unparseable date %r", value)
        return None


def _token(enum_type: Type[E], value: Any, default: E, aliases: Optional[Mapping[str, str]] = None) -> E:
    if value is None:
        return default
    token = str(value).strip().lower()
    token = (aliases or {}).get(token, token)
    try:
        return enum_type(token)
    except ValueError:
        LOGGER.warning("Unknown %s %r; using %s", enum_type.__name__, value, default.value)
        return default


# record parsers


def parse_item(payload: Mapping[str, Any]) -> LineItem:
    unit = _text(payload.get("unit")) or ""
    unit = UNIT_ALIASES.get(unit.lower(), unit)
    rot = _flag(payload.get("rot_eligible"))
    rut = _flag(payload.get("rut_eligible"))
    if rot and rut:
        LOGGER.warning("Item %r is marked for both ROT and RUT; counting it as ROT", payload.get("description"))
    scheme = "ROT" if rot else "RUT" if rut else _text(payload.get("deduction_scheme"))
    item = LineItem(
        description=_text(payload.get("description")) or "",
        category=_token(Category, payload.get("category"), Category.MATERIAL, CATEGORY_ALIASES),
        unit_price=_decimal(payload.get("unit_price")) or ZERO,
        quantity=_decimal(payload.get("quantity")),
        unit=unit,
        hours=_decimal(payload.get("hours")),
        uncertainty=_token(Uncertainty, payload.get("uncertainty"), Uncertainty.MEDIUM),
        tax_deduction_eligible=rot or rut or _flag(payload.get("tax_deduction_eligible")),
        deduction_scheme=scheme.upper() if scheme else None,
        comment=_text(payload.get("comment")) or "",
        item_id=_text(payload.get("item_id") or payload.get("id")) or "",
    )
    return refresh_subtotal(item)


def _addon(payload: Mapping[str, Any]) -> Addon:
    return Addon(
        name=_text(payload.get("name")) or "",
        price=_decimal(payload.get("price")) or ZERO,
        selected=_flag(payload.get("selected")),
        description=_text(payload.get("description")) or "",
    )


def _estimate(payload: Mapping[str, Any]) -> CostEstimate:
    return CostEstimate(
        project_name=_text(payload.get("project_name")) or "",
        items=tuple(parse_item(item) for item in payload.get("items") or ()),
        addons=tuple(_addon(addon) for addon in payload.get("addons") or ()),
        markup_percent=_decimal(payload.get("markup_percent")) or ZERO,
        scope=_text(payload.get("scope")),
        assumptions=_texts(payload.get("assumptions")),
        uncertainties=_texts(payload.get("uncertainties")),
        version=_int(payload.get("version")),
        client_name=_text(payload.get("client_name")),
        estimate_date=_date(payload.get("estimate_date")),
        deduction_scheme=_text(payload.get("deduction_scheme")),
        deduction_percent=_decimal(payload.get("deduction_percent")),
    )


def parse_checkpoint(payload: Mapping[str, Any]) -> Checkpoint:
    return Checkpoint(
        text=_text(payload.get("text")) or "",
        required=_flag(payload.get("required")),
        result=_token(CheckResult, payload.get("result"), CheckResult.UNSET, RESULT_ALIASES),
        comment=_text(payload.get("comment")) or "",
        checkpoint_id=_text(payload.get("checkpoint_id") or payload.get("id")) or "",
    )


def _inspection(payload: Mapping[str, Any]) -> Inspection:
    return Inspection(
        project_name=_text(payload.get("project_name")) or "",
        template_name=_text(payload.get("template_name")) or "",
        template_category=_text(payload.get("template_category")),
        inspection_date=_date(payload.get("inspection_date")),
        client_name=_text(payload.get("client_name")),
        inspector_name=_text(payload.get("inspector_name")),
        inspector_company=_text(payload.get("inspector_company")),
        status=(_text(payload.get("status")) or "draft").lower(),
        notes=_text(payload.get("notes")),
        checkpoints=tuple(parse_checkpoint(point) for point in payload.get("checkpoints") or ()),
    )


def _phase(payload: Mapping[str, Any]) -> Phase:
    return Phase(
        name=_text(payload.get("name")) or "",
        start_unit=_int(payload.get("start_unit"), 0),
        duration_units=_int(payload.get("duration_units"), 1),
        color_key=(_text(payload.get("color_key")) or "slate").lower(),
        parallel_with=_text(payload.get("parallel_with")),
        description=_text(payload.get("description")),
    )


def _schedule(payload: Mapping[str, Any]) -> Schedule:
    return Schedule(
        project_name=_text(payload.get("project_name")) or "",
        phases=tuple(_phase(phase) for phase in payload.get("phases") or ()),
        total_units=_int(payload.get("total_units"), 0),
        summary=_text(payload.get("summary")),
        start_date=_date(payload.get("start_date")),
    )


def _daily_report(payload: Optional[Mapping[str, Any]]) -> DailyReport:
    payload = payload or {}
    return DailyReport(
        report_date=_date(payload.get("report_date")),
        headcount=_int(payload.get("headcount")),
        roles=_texts(payload.get("roles")),
        hours_per_person=_decimal(payload.get("hours_per_person")),
        total_hours=_decimal(payload.get("total_hours")),
        work_items=_texts(payload.get("work_items")),
        deviations=tuple(
            Deviation(
                kind=(_text(entry.get("kind") or entry.get("type")) or "other").lower(),
                description=_text(entry.get("description")) or "",
                hours=_decimal(entry.get("hours")),
            )
            for entry in payload.get("deviations") or ()
        ),
        change_orders=tuple(
            ChangeOrder(
                reason=_text(entry.get("reason")) or "",
                consequence=_text(entry.get("consequence")) or "",
                estimated_hours=_decimal(entry.get("estimated_hours")),
            )
            for entry in payload.get("change_orders") or ()
        ),
        extra_work=_texts(payload.get("extra_work")),
        materials_delivered=_texts(payload.get("materials_delivered")),
        materials_missing=_texts(payload.get("materials_missing")),
        notes=_text(payload.get("notes")),
    )


def _activity_log(payload: Mapping[str, Any]) -> ActivityLog:
    return ActivityLog(
        project_name=_text(payload.get("project_name")) or "",
        report=_daily_report(payload.get("report")),
        client_name=_text(payload.get("client_name")),
        company_name=_text(payload.get("company_name")),
    )


def _project_report(payload: Mapping[str, Any]) -> ProjectReport:
    project = payload.get("project") or {}
    return ProjectReport(
        project=Project(
            name=_text(project.get("name")) or "",
            client_name=_text(project.get("client_name")),
            address=_text(project.get("address")),
            postal_code=_text(project.get("postal_code")),
            city=_text(project.get("city")),
            start_date=_date(project.get("start_date")),
            budget=_decimal(project.get("budget")),
            status=_text(project.get("status")),
        ),
        estimate=_estimate(payload["estimate"]) if payload.get("estimate") else None,
        change_orders=tuple(parse_item(item) for item in payload.get("change_orders") or ()),
        schedule=_schedule(payload["schedule"]) if payload.get("schedule") else None,
        diary=tuple(_daily_report(day) for day in payload.get("diary") or ()),
        time_entries=tuple(
            TimeEntry(
                entry_date=_date(entry.get("entry_date")),
                hours=_decimal(entry.get("hours")) or ZERO,
                person=_text(entry.get("person")),
                billing_type=_text(entry.get("billing_type")),
                billing_rate=_decimal(entry.get("billing_rate")),
                description=_text(entry.get("description")),
            )
            for entry in payload.get("time_entries") or ()
        ),
        vendor_invoices=tuple(
            VendorInvoice(
                supplier_name=_text(entry.get("supplier_name")) or "",
                total_incl_tax=_decimal(entry.get("total_incl_tax")),
                invoice_number=_text(entry.get("invoice_number")),
                invoice_date=_date(entry.get("invoice_date")),
                status=_text(entry.get("status")) or "new",
            )
            for entry in payload.get("vendor_invoices") or ()
        ),
    )


_PARSERS: Dict[DocumentKind, Callable[[Mapping[str, Any]], DocumentRecord]] = {
    DocumentKind.ESTIMATE: _estimate,
    DocumentKind.INSPECTION: _inspection,
    DocumentKind.SCHEDULE: _schedule,
    DocumentKind.ACTIVITY_LOG: _activity_log,
    DocumentKind.PROJECT_REPORT: _project_report,
}


def parse_kind(kind: object) -> DocumentKind:
    if isinstance(kind, DocumentKind):
        return kind
    token = str(kind or "").strip().lower().replace("-", "_")
    try:
        return DocumentKind(token)
    except ValueError:
        raise DocumentError(f"Unsupported document kind: {kind!r}") from None


def validate_payload(kind: DocumentKind, payload: Mapping[str, Any]) -> None:
    errors = sorted(_VALIDATORS[kind].iter_errors(payload), key=lambda error: [str(part) for part in error.absolute_path])
    if not errors:
        return
    for error in errors:
        LOGGER.debug("Bundle validation: %s at %s", error.message, "/".join(map(str, error.absolute_path)))
    first = errors[0]
    location = "/".join(str(part) for part in first.absolute_path) or "<root>"
    raise BundleError(f"Invalid {kind.value} bundle at {location}: {first.message}")


def load_record(kind: object, payload: Optional[Mapping[str, Any]]) -> DocumentRecord:
    """Validate ``payload`` against the schema for ``kind`` and build the record."""

    document_kind = parse_kind(kind)
    if payload is None:
        raise DocumentError("No record bundle supplied")
    if not isinstance(payload, Mapping):
        raise BundleError(f"A {document_kind.value} bundle must be a JSON object, got {type(payload).__name__}")
    validate_payload(document_kind, payload)
    return _PARSERS[document_kind](payload)


def read_bundle(path: Path) -> dict:
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise BundleError(f"Bundle not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise BundleError(f"{path} is not valid JSON: {exc}") from exc


__all__ = [
    "SCHEMAS",
    "load_record",
    "parse_checkpoint",
    "parse_item",
    "parse_kind",
    "read_bundle",
    "validate_payload",
]
