from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from costreport.assembler import assemble, derive_filename, layout_document, slugify
from costreport.builders import compose
from costreport.errors import DocumentError
from costreport.models import (
    ActivityLog,
    CheckResult,
    Checkpoint,
    CostEstimate,
    DailyReport,
    Deviation,
    Inspection,
    Phase,
    Project,
    ProjectReport,
    Schedule,
    TimeEntry,
    VendorInvoice,
)
from costreport.sections import TIMELINE_UNAVAILABLE

NBSP = "\u00a0"
EMPTY_RECORDS = [
    CostEstimate(project_name=""),
    Inspection(project_name=""),
    Schedule(project_name=""),
    ActivityLog(project_name=""),
    ProjectReport(project=Project(name="")),
]


@pytest.mark.parametrize("record", EMPTY_RECORDS, ids=lambda record: record.kind.value)
def test_empty_record_renders_single_page_with_placeholders(record, engine_config, now, pdf_text):
    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    assert len(cursor.pages) == 1
    assert "—" in cursor.pages[0].texts()

    artifact = assemble(record, engine_config, now)
    assert artifact.page_count == 1
    assert artifact.content.startswith(b"%PDF")
    (text,) = pdf_text(artifact.content)
    assert "Sida 1 av 1" in text


def test_estimate_scenario_shows_rounded_total(scenario_estimate, engine_config, now):
    cursor, _ = layout_document(compose(scenario_estimate, engine_config, now), engine_config)
    texts = cursor.pages[0].texts()
    assert f"12{NBSP}938 kr" in texts
    assert f"9{NBSP}000 kr" in texts
    assert "Påslag (15%)" in texts
    assert "Moms (25%)" in texts


def test_estimate_filename_and_metadata(scenario_estimate, engine_config, now):
    artifact = assemble(scenario_estimate, engine_config, now)
    assert artifact.filename == "nytt_kök_gävle_2025-03-05_offert.pdf"
    assert artifact.kind.value == "estimate"
    assert artifact.warnings == ()


def test_every_page_gets_a_footer(long_estimate, engine_config, now, pdf_text):
    artifact = assemble(long_estimate, engine_config, now)
    assert artifact.page_count >= 3
    pages = pdf_text(artifact.content)
    assert len(pages) == artifact.page_count
    for number, text in enumerate(pages, start=1):
        assert f"Sida {number} av {artifact.page_count}" in text
        assert "Genererad 2025-03-05 14:30" in text


def test_item_table_header_repeats_on_continuation_pages(long_estimate, engine_config, now):
    cursor, _ = layout_document(compose(long_estimate, engine_config, now), engine_config)
    item_pages = [page for page in cursor.pages if "Delkostnad" in page.texts("table-header-text")]
    assert len(item_pages) >= 2


def test_deduction_lines_are_shown(long_estimate, engine_config, now):
    cursor, _ = layout_document(compose(long_estimate, engine_config, now), engine_config)
    texts = [text for page in cursor.pages for text in page.texts()]
    assert any(text.startswith("ROT-avdrag (30% inkl. moms)") for text in texts)
    assert "Att betala efter avdrag" in texts


def test_output_is_deterministic(scenario_estimate, engine_config, now):
    first = assemble(scenario_estimate, engine_config, now)
    second = assemble(scenario_estimate, engine_config, now)
    assert first.content == second.content
    assert first.filename == second.filename


def test_source_record_is_untouched(scenario_estimate, engine_config, now):
    before = repr(scenario_estimate)
    assemble(scenario_estimate, engine_config, now)
    assert repr(scenario_estimate) == before


def test_schedule_is_landscape_with_timeline(schedule_record, engine_config, now):
    cursor, ctx = layout_document(compose(schedule_record, engine_config, now), engine_config)
    assert cursor.pages[0].width > cursor.pages[0].height
    bars = [op for page in cursor.pages for op in page.tagged("timeline-bar")]
    assert len(bars) == 4
    assert ctx.warnings == []


def test_schedule_drops_invalid_phases_with_warning(engine_config, now):
    record = Schedule(
        project_name="Altan",
        phases=(Phase("Grund", 1, 1), Phase("Trasig", 0, 1), Phase("Virke", 2, 1)),
        total_units=3,
    )
    artifact = assemble(record, engine_config, now)
    assert len(artifact.warnings) == 1
    assert "Trasig" in artifact.warnings[0]

    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    names = [text for page in cursor.pages for text in page.texts("timeline-name")]
    assert names == ["Grund", "Virke"]


def test_schedule_with_invalid_span_gets_a_note(engine_config, now):
    record = Schedule(project_name="Altan", phases=(Phase("Grund", 1, 1),), total_units=0)
    artifact = assemble(record, engine_config, now)
    assert artifact.warnings
    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    texts = [text for page in cursor.pages for text in page.texts()]
    assert TIMELINE_UNAVAILABLE in texts
    assert not any(page.tagged("timeline-bar") for page in cursor.pages)


def test_inspection_marks_required_points_and_deviations(engine_config, now):
    record = Inspection(
        project_name="Villa Ek",
        template_name="Våtrum",
        inspection_date=date(2025, 3, 4),
        checkpoints=(
            Checkpoint("Tätskikt kontrollerat", required=True, result=CheckResult.OK),
            Checkpoint("Golvbrunn", result=CheckResult.DEVIATION, comment="Fel fall mot brunn"),
            Checkpoint("Ventilation"),
        ),
    )
    artifact = assemble(record, engine_config, now)
    assert artifact.filename == "villa_ek_våtrum_2025-03-04_egenkontroll.pdf"

    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    texts = [text for page in cursor.pages for text in page.texts()]
    assert "Tätskikt kontrollerat *" in texts
    assert "2 av 3" in texts
    assert "AVVIKELSER - DETALJER" in texts
    assert "* = Obligatorisk kontrollpunkt" in texts


def test_activity_log_lists_deviations(engine_config, now):
    record = ActivityLog(
        project_name="Villa Ek",
        report=DailyReport(
            report_date=date(2025, 3, 5),
            headcount=3,
            hours_per_person=Decimal("8"),
            work_items=("Rivning av kakel",),
            deviations=(Deviation("waiting_time", "Väntade på leverans", Decimal("2")),),
            materials_missing=("Fogmassa",),
        ),
    )
    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    texts = [text for page in cursor.pages for text in page.texts()]
    assert "onsdag 5 mars 2025" in " ".join(texts)
    assert "24h" in texts
    assert "Väntetid" in texts
    assert "Saknas" in texts


def test_project_report_includes_economy_and_timeline(scenario_estimate, schedule_record, engine_config, now):
    record = ProjectReport(
        project=Project(name="Nytt kök", client_name="Anna Svensson", budget=Decimal("20000")),
        estimate=scenario_estimate,
        schedule=schedule_record,
        time_entries=(
            TimeEntry(date(2025, 3, 3), Decimal("8"), person="Erik", billing_rate=Decimal("500")),
            TimeEntry(date(2025, 3, 4), Decimal("6"), person="Sara"),
        ),
        vendor_invoices=(VendorInvoice("Bygghandeln", Decimal("3750")),),
    )
    artifact = assemble(record, engine_config, now)
    assert artifact.filename == "nytt_kök_2025-03-05_projektrapport.pdf"
    assert artifact.page_count >= 2

    cursor, _ = layout_document(compose(record, engine_config, now), engine_config)
    texts = [text for page in cursor.pages for text in page.texts()]
    assert f"12{NBSP}938 kr" in texts
    assert f"7{NBSP}750 kr" in texts
    assert "TIMMAR PER PERSON" in texts
    assert any(page.tagged("timeline-bar") for page in cursor.pages)


def test_derive_filename_is_idempotent():
    first = derive_filename("Nytt kök, Gävle", date(2025, 3, 5), "offert")
    assert first == derive_filename("Nytt kök, Gävle", date(2025, 3, 5), "offert")
    assert first == "nytt_kök_gävle_2025-03-05_offert.pdf"


@pytest.mark.parametrize(
    "subject, expected",
    [
        ("__Åre  Bygg!!", "åre_bygg"),
        ("Brf Öster 12/3", "brf_öster_12_3"),
        ("", ""),
        (None, ""),
    ],
)
def test_slugify(subject, expected):
    assert slugify(subject) == expected


def test_filename_without_subject_keeps_date_and_suffix():
    assert derive_filename("", date(2025, 1, 2), "planering") == "2025-01-02_planering.pdf"


def test_missing_record_raises():
    with pytest.raises(DocumentError):
        assemble(None)


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        assemble({"kind": "estimate"})


def test_overlong_cover_subject_is_clipped_to_the_page(engine_config, now):
    record = CostEstimate(project_name="Långt projektnamn " * 200, estimate_date=date(2025, 3, 5))
    cursor, ctx = layout_document(compose(record, engine_config, now), engine_config)

    cover = cursor.pages[0]
    subject = cover.tagged("cover-subject")
    assert subject
    assert all(op.y <= cursor.limit for op in cover.ops if hasattr(op, "text"))
    assert subject[-1].text.endswith("...")
    assert cursor.overflows >= 1
    assert any(warning.startswith("Cover subject clipped") for warning in ctx.warnings)
