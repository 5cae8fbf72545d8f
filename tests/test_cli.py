from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

from costreport import cli
from costreport.config import load_cli_config, load_config


@pytest.fixture
def bundle_path(tmp_path: Path) -> Path:
    path = tmp_path / "offert.json"
    path.write_text(
        json.dumps(
            {
                "project_name": "Nytt kök",
                "estimate_date": "2025-03-05",
                "markup_percent": 15,
                "items": [
                    {"description": "Snickare", "category": "labor", "hours": 40, "unit_price": 150},
                    {"description": "Material", "category": "material", "quantity": 10, "unit_price": 300},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("COSTREPORT_TAX_PERCENT", "COSTREPORT_POST_TAX_ADDONS", "COSTREPORT_MIN_BAR_WIDTH"):
        monkeypatch.delenv(name, raising=False)


def test_main_writes_pdf(bundle_path, tmp_path):
    out_dir = tmp_path / "ut"
    rc = cli.main(["estimate", str(bundle_path), "--output-dir", str(out_dir)])
    assert rc == 0
    target = out_dir / "nytt_kök_2025-03-05_offert.pdf"
    assert target.exists()
    assert target.read_bytes().startswith(b"%PDF")


def test_dry_run_writes_nothing(bundle_path, tmp_path):
    out_dir = tmp_path / "ut"
    rc = cli.main(["estimate", str(bundle_path), "--output-dir", str(out_dir), "--dry-run"])
    assert rc == 0
    assert not out_dir.exists()


def test_invalid_bundle_exits_with_2(tmp_path):
    bad = tmp_path / "trasig.json"
    bad.write_text(json.dumps({"items": "inte en lista"}), encoding="utf-8")
    assert cli.main(["estimate", str(bad), "--dry-run"]) == 2
    assert cli.main(["estimate", str(tmp_path / "saknas.json"), "--dry-run"]) == 2


def test_unknown_kind_is_rejected_by_parser(bundle_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["faktura", str(bundle_path)])
    assert excinfo.value.code == 2


def test_run_logs_summary(bundle_path, tmp_path, caplog):
    args = SimpleNamespace(kind="estimate", bundle=str(bundle_path), output_dir=str(tmp_path), dry_run=True, verbose=False)
    with caplog.at_level("INFO"):
        rc = cli.run(load_cli_config(args), load_config({}, args))
    assert rc == 0
    assert "Top cost drivers" in caplog.text
    assert "Dry run" in caplog.text


def test_tax_override_reaches_the_document(bundle_path, tmp_path, monkeypatch):
    seen = {}
    original = cli.assemble

    def _capture(record, config=None, now=None):
        seen["tax"] = config.tax_percent
        return original(record, config=config, now=now)

    monkeypatch.setattr(cli, "assemble", _capture)
    monkeypatch.setenv("COSTREPORT_TAX_PERCENT", "12")
    assert cli.main(["estimate", str(bundle_path), "--dry-run"]) == 0
    assert seen["tax"] == Decimal("12")

    assert cli.main(["estimate", str(bundle_path), "--dry-run", "--tax-percent", "6"]) == 0
    assert seen["tax"] == Decimal("6")


def test_proposals_file_is_applied(bundle_path, tmp_path, caplog):
    proposals = tmp_path / "forslag.json"
    proposals.write_text(
        json.dumps({"items": [{"description": "Snickare", "category": "labor", "hours": 50, "unit_price": 150}]}),
        encoding="utf-8",
    )
    with caplog.at_level("INFO"):
        rc = cli.main(["estimate", str(bundle_path), "--proposals", str(proposals), "--dry-run"])
    assert rc == 0
    assert "Applying proposals" in caplog.text
    assert "0 added, 1 removed, 1 changed" in caplog.text


def test_proposals_must_be_an_object(bundle_path, tmp_path):
    proposals = tmp_path / "forslag.json"
    proposals.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert cli.main(["estimate", str(bundle_path), "--proposals", str(proposals), "--dry-run"]) == 2
