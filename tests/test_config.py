from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

from costreport.config import DEFAULT_ENGINE_CONFIG, PageGeometry, load_cli_config, load_config


def test_defaults_without_env():
    config = load_config({})
    assert config == DEFAULT_ENGINE_CONFIG
    assert config.tax_percent == Decimal("25")
    assert config.page.width == 210.0
    assert not config.addons_post_tax("estimate")


def test_env_values_are_parsed():
    config = load_config(
        {
            "COSTREPORT_TAX_PERCENT": "12,5 %",
            "COSTREPORT_POST_TAX_ADDONS": "Estimate, project_report",
            "COSTREPORT_MIN_BAR_WIDTH": "2",
            "COSTREPORT_CURRENCY_SUFFIX": " SEK ",
            "COSTREPORT_LANDSCAPE_SCHEDULES": "no",
        }
    )
    assert config.tax_percent == Decimal("12.5")
    assert config.addons_post_tax("estimate")
    assert config.addons_post_tax("project_report")
    assert not config.addons_post_tax("inspection")
    assert config.min_bar_width == 2.0
    assert config.locale.currency_suffix == "SEK"
    assert config.landscape_schedules is False


def test_bad_env_values_fall_back():
    config = load_config({"COSTREPORT_TAX_PERCENT": "moms", "COSTREPORT_MIN_BAR_WIDTH": "-3"})
    assert config.tax_percent == Decimal("25")
    assert config.min_bar_width == DEFAULT_ENGINE_CONFIG.min_bar_width
    config = load_config({"COSTREPORT_MIN_BAR_WIDTH": "bred"})
    assert config.min_bar_width == DEFAULT_ENGINE_CONFIG.min_bar_width


def test_cli_args_override_env():
    args = SimpleNamespace(tax_percent="6", post_tax_addons="schedule")
    config = load_config({"COSTREPORT_TAX_PERCENT": "12", "COSTREPORT_POST_TAX_ADDONS": "estimate"}, args)
    assert config.tax_percent == Decimal("6")
    assert config.post_tax_addon_kinds == frozenset({"schedule"})


def test_deduction_scheme_lookup():
    config = load_config({})
    assert config.deduction_scheme("rot").percent == Decimal("30")
    assert config.deduction_scheme("RUT").cap == Decimal("75000")
    assert config.deduction_scheme("grön") is None
    assert config.deduction_scheme(None) is None


def test_landscape_geometry():
    page = PageGeometry()
    wide = page.landscape()
    assert (wide.width, wide.height) == (297.0, 210.0)
    assert wide.is_landscape
    assert wide.landscape() is wide
    assert wide.content_width == 297.0 - 30.0


def test_cli_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = SimpleNamespace(kind=" Estimate ", bundle="offert.json", output_dir=None, dry_run=True, verbose=True)
    cli_config = load_cli_config(args)
    assert cli_config.kind == "estimate"
    assert cli_config.bundle_path == (tmp_path / "offert.json").resolve()
    assert cli_config.output_dir == Path.cwd().resolve()
    assert cli_config.dry_run is True
    assert cli_config.log_level == "DEBUG"

    quiet = load_cli_config(SimpleNamespace(kind="schedule", bundle="x.json", verbose=False))
    assert quiet.log_level == "INFO"
    assert quiet.dry_run is False
