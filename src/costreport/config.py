from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType, SimpleNamespace
from typing import FrozenSet, Mapping, Optional, Tuple

RGB = Tuple[int, int, int]

_BOOLEAN_TRUE = {"1", "true", "yes", "on"}

# key -> (border, light fill)
PHASE_PALETTE: Mapping[str, Tuple[RGB, RGB]] = MappingProxyType(
    {
        "slate": ((100, 116, 139), (203, 213, 225)),
        "blue": ((59, 130, 246), (147, 197, 253)),
        "emerald": ((16, 185, 129), (110, 231, 183)),
        "amber": ((245, 158, 11), (252, 211, 77)),
        "purple": ((139, 92, 246), (196, 181, 253)),
        "rose": ((244, 63, 94), (253, 164, 175)),
        "cyan": ((6, 182, 212), (103, 232, 249)),
        "orange": ((249, 115, 22), (253, 186, 116)),
    }
)
DEFAULT_PHASE_COLOR = "slate"

SWEDISH_MONTHS = (
    "januari",
    "februari",
    "mars",
    "april",
    "maj",
    "juni",
    "juli",
    "augusti",
    "september",
    "oktober",
    "november",
    "december",
)
SWEDISH_WEEKDAYS = ("måndag", "tisdag", "onsdag", "torsdag", "fredag", "lördag", "söndag")


@dataclass(frozen=True)
class DeductionScheme:
    """Labor-only tax credit (ROT/RUT style)."""

    name: str
    percent: Decimal
    cap: Optional[Decimal] = None


DEFAULT_DEDUCTION_SCHEMES: Mapping[str, DeductionScheme] = MappingProxyType(
    {
        "ROT": DeductionScheme("ROT", Decimal("30"), Decimal("50000")),
        "RUT": DeductionScheme("RUT", Decimal("50"), Decimal("75000")),
    }
)

# ROT and RUT together, per person and year
DEFAULT_COMBINED_DEDUCTION_CAP = Decimal("75000")


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in millimetres, y measured from the top edge."""

    width: float = 210.0
    height: float = 297.0
    margin_top: float = 20.0
    margin_bottom: float = 20.0
    margin_left: float = 15.0
    margin_right: float = 15.0
    footer_offset: float = 10.0

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def content_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

    def landscape(self) -> "PageGeometry":
        if self.is_landscape:
            return self
        return replace(self, width=self.height, height=self.width)


@dataclass(frozen=True)
class LocaleConfig:
    month_names: Tuple[str, ...] = SWEDISH_MONTHS
    weekday_names: Tuple[str, ...] = SWEDISH_WEEKDAYS
    thousands_separator: str = "\u00a0"
    decimal_separator: str = ","
    currency_suffix: str = "kr"
    placeholder: str = "—"
    iso_date_format: str = "%Y-%m-%d"
    timestamp_format: str = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class Theme:
    primary: RGB = (13, 148, 136)
    dark: RGB = (30, 41, 59)
    muted: RGB = (100, 116, 139)
    white: RGB = (255, 255, 255)
    green: RGB = (22, 163, 74)
    red: RGB = (220, 38, 38)
    blue: RGB = (59, 130, 246)
    amber: RGB = (200, 100, 50)
    grid: RGB = (226, 232, 240)
    subgrid: RGB = (241, 245, 249)
    stripe: RGB = (245, 245, 245)
    panel: RGB = (240, 253, 250)
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    italic_font: str = "Helvetica-Oblique"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable rendering and pricing configuration passed into every call."""

    page: PageGeometry = field(default_factory=PageGeometry)
    locale: LocaleConfig = field(default_factory=LocaleConfig)
    theme: Theme = field(default_factory=Theme)
    phase_palette: Mapping[str, Tuple[RGB, RGB]] = field(default_factory=lambda: PHASE_PALETTE)
    default_phase_color: str = DEFAULT_PHASE_COLOR
    tax_percent: Decimal = Decimal("25")
    deduction_schemes: Mapping[str, DeductionScheme] = field(default_factory=lambda: DEFAULT_DEDUCTION_SCHEMES)
    combined_deduction_cap: Optional[Decimal] = DEFAULT_COMBINED_DEDUCTION_CAP
    post_tax_addon_kinds: FrozenSet[str] = frozenset()
    min_bar_width: float = 1.5
    landscape_schedules: bool = True

    def addons_post_tax(self, kind: object) -> bool:
        key = getattr(kind, "value", kind)
        return str(key) in self.post_tax_addon_kinds

    def deduction_scheme(self, name: Optional[str]) -> Optional[DeductionScheme]:
        if not name:
            return None
        return self.deduction_schemes.get(str(name).strip().upper())


DEFAULT_ENGINE_CONFIG = EngineConfig()


def _to_decimal_setting(value: object | None) -> Optional[Decimal]:
    if value is None:
        return None
    text = str(value).replace("%", "").replace(",", ".").strip()
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _kinds(value: object | None) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip().lower() for part in str(value).split(",") if part.strip())


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> EngineConfig:
    """Build an :class:`EngineConfig` from environment variables and CLI options."""

    defaults = DEFAULT_ENGINE_CONFIG
    tax_percent = _to_decimal_setting(env.get("COSTREPORT_TAX_PERCENT"))
    if tax_percent is None:
        tax_percent = defaults.tax_percent
    post_tax_kinds = _kinds(env.get("COSTREPORT_POST_TAX_ADDONS"))
    min_bar_width = _to_float(env.get("COSTREPORT_MIN_BAR_WIDTH"))
    if min_bar_width is None or min_bar_width < 0:
        min_bar_width = defaults.min_bar_width
    locale = defaults.locale
    suffix = env.get("COSTREPORT_CURRENCY_SUFFIX")
    if suffix is not None and suffix.strip():
        locale = replace(locale, currency_suffix=suffix.strip())
    landscape_schedules = defaults.landscape_schedules
    if env.get("COSTREPORT_LANDSCAPE_SCHEDULES") is not None:
        landscape_schedules = _flag(env.get("COSTREPORT_LANDSCAPE_SCHEDULES"))

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "tax_percent", None) is not None:
        override = _to_decimal_setting(cli_ns.tax_percent)
        if override is not None:
            tax_percent = override
    if getattr(cli_ns, "post_tax_addons", None):
        post_tax_kinds = _kinds(cli_ns.post_tax_addons)

    return replace(
        defaults,
        locale=locale,
        tax_percent=tax_percent,
        post_tax_addon_kinds=post_tax_kinds,
        min_bar_width=min_bar_width,
        landscape_schedules=landscape_schedules,
    )


@dataclass(frozen=True)
class CLIConfig:
    """Settings for a single command-line generation run."""

    kind: str
    bundle_path: Path
    output_dir: Path
    dry_run: bool = False
    log_level: str = "INFO"
    proposals_path: Optional[Path] = None
    min_confidence: float = 0.0


def _to_cli_path(value: object) -> Path:
    if isinstance(value, Path):
        return value.expanduser().resolve()
    return Path(str(value)).expanduser().resolve()


def load_cli_config(args: object) -> CLIConfig:
    """Build a CLIConfig from an argparse namespace or a SimpleNamespace."""

    ns = _namespace(args)
    output_dir = getattr(ns, "output_dir", None) or Path.cwd()
    log_level = "DEBUG" if getattr(ns, "verbose", False) else str(getattr(ns, "log_level", "INFO") or "INFO")
    proposals = getattr(ns, "proposals", None)
    min_confidence = _to_float(getattr(ns, "min_confidence", None))
    return CLIConfig(
        kind=str(getattr(ns, "kind")).strip().lower(),
        bundle_path=_to_cli_path(getattr(ns, "bundle")),
        output_dir=_to_cli_path(output_dir),
        dry_run=bool(getattr(ns, "dry_run", False)),
        log_level=log_level.upper(),
        proposals_path=_to_cli_path(proposals) if proposals else None,
        min_confidence=min_confidence if min_confidence is not None else 0.0,
    )


__all__ = [
    "CLIConfig",
    "DEFAULT_COMBINED_DEDUCTION_CAP",
    "DEFAULT_DEDUCTION_SCHEMES",
    "DEFAULT_ENGINE_CONFIG",
    "DEFAULT_PHASE_COLOR",
    "DeductionScheme",
    "EngineConfig",
    "LocaleConfig",
    "PHASE_PALETTE",
    "PageGeometry",
    "Theme",
    "load_cli_config",
    "load_config",
]
