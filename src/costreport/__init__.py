"""Cost computation and paginated PDF report composition for construction projects."""

from .api import generate_document
from .assembler import Artifact, assemble, derive_filename
from .bundles import load_record
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig, load_config
from .deltas import apply_proposals
from .errors import BundleError, DocumentError, InvalidRange, ReportError
from .models import DocumentKind
from .pricing import compute_subtotal, price_estimate

__all__ = [
    "Artifact",
    "BundleError",
    "DEFAULT_ENGINE_CONFIG",
    "DocumentError",
    "DocumentKind",
    "EngineConfig",
    "InvalidRange",
    "ReportError",
    "apply_proposals",
    "assemble",
    "compute_subtotal",
    "derive_filename",
    "generate_document",
    "load_config",
    "load_record",
    "price_estimate",
]
