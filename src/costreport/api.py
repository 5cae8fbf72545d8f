from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from .assembler import Artifact, assemble
from .bundles import load_record
from .config import EngineConfig
from .deltas import apply_proposals


def generate_document(
    kind: object,
    payload: Optional[Mapping[str, Any]],
    *,
    config: Optional[EngineConfig] = None,
    now: Optional[datetime] = None,
    proposals: Optional[Mapping[str, Any]] = None,
    min_confidence: float = 0.0,
) -> Artifact:
    """Programmatic interface: validate a bundle and return the rendered artifact.

    ``proposals`` (``checkpoints`` and/or ``items``) are merged into the
    record before rendering; see ``apply_proposals``.

    Raises ``DocumentError`` (or its ``BundleError`` subclass) when the kind
    is unknown or the payload does not match the kind's schema.
    """

    record = load_record(kind, payload)
    record = apply_proposals(record, proposals, min_confidence=min_confidence)
    return assemble(record, config=config, now=now)


__all__ = ["generate_document"]
