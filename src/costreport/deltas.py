"""Apply state deltas proposed by the transcript-interpretation service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .bundles import RESULT_ALIASES, parse_item
from .models import Checkpoint, CheckResult, CostEstimate, DocumentRecord, Inspection, LineItem, ProjectReport
from .pricing import compute_subtotal, to_decimal

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckpointProposal:
    checkpoint_id: str
    result: Optional[CheckResult]
    comment: str = ""
    confidence: float = 0.0


def parse_checkpoint_proposal(payload: Mapping[str, Any]) -> CheckpointProposal:
    raw = payload.get("result")
    result: Optional[CheckResult] = None
    if raw is not None:
        token = str(raw).strip().lower()
        token = RESULT_ALIASES.get(token, token)
        try:
            result = CheckResult(token)
        except ValueError:
            LOGGER.warning("Ignoring unknown proposed result %r", raw)
    if result is CheckResult.UNSET:
        result = None
    confidence = to_decimal(payload.get("confidence"))
    return CheckpointProposal(
        checkpoint_id=str(payload.get("id") or payload.get("checkpoint_id") or "").strip(),
        result=result,
        comment=str(payload.get("comment") or "").strip(),
        confidence=float(confidence) if confidence is not None else 0.0,
    )


def apply_checkpoint_proposals(
    checkpoints: Sequence[Checkpoint],
    proposals: Iterable[Any],
    min_confidence: float = 0.0,
) -> Tuple[Tuple[Checkpoint, ...], int]:
    """Fill unset checkpoints from proposals matched by id.

    A checkpoint that already has a result is left alone, as is any proposal
    without a result or below ``min_confidence``. Returns the new
    checkpoints and how many were filled.
    """

    by_id: Dict[str, CheckpointProposal] = {}
    for proposal in proposals:
        if not isinstance(proposal, CheckpointProposal):
            proposal = parse_checkpoint_proposal(proposal)
        if proposal.checkpoint_id:
            by_id[proposal.checkpoint_id] = proposal

    updated: List[Checkpoint] = []
    filled = 0
    for checkpoint in checkpoints:
        proposal = by_id.get(checkpoint.checkpoint_id) if checkpoint.checkpoint_id else None
        if proposal is None or proposal.result is None:
            updated.append(checkpoint)
            continue
        if checkpoint.is_set:
            LOGGER.debug("Checkpoint %s already set; ignoring proposal", checkpoint.checkpoint_id)
            updated.append(checkpoint)
            continue
        if proposal.confidence < min_confidence:
            LOGGER.info(
                "Skipping proposal for %s: confidence %.2f below %.2f",
                checkpoint.checkpoint_id,
                proposal.confidence,
                min_confidence,
            )
            updated.append(checkpoint)
            continue
        updated.append(replace(checkpoint, result=proposal.result, comment=proposal.comment or checkpoint.comment))
        filled += 1
    LOGGER.info("Filled %d of %d checkpoints from proposals", filled, len(checkpoints))
    return tuple(updated), filled


def apply_item_proposals(proposed: Iterable[Mapping[str, Any]]) -> Tuple[LineItem, ...]:
    """Parse proposed items; subtotals are recomputed, never taken as given."""

    items = []
    for payload in proposed:
        item = parse_item(payload)
        claimed = to_decimal(payload.get("subtotal"))
        if claimed is not None and claimed != item.subtotal:
            LOGGER.warning(
                "Proposed subtotal %s for %r does not match computed %s; using computed",
                claimed,
                item.description,
                item.subtotal,
            )
        items.append(item)
    return tuple(items)


@dataclass(frozen=True)
class ItemDiff:
    added: Tuple[LineItem, ...] = ()
    removed: Tuple[LineItem, ...] = ()
    changed: Tuple[Tuple[LineItem, LineItem], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def describe(self) -> str:
        return f"{len(self.added)} added, {len(self.removed)} removed, {len(self.changed)} changed"


def _key(item: LineItem) -> str:
    return item.item_id or item.description.strip().lower()


def _comparable(item: LineItem) -> tuple:
    return (
        item.description,
        item.category,
        item.quantity,
        item.unit,
        item.hours,
        item.unit_price,
        item.uncertainty,
        item.tax_deduction_eligible,
        item.deduction_scheme,
        compute_subtotal(item),
    )


def diff_items(before: Sequence[LineItem], after: Sequence[LineItem]) -> ItemDiff:
    """Compare two item lists by id (or description when ids are missing)."""

    old = {_key(item): item for item in before}
    new = {_key(item): item for item in after}
    added = tuple(item for key, item in new.items() if key not in old)
    removed = tuple(item for key, item in old.items() if key not in new)
    changed = tuple(
        (old[key], item) for key, item in new.items() if key in old and _comparable(old[key]) != _comparable(item)
    )
    diff = ItemDiff(added, removed, changed)
    LOGGER.debug("Item diff: %s", diff.describe())
    return diff


def apply_proposals(
    record: DocumentRecord,
    proposals: Optional[Mapping[str, Any]],
    *,
    min_confidence: float = 0.0,
) -> DocumentRecord:
    """Merge interpreted proposals into a record before it is rendered.

    ``checkpoints`` fill an inspection's unset checkpoints; ``items``
    replace the line items of an estimate, or of a project report's
    estimate. Keys that do not apply to the record are ignored.
    """

    if not proposals:
        return record
    if isinstance(record, Inspection) and proposals.get("checkpoints"):
        checkpoints, _ = apply_checkpoint_proposals(record.checkpoints, proposals["checkpoints"], min_confidence)
        return replace(record, checkpoints=checkpoints)
    if isinstance(record, CostEstimate) and proposals.get("items"):
        items = apply_item_proposals(proposals["items"])
        LOGGER.info("Proposed items for %s: %s", record.project_name, diff_items(record.items, items).describe())
        return replace(record, items=items)
    if isinstance(record, ProjectReport) and record.estimate is not None and proposals.get("items"):
        return replace(record, estimate=apply_proposals(record.estimate, proposals, min_confidence=min_confidence))
    LOGGER.warning("No proposals apply to %s; left unchanged", type(record).__name__)
    return record


__all__ = [
    "CheckpointProposal",
    "ItemDiff",
    "apply_checkpoint_proposals",
    "apply_item_proposals",
    "apply_proposals",
    "diff_items",
    "parse_checkpoint_proposal",
]
