from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ReportError(Exception):
    """Base class for errors raised by the report engine."""


class DocumentError(ReportError, ValueError):
    """Raised when a generation request is structurally unusable."""


class BundleError(DocumentError):
    """Raised when a record bundle fails validation."""


@dataclass(frozen=True)
class InvalidRange:
    """A timeline precondition that failed.

    Returned as a value by the timeline functions; the caller decides whether
    to drop the offending phase or give up on the timeline.
    """

    reason: str
    phase_index: Optional[int] = None
    phase_name: Optional[str] = None

    def __str__(self) -> str:
        if self.phase_index is None:
            return self.reason
        label = self.phase_name or f"#{self.phase_index + 1}"
        return f"phase {label} (index {self.phase_index}): {self.reason}"


__all__ = ["BundleError", "DocumentError", "InvalidRange", "ReportError"]
