"""
Result type for best-effort generative enrichment.

Generative extraction and ingredient reorganization are optional tiers: when
they fail, callers fall back to whatever the deterministic path produced.
EnrichmentResult makes the outcome explicit so callers (and logs) can tell
"enrichment skipped" apart from "enrichment attempted and failed".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class EnrichmentStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class EnrichmentResult(Generic[T]):
    """Outcome of one enrichment attempt."""

    status: EnrichmentStatus
    data: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def applied(cls, data: T) -> "EnrichmentResult[T]":
        return cls(status=EnrichmentStatus.APPLIED, data=data)

    @classmethod
    def skipped(cls, reason: str) -> "EnrichmentResult[T]":
        return cls(status=EnrichmentStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "EnrichmentResult[T]":
        return cls(status=EnrichmentStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == EnrichmentStatus.APPLIED
