"""
Data models for thesis status derivation.

This module defines the tracked thesis record, ephemeral price observations
and the evaluation results produced on each pass.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

ItemId = Union[int, str]


class ThesisStatus(str, Enum):
    """Derived lifecycle status of a thesis."""
    ON_TRACK = "on-track"
    ACHIEVED = "achieved"
    BREACHED = "breached"
    NEEDS_REVIEW = "needs-review"

    @classmethod
    def parse(cls, value: Any) -> Optional["ThesisStatus"]:
        """Parse a stored status value, returning None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class PriceSource(str, Enum):
    """Where a current price came from."""
    LIVE = "live"
    FALLBACK = "fallback"


@dataclass
class TrackedItem:
    """
    One investment thesis.

    `status` and `last_known_remote_status` belong to the engine; every
    other field belongs to the user-facing editor.
    """

    symbol: str
    id: Optional[ItemId] = None
    entry: Optional[float] = None
    target: Optional[float] = None
    stop: Optional[float] = None
    status: Optional[ThesisStatus] = None
    last_known_remote_status: Optional[ThesisStatus] = None

    # Editor-owned passthrough fields
    name: Optional[str] = None
    thesis: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None


@dataclass(frozen=True)
class PriceObservation:
    """A current price as seen by one evaluation pass. Never persisted."""

    symbol: str
    price: float
    source: PriceSource
    as_of: datetime


@dataclass(frozen=True)
class Evaluation:
    """Result of evaluating one thesis against a current price."""

    status: ThesisStatus
    progress_pct: Optional[float] = None             # Raw, may be negative or above 100
    progress_bar_pct: Optional[float] = None         # Clamped to [0, 100] for display
    rule: Optional[str] = None                       # Name of the rule that fired
    degraded: bool = False                           # Fell back because of bad input


@dataclass(frozen=True)
class EvaluatedThesis:
    """Per-item output of a coordinator pass."""

    item: TrackedItem
    evaluation: Evaluation
    observation: Optional[PriceObservation] = None
    fetching: bool = False                           # Fallback lookup still pending
    price_unavailable: bool = False                  # Fallback lookup failed this session

    @property
    def symbol(self) -> str:
        return self.item.symbol

    @property
    def status(self) -> ThesisStatus:
        return self.evaluation.status

    @property
    def current_price(self) -> Optional[float]:
        return self.observation.price if self.observation else None
