"""Portfolio-level health summary over evaluated theses."""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import EvaluatedThesis, ThesisStatus


@dataclass(frozen=True)
class ThesisSummary:
    """Counts per status plus the share of healthy theses."""

    total: int = 0
    on_track: int = 0
    achieved: int = 0
    needs_review: int = 0
    breached: int = 0
    adherence: int = 0                               # Healthy share, rounded percent
    review_symbols: list[str] = field(default_factory=list)


def summarize(evaluated: Iterable[EvaluatedThesis]) -> ThesisSummary:
    """
    Summarize a pass.

    Healthy means on-track or achieved. Symbols that are breached or need
    review are listed in pass order.
    """
    counts = {status: 0 for status in ThesisStatus}
    review_symbols = []
    total = 0

    for entry in evaluated:
        total += 1
        counts[entry.status] += 1
        if entry.status in (ThesisStatus.NEEDS_REVIEW, ThesisStatus.BREACHED):
            review_symbols.append(entry.symbol)

    healthy = counts[ThesisStatus.ON_TRACK] + counts[ThesisStatus.ACHIEVED]
    # Round half up rather than Python's banker's rounding
    adherence = math.floor(healthy / total * 100 + 0.5) if total > 0 else 0

    return ThesisSummary(
        total=total,
        on_track=counts[ThesisStatus.ON_TRACK],
        achieved=counts[ThesisStatus.ACHIEVED],
        needs_review=counts[ThesisStatus.NEEDS_REVIEW],
        breached=counts[ThesisStatus.BREACHED],
        adherence=adherence,
        review_symbols=review_symbols,
    )
