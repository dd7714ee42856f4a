"""
Core thesis status derivation.

Maps a thesis's entry, target and stop levels plus a current price to a
lifecycle status and progress percentage. The decision order is an ordered
tuple of rules; the first rule whose predicate holds decides the status.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional

from ..config.defaults import ReviewParams
from ..errors import MalformedThresholdError
from ..logging.config import get_status_logger
from .models import Evaluation, ThesisStatus, TrackedItem

status_logger = get_status_logger(__name__)

DEFAULT_REVIEW_PARAMS = ReviewParams()


@dataclass(frozen=True)
class Levels:
    """Resolved numeric inputs for one evaluation."""

    entry: float
    target: float
    stop: float
    current: float
    progress_pct: float


@dataclass(frozen=True)
class StatusRule:
    """One entry of the ordered decision table."""

    name: str
    status: ThesisStatus
    predicate: Callable[[Levels, ReviewParams], bool]


def target_reached(levels: Levels, params: ReviewParams) -> bool:
    """Current price at or beyond the target."""
    return levels.current >= levels.target


def stop_breached(levels: Levels, params: ReviewParams) -> bool:
    """
    Current price crossed the stop.

    A stop equal to entry is meaningless and never fires. A stop above
    entry acts as an upper guard (breach on >=); otherwise it is a normal
    downside stop (breach on <=).
    """
    s = levels.stop
    e = levels.entry
    if s == e:
        return False
    if s > e:
        return levels.current >= s
    return levels.current <= s


def risk_review(levels: Levels, params: ReviewParams) -> bool:
    """Losing ground close to the stop, or a deep drawdown from entry."""
    downside = calc_downside_pct(levels.entry, levels.current)
    distance = calc_distance_to_stop_pct(levels.stop, levels.current, params)

    near_stop = levels.progress_pct < 0 and distance <= params.stop_proximity_pct
    return near_stop or downside >= params.downside_review_pct


STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule("target_reached", ThesisStatus.ACHIEVED, target_reached),
    StatusRule("stop_breached", ThesisStatus.BREACHED, stop_breached),
    StatusRule("risk_review", ThesisStatus.NEEDS_REVIEW, risk_review),
)


def evaluate(
    item: TrackedItem,
    current_price: Any,
    params: Optional[ReviewParams] = None,
    rules: tuple[StatusRule, ...] = STATUS_RULES
) -> Evaluation:
    """
    Evaluate a thesis against the current price.

    Args:
        item: Thesis with entry/target/stop levels and its prior derived status
        current_price: Live or fallback price, None when unknown
        params: Needs-review thresholds
        rules: Ordered decision table; first match wins

    Returns:
        Evaluation with status and raw/clamped progress. Never raises for
        bad input: malformed levels degrade to on-track with no progress.
    """
    params = params or DEFAULT_REVIEW_PARAMS

    try:
        current = as_price(current_price, "current_price")
        entry, target, stop = resolve_levels(item, current)
    except MalformedThresholdError as e:
        status_logger.warning(
            "Malformed thesis levels, degrading to on-track",
            symbol=item.symbol,
            item_id=item.id,
            field=e.field,
            value=repr(e.value)
        )
        return Evaluation(status=ThesisStatus.ON_TRACK, degraded=True)

    if current is None:
        # No price: keep whatever the last successful pass derived
        return Evaluation(status=item.status or ThesisStatus.ON_TRACK)

    progress = calc_progress_pct(entry, target, current)
    levels = Levels(
        entry=entry,
        target=target,
        stop=stop,
        current=current,
        progress_pct=progress
    )

    status = ThesisStatus.ON_TRACK
    fired = None
    for rule in rules:
        if rule.predicate(levels, params):
            status = rule.status
            fired = rule.name
            break

    return Evaluation(
        status=status,
        progress_pct=progress,
        progress_bar_pct=clamp_progress(progress),
        rule=fired
    )


def as_price(value: Any, field: str) -> Optional[float]:
    """Coerce a level or price to float, rejecting non-finite and non-numeric values."""
    if value is None:
        return None

    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise MalformedThresholdError(
            f"{field} must be a number", field=field, value=value
        )

    result = float(value)
    if not math.isfinite(result):
        raise MalformedThresholdError(
            f"{field} must be finite", field=field, value=value
        )
    return result


def resolve_levels(item: TrackedItem, current: Optional[float]) -> tuple[float, float, float]:
    """
    Resolve entry, target and stop with their fallbacks.

    entry falls back to the current price, then to 0; target and stop
    fall back to the resolved entry.
    """
    entry = as_price(item.entry, "entry")
    target = as_price(item.target, "target")
    stop = as_price(item.stop, "stop")

    if entry is None:
        entry = current if current is not None else 0.0
    if target is None:
        target = entry
    if stop is None:
        stop = entry

    return entry, target, stop


def calc_progress_pct(entry: float, target: float, current: float) -> float:
    """Raw progress from entry toward target, in percent."""
    if target != entry:
        return (current - entry) / (target - entry) * 100
    return 100.0 if current >= target else 0.0


def clamp_progress(progress_pct: Optional[float]) -> Optional[float]:
    """Clamp raw progress to the [0, 100] display range."""
    if progress_pct is None:
        return None
    return min(100.0, max(0.0, progress_pct))


def calc_downside_pct(entry: float, current: float) -> float:
    """Drawdown from entry in percent; 0 when entry is 0."""
    if entry == 0:
        return 0.0
    return (entry - current) / entry * 100


def calc_distance_to_stop_pct(
    stop: float,
    current: float,
    params: Optional[ReviewParams] = None
) -> float:
    """Distance above the stop in percent; a large value when stop is 0."""
    if stop == 0:
        return (params or DEFAULT_REVIEW_PARAMS).zero_stop_distance_pct
    return (current - stop) / stop * 100
