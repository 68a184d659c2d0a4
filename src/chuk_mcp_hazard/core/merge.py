"""
Multi-source merge strategies.

When several hazard overlays cover one sample point, each yields a
candidate level; these helpers collapse the candidates into one result.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..constants import MERGE_STRATEGIES, NO_RISK_LEVEL, ErrorMessages, MergeStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskCandidate:
    """A level reported by one source, with its display metadata if known."""

    level: int
    name: str | None = None
    color: str | None = None


def validate_strategy(strategy: str) -> None:
    if strategy not in MERGE_STRATEGIES:
        raise ValueError(
            ErrorMessages.INVALID_MERGE_STRATEGY.format(strategy, ", ".join(MERGE_STRATEGIES))
        )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _resolve_present(candidates: Sequence[RiskCandidate], level: int) -> RiskCandidate:
    # Falls back to the first candidate when the rounded level is not among them
    for candidate in candidates:
        if candidate.level == level:
            return candidate
    return candidates[0]


def _merge_max(candidates: Sequence[RiskCandidate]) -> RiskCandidate:
    return max(candidates, key=lambda c: c.level)


def merge_risk_levels(
    candidates: Sequence[RiskCandidate],
    strategy: str = MergeStrategy.MAX,
    weights: Sequence[float] | None = None,
    priorities: Sequence[int] | None = None,
) -> RiskCandidate:
    """Reduce per-source candidates to a single level.

    Args:
        candidates: One candidate per source, in source order
        strategy: max, average, weighted, or priority
        weights: Per-source weights (weighted strategy)
        priorities: Per-source priorities, highest wins (priority strategy)

    Returns:
        The merged candidate. An empty list yields the no-risk level.
    """
    validate_strategy(strategy)

    if not candidates:
        return RiskCandidate(level=NO_RISK_LEVEL)
    if len(candidates) == 1:
        return candidates[0]

    if strategy == MergeStrategy.MAX:
        return _merge_max(candidates)

    if strategy == MergeStrategy.AVERAGE:
        mean = sum(c.level for c in candidates) / len(candidates)
        return _resolve_present(candidates, _round_half_up(mean))

    if strategy == MergeStrategy.WEIGHTED:
        if weights is None or len(weights) != len(candidates):
            logger.debug("Weight count does not match candidates; using max")
            return _merge_max(candidates)
        total_weight = sum(weights)
        if total_weight <= 0:
            return _merge_max(candidates)
        mean = sum(c.level * w for c, w in zip(candidates, weights)) / total_weight
        return _resolve_present(candidates, _round_half_up(mean))

    # priority
    if priorities is None or len(priorities) != len(candidates):
        logger.debug("Priority count does not match candidates; using max")
        return _merge_max(candidates)
    best = max(range(len(candidates)), key=lambda i: priorities[i])
    return candidates[best]
