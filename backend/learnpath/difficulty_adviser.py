"""Adaptive difficulty tiers derived from performance and learner preference."""

from __future__ import annotations

import enum
from typing import Optional

from .learning_models import PerformanceProfile

HIGH_EFFICIENCY_THRESHOLD = 2.0


class DifficultyTier(str, enum.Enum):
    BEGINNER = "beginner"
    BEGINNER_INTERMEDIATE = "beginner-intermediate"
    INTERMEDIATE = "intermediate"
    INTERMEDIATE_ADVANCED = "intermediate-advanced"
    ADVANCED = "advanced"

    def to_numeric(self) -> int:
        return _ORDER.index(self)

    def step_up(self) -> "DifficultyTier":
        return _STEP_UP.get(self, self)


_ORDER = [
    DifficultyTier.BEGINNER,
    DifficultyTier.BEGINNER_INTERMEDIATE,
    DifficultyTier.INTERMEDIATE,
    DifficultyTier.INTERMEDIATE_ADVANCED,
    DifficultyTier.ADVANCED,
]

_STEP_UP = {
    DifficultyTier.BEGINNER: DifficultyTier.BEGINNER_INTERMEDIATE,
    DifficultyTier.INTERMEDIATE: DifficultyTier.INTERMEDIATE_ADVANCED,
}


def base_tier(score_pct: float) -> DifficultyTier:
    if score_pct < 40:
        return DifficultyTier.BEGINNER
    if score_pct < 70:
        return DifficultyTier.INTERMEDIATE
    return DifficultyTier.ADVANCED


def determine_adaptive_difficulty(
    profile: PerformanceProfile,
    preferred_difficulty: Optional[str] = None,
    time_efficiency: Optional[float] = None,
) -> DifficultyTier:
    """Pick the tier used to filter practice resources.

    Rules are evaluated in order and the first match wins, so the result is at
    most one step away from the score-derived base tier.
    """
    base = base_tier(profile.overall_score_pct)
    efficiency = profile.time_efficiency if time_efficiency is None else time_efficiency

    if preferred_difficulty and base is DifficultyTier.INTERMEDIATE:
        try:
            preferred = DifficultyTier(preferred_difficulty)
        except ValueError:
            preferred = None
        if preferred is not None and preferred.to_numeric() > base.to_numeric():
            return DifficultyTier.INTERMEDIATE_ADVANCED
        if preferred is not None and preferred.to_numeric() < base.to_numeric():
            return DifficultyTier.BEGINNER_INTERMEDIATE

    if efficiency > HIGH_EFFICIENCY_THRESHOLD:
        return base.step_up()

    return base


__all__ = ["DifficultyTier", "base_tier", "determine_adaptive_difficulty"]
