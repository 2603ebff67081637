"""Deterministic ordering and truncation of recommendation candidates."""

from __future__ import annotations

from typing import Iterable, List

from .learning_models import RecommendationCandidate

MAX_RECOMMENDATIONS = 5


def rank_candidates(
    candidates: Iterable[RecommendationCandidate],
    limit: int = MAX_RECOMMENDATIONS,
) -> List[RecommendationCandidate]:
    """Order by priority ascending, then confidence descending.

    ``sorted`` is stable, so candidates with equal keys keep their generation
    order and identical inputs always rank identically.
    """
    ordered = sorted(candidates, key=lambda candidate: (candidate.priority, -candidate.confidence))
    return ordered[: max(0, limit)]


__all__ = ["MAX_RECOMMENDATIONS", "rank_candidates"]
