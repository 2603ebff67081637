from __future__ import annotations

from learnpath.learning_models import RecommendationCandidate
from learnpath.ranking import MAX_RECOMMENDATIONS, rank_candidates


def _candidate(title: str, priority: int, confidence: int = 50) -> RecommendationCandidate:
    return RecommendationCandidate(title=title, priority=priority, confidence=confidence)


def test_orders_by_priority_then_confidence() -> None:
    ranked = rank_candidates(
        [
            _candidate("late", 3, 90),
            _candidate("weak-first", 1, 40),
            _candidate("strong-first", 1, 95),
        ]
    )

    assert [item.title for item in ranked] == ["strong-first", "weak-first", "late"]


def test_ties_keep_generation_order_and_limit_applies() -> None:
    candidates = [_candidate(f"item-{index}", 2, 70) for index in range(8)]

    ranked = rank_candidates(candidates)

    assert len(ranked) == MAX_RECOMMENDATIONS
    assert [item.title for item in ranked] == [f"item-{index}" for index in range(5)]
    assert rank_candidates(candidates, limit=2) == candidates[:2]
