from __future__ import annotations

from learnpath.difficulty_adviser import DifficultyTier, base_tier, determine_adaptive_difficulty
from learnpath.learning_models import PerformanceProfile


def _profile(score: float, efficiency: float = 0.0) -> PerformanceProfile:
    return PerformanceProfile(overall_score_pct=score, time_efficiency=efficiency)


def test_base_tier_follows_score_bands() -> None:
    assert determine_adaptive_difficulty(_profile(30)) is DifficultyTier.BEGINNER
    assert determine_adaptive_difficulty(_profile(55)) is DifficultyTier.INTERMEDIATE
    assert determine_adaptive_difficulty(_profile(85)) is DifficultyTier.ADVANCED
    assert base_tier(40) is DifficultyTier.INTERMEDIATE
    assert base_tier(70) is DifficultyTier.ADVANCED


def test_preference_nudges_intermediate_learners_only() -> None:
    assert determine_adaptive_difficulty(_profile(55), "advanced") is DifficultyTier.INTERMEDIATE_ADVANCED
    assert determine_adaptive_difficulty(_profile(55), "beginner") is DifficultyTier.BEGINNER_INTERMEDIATE
    assert determine_adaptive_difficulty(_profile(55), "intermediate") is DifficultyTier.INTERMEDIATE
    assert determine_adaptive_difficulty(_profile(30), "advanced") is DifficultyTier.BEGINNER
    assert determine_adaptive_difficulty(_profile(55), "unheard-of") is DifficultyTier.INTERMEDIATE


def test_high_efficiency_steps_up_once() -> None:
    assert determine_adaptive_difficulty(_profile(30, efficiency=3.0)) is DifficultyTier.BEGINNER_INTERMEDIATE
    assert determine_adaptive_difficulty(_profile(55, efficiency=3.0)) is DifficultyTier.INTERMEDIATE_ADVANCED
    assert determine_adaptive_difficulty(_profile(85, efficiency=3.0)) is DifficultyTier.ADVANCED
    assert determine_adaptive_difficulty(_profile(30), time_efficiency=2.5) is DifficultyTier.BEGINNER_INTERMEDIATE
    assert determine_adaptive_difficulty(_profile(30, efficiency=2.0)) is DifficultyTier.BEGINNER


def test_preference_wins_over_efficiency() -> None:
    tier = determine_adaptive_difficulty(_profile(55, efficiency=5.0), "beginner")

    assert tier is DifficultyTier.BEGINNER_INTERMEDIATE


def test_tiers_are_ordered() -> None:
    numeric = [tier.to_numeric() for tier in DifficultyTier]

    assert numeric == sorted(numeric)
    assert DifficultyTier.ADVANCED.step_up() is DifficultyTier.ADVANCED
