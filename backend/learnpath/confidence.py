"""Confidence scoring for resources picked from the catalog."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional

from .learning_models import PerformanceProfile, Resource, UserProfile

BASE_CONFIDENCE = 50

STYLE_RESOURCE_TYPES: Dict[str, FrozenSet[str]] = {
    "visual": frozenset({"video", "infographic"}),
    "auditory": frozenset({"podcast", "audio"}),
    "reading": frozenset({"article", "book", "documentation"}),
}


def matches_learning_gap(resource: Resource, gaps: Iterable[str]) -> bool:
    """True when any resource tag contains any gap term (case-insensitive substring)."""
    lowered = [gap.lower() for gap in gaps if gap]
    return any(gap in tag for tag in resource.normalized_tags for gap in lowered)


def calculate_recommendation_confidence(
    resource: Resource,
    profile: PerformanceProfile,
    user_profile: Optional[UserProfile] = None,
) -> int:
    score = BASE_CONFIDENCE

    if resource.rating is not None and resource.rating > 4.0:
        score += 20
    if resource.views is not None and resource.views > 1000:
        score += 10

    if user_profile is not None and user_profile.learning_style:
        if resource.type.lower() in STYLE_RESOURCE_TYPES.get(user_profile.learning_style, frozenset()):
            score += 15

    if profile.confidence_level > 70:
        score += 10
    if matches_learning_gap(resource, profile.learning_gaps):
        score += 15

    if (
        user_profile is not None
        and user_profile.available_time_minutes
        and resource.duration
        and resource.duration_minutes <= user_profile.available_time_minutes
    ):
        score += 10

    return max(0, min(100, score))


__all__ = ["STYLE_RESOURCE_TYPES", "calculate_recommendation_confidence", "matches_learning_gap"]
