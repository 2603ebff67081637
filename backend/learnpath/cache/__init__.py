"""Caching helpers for generated recommendations and study plans."""

from .keys import is_valid_key, recommendation_key, study_plan_key
from .service import CacheStats, RecommendationCache
from .store import CacheStore, MemoryCacheStore

__all__ = [
    "CacheStats",
    "CacheStore",
    "MemoryCacheStore",
    "RecommendationCache",
    "is_valid_key",
    "recommendation_key",
    "study_plan_key",
]
