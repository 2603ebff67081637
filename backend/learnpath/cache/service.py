"""TTL cache for generated recommendations and study plans."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from ..call_log import ProviderCallLog
from ..errors import CacheKeyError
from ..learning_models import CacheEntry, CacheKind
from ..telemetry import emit_event
from .keys import validate_key
from .store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS: Dict[str, float] = {"recommendation": 24.0, "study_plan": 48.0}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheStats(BaseModel):
    total_recommendations: int = 0
    total_study_plans: int = 0
    cache_hit_rate: float = 0.0
    total_calls: int = 0
    successful_calls: int = 0
    average_response_time_ms: int = 0
    total_cost: float = 0.0


class RecommendationCache:
    """Provider-scoped cache with lazy expiry cleanup and a per-user size bound.

    Expired entries are never served; they are removed on the next write of the
    same kind. After each write, entries beyond ``max_cache_size`` for that user
    and kind are evicted least-recently-accessed first.
    """

    def __init__(
        self,
        store: CacheStore,
        call_log: ProviderCallLog,
        *,
        recommendation_ttl_hours: float = DEFAULT_TTL_HOURS["recommendation"],
        study_plan_ttl_hours: float = DEFAULT_TTL_HOURS["study_plan"],
        max_cache_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._call_log = call_log
        self._ttl_hours = {"recommendation": recommendation_ttl_hours, "study_plan": study_plan_ttl_hours}
        self._max_cache_size = max_cache_size
        self._clock = clock

    def get(self, key: str, provider: str, kind: CacheKind) -> Optional[CacheEntry]:
        try:
            validate_key(key)
        except CacheKeyError as exc:
            logger.warning("Treating malformed cache key as a miss: %s", exc)
            return None
        entry = self._store.record_hit(key, provider, kind, self._clock())
        if entry is not None:
            emit_event("cache_hit", kind=kind, provider=provider, user_id=entry.user_id, hit_count=entry.hit_count)
        return entry

    def put(
        self,
        key: str,
        payload: Dict[str, Any],
        provider: str,
        kind: CacheKind,
        ttl_hours: Optional[float] = None,
        user_id: Optional[str] = None,
        course_id: Optional[str] = None,
        confidence: int = 0,
    ) -> Optional[CacheEntry]:
        try:
            validate_key(key)
        except CacheKeyError as exc:
            logger.warning("Skipping cache write for malformed key: %s", exc)
            return None
        now = self._clock()
        hours = ttl_hours if ttl_hours is not None else self._ttl_hours[kind]
        entry = CacheEntry(
            key=key,
            kind=kind,
            provider=provider,
            user_id=user_id,
            course_id=course_id,
            payload=payload,
            confidence=max(0, min(100, confidence)),
            created_at=now,
            expires_at=now + timedelta(hours=hours),
            last_accessed_at=now,
        )
        self._store.upsert(entry)
        emit_event("cache_write", kind=kind, provider=provider, user_id=user_id, ttl_hours=hours)
        self.cleanup(user_id, kind)
        evicted = self._store.evict_overflow(kind, user_id, self._max_cache_size)
        if evicted:
            logger.info("Evicted %s %s entries over the size bound for user %s", evicted, kind, user_id)
        return entry

    def cleanup(self, user_id: Optional[str], kind: CacheKind) -> int:
        removed = self._store.delete_expired(kind, self._clock(), user_id)
        if removed:
            emit_event("cache_cleanup", kind=kind, user_id=user_id, removed=removed)
        return removed

    def stats(self, user_id: Optional[str] = None) -> CacheStats:
        summary = self._call_log.summarize(user_id)
        hit_rate = summary.cached_calls / summary.total_calls * 100 if summary.total_calls else 0.0
        return CacheStats(
            total_recommendations=self._store.count("recommendation", user_id),
            total_study_plans=self._store.count("study_plan", user_id),
            cache_hit_rate=round(hit_rate, 2),
            total_calls=summary.total_calls,
            successful_calls=summary.successful_calls,
            average_response_time_ms=round(summary.average_response_time_ms),
            total_cost=round(summary.total_cost, 2),
        )

    def clear(self, user_id: Optional[str] = None) -> int:
        removed = self._store.clear(user_id)
        logger.info("Cleared %s cache entries (user=%s)", removed, user_id)
        return removed


__all__ = ["CacheStats", "DEFAULT_TTL_HOURS", "RecommendationCache"]
