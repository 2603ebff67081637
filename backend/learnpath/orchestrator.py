"""Ordered provider fallback: cache, external AI, then the rule-based generators."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter
from typing import Any, Dict, Iterator, Optional, Sequence

from .ai_provider import ChatCompletionRecommendationProvider, RecommendationProvider
from .cache import MemoryCacheStore, RecommendationCache, recommendation_key, study_plan_key
from .cache.store import CacheStore
from .call_log import MemoryProviderCallLog, ProviderCallLog
from .catalog import CourseCatalog, InMemoryCourseCatalog
from .config import Settings, get_settings
from .errors import classify
from .learning_models import (
    CacheEntry,
    CacheKind,
    ProviderCallRecord,
    QuizAttempt,
    QuizContext,
    RecommendationSet,
    StudyPlan,
    UserProfile,
)
from .performance_analyzer import analyze_performance
from .personalization import build_personalized_plan
from .recommendation_generator import RULE_BASED_PROVIDER, RuleBasedRecommender
from .study_plan import apply_personalization, generate_rule_based_study_plan
from .study_plan_advisor import StudyPlanAdvisor, estimate_study_plan_confidence

logger = logging.getLogger(__name__)

RECOMMENDATIONS_ENDPOINT = "recommendations"
STUDY_PLAN_ENDPOINT = "study-plan"


@dataclass
class EngineContext:
    """Everything the orchestrator needs, passed in explicitly."""

    settings: Settings
    catalog: CourseCatalog
    cache: RecommendationCache
    call_log: ProviderCallLog
    recommender: RuleBasedRecommender
    ai_provider: Optional[RecommendationProvider] = None
    study_plan_advisor: Optional[StudyPlanAdvisor] = None


def build_context(
    settings: Optional[Settings] = None,
    *,
    catalog: Optional[CourseCatalog] = None,
    store: Optional[CacheStore] = None,
    call_log: Optional[ProviderCallLog] = None,
) -> EngineContext:
    """Wire an :class:`EngineContext` from settings.

    ``LEARNPATH_CACHE_BACKEND=database`` stores cache entries and call records
    through SQLAlchemy; otherwise both live in process memory.
    """
    resolved = settings or get_settings()
    if store is None or call_log is None:
        if resolved.cache_backend == "database":
            from .db import Database
            from .repositories import SqlCacheStore, SqlProviderCallLog

            database = Database.from_settings(resolved)
            database.create_all()
            store = store or SqlCacheStore(database)
            call_log = call_log or SqlProviderCallLog(database)
        else:
            store = store or MemoryCacheStore()
            call_log = call_log or MemoryProviderCallLog()

    resolved_catalog = catalog or InMemoryCourseCatalog()
    cache = RecommendationCache(
        store,
        call_log,
        recommendation_ttl_hours=resolved.recommendation_ttl_hours,
        study_plan_ttl_hours=resolved.study_plan_ttl_hours,
        max_cache_size=resolved.max_cache_size,
    )
    ai_enabled = resolved.ai_mode != "off"
    return EngineContext(
        settings=resolved,
        catalog=resolved_catalog,
        cache=cache,
        call_log=call_log,
        recommender=RuleBasedRecommender(resolved_catalog),
        ai_provider=ChatCompletionRecommendationProvider(resolved) if ai_enabled else None,
        study_plan_advisor=StudyPlanAdvisor(resolved) if ai_enabled else None,
    )


@dataclass
class _KeyLocks:
    """Per-key locks, dropped once no request holds or waits on them."""

    _guard: Lock = field(default_factory=Lock)
    _locks: Dict[str, Lock] = field(default_factory=dict)
    _holders: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._holders[key] = self._holders.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if not self._holders[key]:
                    del self._holders[key]
                    del self._locks[key]


class RecommendationOrchestrator:
    """Serves recommendations and study plans; callers never see provider failures."""

    def __init__(self, context: EngineContext) -> None:
        self._context = context
        self._locks = _KeyLocks()

    @property
    def context(self) -> EngineContext:
        return self._context

    # --- public operations ------------------------------------------------------

    def generate_recommendations(
        self,
        attempts: Sequence[QuizAttempt],
        user_profile: Optional[UserProfile] = None,
        course_id: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> RecommendationSet:
        profile = user_profile or UserProfile()
        key = recommendation_key(attempts, course_id, user_id=profile.user_id)
        chosen = provider or self._default_recommendation_provider()
        with self._serialized(f"recommendation:{chosen}:{key}"):
            return self._recommendations(attempts, profile, course_id, key, chosen)

    def generate_study_plan(
        self,
        quiz_context: QuizContext,
        provider: Optional[str] = None,
        attempts: Optional[Sequence[QuizAttempt]] = None,
        user_profile: Optional[UserProfile] = None,
    ) -> StudyPlan:
        """Study plan for one quiz result.

        When recent ``attempts`` are supplied, the rule-based plan carries a
        personalized weekly schedule and advice.
        """
        key = study_plan_key(quiz_context)
        chosen = provider or self._default_study_plan_provider()
        with self._serialized(f"study_plan:{chosen}:{key}"):
            return self._study_plan(quiz_context, key, chosen, attempts, user_profile)

    # --- recommendation pipeline -----------------------------------------------

    def _recommendations(
        self,
        attempts: Sequence[QuizAttempt],
        user_profile: UserProfile,
        course_id: Optional[str],
        key: str,
        chosen: str,
    ) -> RecommendationSet:
        user_id = user_profile.user_id
        started = perf_counter()
        entry = self._cache_get(key, chosen, "recommendation")
        if entry is not None:
            self._record(chosen, RECOMMENDATIONS_ENDPOINT, started, user_id, success=True, cache_hit=True)
            cached = RecommendationSet.model_validate(entry.payload)
            return cached.model_copy(update={"generated_by": f"cached:{chosen}"})

        ai_provider = self._context.ai_provider
        if ai_provider is not None and chosen == ai_provider.name:
            result = self._try_ai_recommendations(ai_provider, attempts, user_profile, course_id, key)
            if result is not None:
                return result

        started = perf_counter()
        result = self._context.recommender.generate(attempts, user_profile, course_id=course_id)
        self._record(RULE_BASED_PROVIDER, RECOMMENDATIONS_ENDPOINT, started, user_id, success=True)
        self._cache_put(
            key,
            result.model_dump(mode="json"),
            RULE_BASED_PROVIDER,
            "recommendation",
            user_id=user_id,
            course_id=course_id,
            confidence=result.confidence,
        )
        return result

    def _try_ai_recommendations(
        self,
        ai_provider: RecommendationProvider,
        attempts: Sequence[QuizAttempt],
        user_profile: UserProfile,
        course_id: Optional[str],
        key: str,
    ) -> Optional[RecommendationSet]:
        user_id = user_profile.user_id
        started = perf_counter()
        try:
            course = self._context.catalog.find_course(course_id) if course_id else None
            performance = analyze_performance(attempts, course_id=course_id) if attempts else None
            response = ai_provider.recommend(attempts, user_profile, course=course, performance=performance)
        except Exception as exc:  # noqa: BLE001
            self._record_failure(ai_provider.name, RECOMMENDATIONS_ENDPOINT, started, user_id, exc)
            return None

        result = RecommendationSet(
            recommendations=response.recommendations,
            generated_by=ai_provider.name,
            confidence=response.confidence,
            performance=performance,
        )
        self._record(
            ai_provider.name,
            RECOMMENDATIONS_ENDPOINT,
            started,
            user_id,
            success=True,
            cost=response.cost,
            tokens=response.tokens,
        )
        self._cache_put(
            key,
            result.model_dump(mode="json"),
            ai_provider.name,
            "recommendation",
            user_id=user_id,
            course_id=course_id,
            confidence=result.confidence,
        )
        return result

    # --- study plan pipeline ----------------------------------------------------

    def _study_plan(
        self,
        quiz_context: QuizContext,
        key: str,
        chosen: str,
        attempts: Optional[Sequence[QuizAttempt]],
        user_profile: Optional[UserProfile],
    ) -> StudyPlan:
        user_id = quiz_context.user_id or (user_profile.user_id if user_profile else None)
        # rule-based plans are cached without a learner schedule; it is applied per request
        personalization = build_personalized_plan(attempts, user_profile) if attempts else None
        started = perf_counter()
        entry = self._cache_get(key, chosen, "study_plan")
        if entry is not None:
            self._record(chosen, STUDY_PLAN_ENDPOINT, started, user_id, success=True, cache_hit=True)
            cached = StudyPlan.model_validate(entry.payload)
            if chosen == RULE_BASED_PROVIDER:
                cached = apply_personalization(cached, personalization)
            return cached.model_copy(update={"generated_by": f"cached:{chosen}"})

        advisor = self._context.study_plan_advisor
        if advisor is not None and chosen == advisor.name:
            started = perf_counter()
            try:
                advice = advisor.advise(quiz_context)
            except Exception as exc:  # noqa: BLE001
                self._record_failure(advisor.name, STUDY_PLAN_ENDPOINT, started, user_id, exc)
            else:
                self._record(advisor.name, STUDY_PLAN_ENDPOINT, started, user_id, success=True)
                self._cache_plan(key, advice.plan, advisor.name, quiz_context, user_id)
                return advice.plan

        started = perf_counter()
        plan = generate_rule_based_study_plan(quiz_context, self._context.catalog)
        self._record(RULE_BASED_PROVIDER, STUDY_PLAN_ENDPOINT, started, user_id, success=True)
        self._cache_plan(key, plan, RULE_BASED_PROVIDER, quiz_context, user_id)
        return apply_personalization(plan, personalization)

    def _cache_plan(
        self,
        key: str,
        plan: StudyPlan,
        provider: str,
        quiz_context: QuizContext,
        user_id: Optional[str],
    ) -> None:
        self._cache_put(
            key,
            plan.model_dump(mode="json"),
            provider,
            "study_plan",
            user_id=user_id,
            course_id=quiz_context.course_id,
            confidence=estimate_study_plan_confidence(plan, quiz_context.percentage),
        )

    # --- helpers ----------------------------------------------------------------

    def _cache_get(self, key: str, provider: str, kind: CacheKind) -> Optional[CacheEntry]:
        try:
            return self._context.cache.get(key, provider, kind)
        except Exception:  # noqa: BLE001
            logger.exception("Cache lookup failed for %s/%s; treating as a miss", kind, provider)
            return None

    def _cache_put(self, key: str, payload: Dict[str, Any], provider: str, kind: CacheKind, **fields: Any) -> None:
        try:
            self._context.cache.put(key, payload, provider, kind, **fields)
        except Exception:  # noqa: BLE001
            logger.exception("Cache write failed for %s/%s", kind, provider)

    def _ai_enabled(self) -> bool:
        return self._context.settings.ai_mode != "off"

    def _default_recommendation_provider(self) -> str:
        if self._ai_enabled() and self._context.ai_provider is not None:
            return self._context.ai_provider.name
        return RULE_BASED_PROVIDER

    def _default_study_plan_provider(self) -> str:
        if self._ai_enabled() and self._context.study_plan_advisor is not None:
            return self._context.study_plan_advisor.name
        return RULE_BASED_PROVIDER

    @contextmanager
    def _serialized(self, key: str) -> Iterator[None]:
        if not self._context.settings.dedupe_inflight:
            yield
            return
        with self._locks.hold(key):
            yield

    def _record(
        self,
        provider: str,
        endpoint: str,
        started: float,
        user_id: Optional[str],
        *,
        success: bool,
        cache_hit: bool = False,
        cost: Optional[float] = None,
        tokens: Optional[int] = None,
        error_kind: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        call = ProviderCallRecord(
            provider=provider,
            endpoint=endpoint,
            success=success,
            cache_hit=cache_hit,
            response_time_ms=round((perf_counter() - started) * 1000.0, 2),
            user_id=user_id,
            cost=cost,
            tokens=tokens,
            error_kind=error_kind,
            error_message=error_message,
        )
        try:
            self._context.call_log.record(call)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record provider call for %s", provider)

    def _record_failure(
        self,
        provider: str,
        endpoint: str,
        started: float,
        user_id: Optional[str],
        exc: BaseException,
    ) -> None:
        kind = classify(exc)
        latency_ms = round((perf_counter() - started) * 1000.0, 2)
        if self._context.settings.ai_mode == "primary":
            logger.warning(
                "%s %s failed (%s) after %sms; serving rule-based fallback: %s",
                provider,
                endpoint,
                kind.value,
                latency_ms,
                exc,
            )
        else:
            logger.info("%s %s unavailable (%s) after %sms: %s", provider, endpoint, kind.value, latency_ms, exc)
        self._record(
            provider,
            endpoint,
            started,
            user_id,
            success=False,
            error_kind=kind.value,
            error_message=str(exc),
        )


__all__ = [
    "EngineContext",
    "RecommendationOrchestrator",
    "build_context",
]
