from __future__ import annotations

from datetime import datetime, timedelta, timezone

from learnpath.cache import MemoryCacheStore, RecommendationCache, recommendation_key, study_plan_key
from learnpath.call_log import MemoryProviderCallLog
from learnpath.learning_models import ProviderCallRecord, QuizAttempt, QuizContext
from learnpath.telemetry import capture_events


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def _cache(clock: _Clock, **kwargs) -> RecommendationCache:
    return RecommendationCache(MemoryCacheStore(), MemoryProviderCallLog(), clock=clock, **kwargs)


def _key(label: str) -> str:
    return recommendation_key([QuizAttempt(quiz_id=label, course_id="CS101", score=5, total=10)])


def test_each_hit_increments_hit_count_once() -> None:
    clock = _Clock()
    cache = _cache(clock)
    key = _key("q1")
    cache.put(key, {"value": 1}, "rule-based", "recommendation", user_id="ada")

    clock.advance(minutes=5)
    first = cache.get(key, "rule-based", "recommendation")
    second = cache.get(key, "rule-based", "recommendation")

    assert first is not None and second is not None
    assert first.hit_count == 1
    assert second.hit_count == 2
    assert second.last_accessed_at == clock.now
    assert second.payload == {"value": 1}


def test_entries_expire_after_their_ttl() -> None:
    clock = _Clock()
    cache = _cache(clock)
    key = _key("q1")
    cache.put(key, {"value": 1}, "rule-based", "recommendation")
    cache.put(key, {"plan": True}, "rule-based", "study_plan")

    clock.advance(hours=25)

    assert cache.get(key, "rule-based", "recommendation") is None
    assert cache.get(key, "rule-based", "study_plan") is not None
    clock.advance(hours=24)
    assert cache.get(key, "rule-based", "study_plan") is None


def test_lookups_are_scoped_by_provider() -> None:
    cache = _cache(_Clock())
    key = _key("q1")
    cache.put(key, {"value": 1}, "rule-based", "recommendation")

    assert cache.get(key, "deepseek", "recommendation") is None
    assert cache.get(key, "rule-based", "recommendation") is not None


def test_put_replaces_entry_for_same_key_and_provider() -> None:
    store = MemoryCacheStore()
    cache = RecommendationCache(store, MemoryProviderCallLog(), clock=_Clock())
    key = _key("q1")

    cache.put(key, {"value": 1}, "rule-based", "recommendation")
    cache.put(key, {"value": 2}, "rule-based", "recommendation")

    assert len(store.snapshot()) == 1
    entry = cache.get(key, "rule-based", "recommendation")
    assert entry is not None and entry.payload == {"value": 2}


def test_writes_remove_expired_entries_for_the_user() -> None:
    clock = _Clock()
    store = MemoryCacheStore()
    cache = RecommendationCache(store, MemoryProviderCallLog(), clock=clock)
    cache.put(_key("old"), {"value": 1}, "rule-based", "recommendation", user_id="ada")
    cache.put(_key("other"), {"value": 1}, "rule-based", "recommendation", user_id="grace")

    clock.advance(hours=30)
    cache.put(_key("new"), {"value": 2}, "rule-based", "recommendation", user_id="ada")

    assert store.count("recommendation", "ada") == 1
    assert store.count("recommendation", "grace") == 1
    assert cache.cleanup("grace", "recommendation") == 1


def test_size_bound_evicts_least_recently_accessed() -> None:
    clock = _Clock()
    cache = _cache(clock, max_cache_size=2)
    first, second, third = _key("q1"), _key("q2"), _key("q3")

    cache.put(first, {"n": 1}, "rule-based", "recommendation", user_id="ada")
    clock.advance(minutes=1)
    cache.put(second, {"n": 2}, "rule-based", "recommendation", user_id="ada")
    clock.advance(minutes=1)
    assert cache.get(first, "rule-based", "recommendation") is not None
    clock.advance(minutes=1)
    cache.put(third, {"n": 3}, "rule-based", "recommendation", user_id="ada")

    assert cache.get(second, "rule-based", "recommendation") is None
    assert cache.get(first, "rule-based", "recommendation") is not None
    assert cache.get(third, "rule-based", "recommendation") is not None


def test_malformed_keys_are_misses_and_never_written() -> None:
    store = MemoryCacheStore()
    cache = RecommendationCache(store, MemoryProviderCallLog(), clock=_Clock())

    assert cache.put("not-a-digest", {"value": 1}, "rule-based", "recommendation") is None
    assert cache.get("not-a-digest", "rule-based", "recommendation") is None
    assert store.snapshot() == {}


def test_stats_report_hit_rate_from_call_log() -> None:
    call_log = MemoryProviderCallLog()
    cache = RecommendationCache(MemoryCacheStore(), call_log, clock=_Clock())
    cache.put(_key("q1"), {"value": 1}, "rule-based", "recommendation", user_id="ada")
    for cache_hit, cost in ((True, None), (False, 0.01), (False, 0.02)):
        call_log.record(
            ProviderCallRecord(
                provider="rule-based",
                endpoint="recommendations",
                success=True,
                cache_hit=cache_hit,
                response_time_ms=30.0,
                user_id="ada",
                cost=cost,
            )
        )
    call_log.record(
        ProviderCallRecord(provider="deepseek", endpoint="recommendations", success=False, response_time_ms=70.0)
    )

    stats = cache.stats()
    ada = cache.stats("ada")

    assert stats.total_calls == 4
    assert stats.successful_calls == 3
    assert stats.cache_hit_rate == 25.0
    assert stats.average_response_time_ms == 40
    assert stats.total_recommendations == 1
    assert ada.cache_hit_rate == 33.33
    assert ada.total_cost == 0.03


def test_clear_removes_entries_for_one_user() -> None:
    store = MemoryCacheStore()
    cache = RecommendationCache(store, MemoryProviderCallLog(), clock=_Clock())
    cache.put(_key("q1"), {"value": 1}, "rule-based", "recommendation", user_id="ada")
    cache.put(_key("q2"), {"value": 1}, "rule-based", "study_plan", user_id="ada")
    cache.put(_key("q3"), {"value": 1}, "rule-based", "recommendation", user_id="grace")

    assert cache.clear("ada") == 2
    assert store.count("recommendation") == 1
    assert cache.clear() == 1


def test_cache_activity_emits_telemetry() -> None:
    cache = _cache(_Clock())
    key = _key("q1")
    with capture_events() as events:
        cache.put(key, {"value": 1}, "rule-based", "recommendation", user_id="ada")
        cache.get(key, "rule-based", "recommendation")

    names = [event.name for event in events]
    assert names == ["cache_write", "cache_hit"]
    assert events[1].payload["hit_count"] == 1


def test_recommendation_key_ignores_attempt_order() -> None:
    first = QuizAttempt(quiz_id="q1", course_id="CS101", score=3, total=10)
    second = QuizAttempt(quiz_id="q2", course_id="CS101", score=7, total=10)

    key = recommendation_key([first, second])

    assert key == recommendation_key([second, first])
    assert len(key) == 64
    assert key != recommendation_key([first, second], course_id="CS101")
    assert key != recommendation_key([first, second], user_id="ada")
    assert recommendation_key([first, second], course_id="CS101", user_id="ada") == recommendation_key(
        [first, second], course_id="CS101"
    )
    assert key != recommendation_key([first, second.model_copy(update={"score": 8})])


def test_recommendation_key_ignores_order_of_retakes() -> None:
    low = QuizAttempt(quiz_id="q1", course_id="CS101", score=3, total=10)
    high = QuizAttempt(quiz_id="q1", course_id="CS101", score=8, total=10)
    timed = high.model_copy(update={"time_spent_seconds": 240.0})

    assert recommendation_key([low, high]) == recommendation_key([high, low])
    assert recommendation_key([timed, high, low]) == recommendation_key([low, timed, high])


def test_study_plan_key_reflects_quiz_result() -> None:
    context = QuizContext(quiz_id="q1", course_id="CS101", program_id="cs", score=5, total_questions=10)

    assert study_plan_key(context) == study_plan_key(context.model_copy(update={"course_title": "Renamed"}))
    assert study_plan_key(context) != study_plan_key(context.model_copy(update={"score": 6}))
