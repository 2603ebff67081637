from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from learnpath.cache import RecommendationCache, recommendation_key
from learnpath.config import Settings
from learnpath.db import Database, build_engine
from learnpath.errors import ConfigurationError
from learnpath.learning_models import ProviderCallRecord, QuizAttempt
from learnpath.repositories import SqlCacheStore, SqlProviderCallLog


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def database():
    database = Database(build_engine(Settings(LEARNPATH_DATABASE_URL="sqlite://")))
    database.create_all()
    try:
        yield database
    finally:
        database.dispose()


def _key(label: str) -> str:
    return recommendation_key([QuizAttempt(quiz_id=label, course_id="CS101", score=5, total=10)])


def test_build_engine_requires_database_url() -> None:
    with pytest.raises(ConfigurationError):
        build_engine(Settings(LEARNPATH_DATABASE_URL=None))


def test_sql_store_round_trips_entries_and_counts_hits(database) -> None:
    clock = _Clock()
    cache = RecommendationCache(SqlCacheStore(database), SqlProviderCallLog(database), clock=clock)
    key = _key("q1")
    cache.put(key, {"recommendations": [{"title": "Loops"}]}, "rule-based", "recommendation", user_id="ada", confidence=72)

    clock.advance(minutes=1)
    first = cache.get(key, "rule-based", "recommendation")
    second = cache.get(key, "rule-based", "recommendation")

    assert first is not None and second is not None
    assert first.hit_count == 1
    assert second.hit_count == 2
    assert second.payload == {"recommendations": [{"title": "Loops"}]}
    assert second.confidence == 72
    assert second.user_id == "ada"
    assert second.expires_at == clock.now - timedelta(minutes=1) + timedelta(hours=24)
    assert cache.get(key, "openai", "recommendation") is None


def test_sql_store_hides_expired_entries_and_cleans_them_up(database) -> None:
    clock = _Clock()
    store = SqlCacheStore(database)
    cache = RecommendationCache(store, SqlProviderCallLog(database), clock=clock)
    cache.put(_key("q1"), {"value": 1}, "rule-based", "study_plan", user_id="ada")

    clock.advance(hours=49)

    assert cache.get(_key("q1"), "rule-based", "study_plan") is None
    cache.put(_key("q2"), {"value": 2}, "rule-based", "study_plan", user_id="ada")
    assert store.count("study_plan", "ada") == 1


def test_sql_store_upserts_and_evicts_overflow(database) -> None:
    clock = _Clock()
    store = SqlCacheStore(database)
    cache = RecommendationCache(store, SqlProviderCallLog(database), clock=clock, max_cache_size=2)

    cache.put(_key("q1"), {"n": 1}, "rule-based", "recommendation", user_id="ada")
    cache.put(_key("q1"), {"n": 2}, "rule-based", "recommendation", user_id="ada")
    assert store.count("recommendation", "ada") == 1

    for label in ("q2", "q3"):
        clock.advance(minutes=1)
        cache.put(_key(label), {"n": label}, "rule-based", "recommendation", user_id="ada")

    assert store.count("recommendation", "ada") == 2
    assert cache.get(_key("q1"), "rule-based", "recommendation") is None
    assert store.clear("ada") == 2


def test_sql_call_log_summarizes_records(database) -> None:
    call_log = SqlProviderCallLog(database)
    call_log.record(
        ProviderCallRecord(
            provider="deepseek",
            endpoint="recommendations",
            success=False,
            response_time_ms=120.0,
            user_id="ada",
            error_kind="transient",
            error_message="timeout",
        )
    )
    call_log.record(
        ProviderCallRecord(
            provider="rule-based",
            endpoint="recommendations",
            success=True,
            cache_hit=True,
            response_time_ms=2.0,
            user_id="ada",
            cost=0.001,
        )
    )

    summary = call_log.summarize("ada")
    records = call_log.records("ada")

    assert summary.total_calls == 2
    assert summary.successful_calls == 1
    assert summary.cached_calls == 1
    assert summary.average_response_time_ms == pytest.approx(61.0)
    assert summary.total_cost == pytest.approx(0.001)
    assert [record.provider for record in records] == ["deepseek", "rule-based"]
    assert records[0].error_kind == "transient"
    assert call_log.summarize("nobody").total_calls == 0
