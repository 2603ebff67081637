"""SQL-backed cache store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional, Type, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.models import CachedRecommendationModel, CachedStudyPlanModel
from ..db.session import Database
from ..learning_models import CacheEntry, CacheKind

_CacheModel = Union[CachedRecommendationModel, CachedStudyPlanModel]

_MODELS: Dict[str, Type[_CacheModel]] = {
    "recommendation": CachedRecommendationModel,
    "study_plan": CachedStudyPlanModel,
}


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_clause(model: Type[_CacheModel], user_id: Optional[str]):
    if user_id is None:
        return model.user_id.is_(None)
    return model.user_id == user_id


class SqlCacheStore:
    """Stores recommendations and study plans in their own tables."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def record_hit(self, key: str, provider: str, kind: CacheKind, now: datetime) -> Optional[CacheEntry]:
        model = _MODELS[kind]
        with self._database.session_scope() as session:
            stmt = (
                select(model.id)
                .where(model.cache_key == key, model.provider == provider, model.expires_at > now)
                .order_by(model.created_at.desc(), model.id.desc())
                .limit(1)
            )
            row_id = session.execute(stmt).scalar_one_or_none()
            if row_id is None:
                return None
            session.execute(
                update(model)
                .where(model.id == row_id)
                .values(hit_count=model.hit_count + 1, last_accessed_at=now)
            )
            session.flush()
            row = session.get(model, row_id, populate_existing=True)
            if row is None:
                return None
            return self._to_domain(row, kind)

    def upsert(self, entry: CacheEntry) -> None:
        model = _MODELS[entry.kind]
        with self._database.session_scope() as session:
            session.execute(delete(model).where(model.cache_key == entry.key, model.provider == entry.provider))
            session.add(
                model(
                    cache_key=entry.key,
                    provider=entry.provider,
                    user_id=entry.user_id,
                    course_id=entry.course_id,
                    payload=entry.payload,
                    confidence=entry.confidence,
                    created_at=entry.created_at,
                    expires_at=entry.expires_at,
                    last_accessed_at=entry.last_accessed_at,
                    hit_count=entry.hit_count,
                )
            )

    def delete_expired(self, kind: CacheKind, now: datetime, user_id: Optional[str] = None) -> int:
        model = _MODELS[kind]
        stmt = delete(model).where(model.expires_at < now)
        if user_id is not None:
            stmt = stmt.where(model.user_id == user_id)
        with self._database.session_scope() as session:
            return session.execute(stmt).rowcount or 0

    def evict_overflow(self, kind: CacheKind, user_id: Optional[str], max_size: int) -> int:
        model = _MODELS[kind]
        with self._database.session_scope() as session:
            total = self._count(session, model, _user_clause(model, user_id))
            overflow = total - max_size
            if overflow <= 0:
                return 0
            victims = (
                session.execute(
                    select(model.id)
                    .where(_user_clause(model, user_id))
                    .order_by(model.last_accessed_at.asc(), model.id.asc())
                    .limit(overflow)
                )
                .scalars()
                .all()
            )
            session.execute(delete(model).where(model.id.in_(victims)))
            return len(victims)

    def count(self, kind: CacheKind, user_id: Optional[str] = None) -> int:
        model = _MODELS[kind]
        with self._database.session_scope(commit=False) as session:
            if user_id is None:
                return self._count(session, model)
            return self._count(session, model, model.user_id == user_id)

    def clear(self, user_id: Optional[str] = None) -> int:
        removed = 0
        with self._database.session_scope() as session:
            for model in _MODELS.values():
                stmt = delete(model)
                if user_id is not None:
                    stmt = stmt.where(model.user_id == user_id)
                removed += session.execute(stmt).rowcount or 0
        return removed

    @staticmethod
    def _count(session: Session, model: Type[_CacheModel], *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int(session.execute(stmt).scalar_one())

    @staticmethod
    def _to_domain(row: _CacheModel, kind: CacheKind) -> CacheEntry:
        return CacheEntry(
            key=row.cache_key,
            kind=kind,
            provider=row.provider,
            user_id=row.user_id,
            course_id=row.course_id,
            payload=dict(row.payload or {}),
            confidence=row.confidence,
            created_at=_as_utc(row.created_at),
            expires_at=_as_utc(row.expires_at),
            last_accessed_at=_as_utc(row.last_accessed_at),
            hit_count=row.hit_count,
        )


__all__ = ["SqlCacheStore"]
