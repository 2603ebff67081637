"""SQL-backed provider call log."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Integer, cast, func, select

from ..call_log import CallLogSummary, publish_call
from ..db.models import ProviderCallLogModel
from ..db.session import Database
from ..learning_models import ProviderCallRecord


class SqlProviderCallLog:
    """Writes one row per provider attempt; rows are never updated."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def record(self, call: ProviderCallRecord) -> None:
        with self._database.session_scope() as session:
            session.add(
                ProviderCallLogModel(
                    provider=call.provider,
                    endpoint=call.endpoint,
                    success=call.success,
                    cache_hit=call.cache_hit,
                    response_time_ms=call.response_time_ms,
                    user_id=call.user_id,
                    cost=call.cost,
                    tokens=call.tokens,
                    error_kind=call.error_kind,
                    error_message=call.error_message,
                    created_at=call.created_at,
                )
            )
        publish_call(call)

    def records(self, user_id: Optional[str] = None) -> List[ProviderCallRecord]:
        stmt = select(ProviderCallLogModel).order_by(ProviderCallLogModel.id.asc())
        if user_id is not None:
            stmt = stmt.where(ProviderCallLogModel.user_id == user_id)
        with self._database.session_scope(commit=False) as session:
            rows = session.execute(stmt).scalars().all()
            return [
                ProviderCallRecord(
                    provider=row.provider,
                    endpoint=row.endpoint,
                    success=row.success,
                    cache_hit=row.cache_hit,
                    response_time_ms=row.response_time_ms,
                    user_id=row.user_id,
                    cost=row.cost,
                    tokens=row.tokens,
                    error_kind=row.error_kind,
                    error_message=row.error_message,
                    created_at=row.created_at,
                )
                for row in rows
            ]

    def summarize(self, user_id: Optional[str] = None) -> CallLogSummary:
        model = ProviderCallLogModel
        stmt = select(
            func.count(model.id),
            func.coalesce(func.sum(cast(model.success, Integer)), 0),
            func.coalesce(func.sum(cast(model.cache_hit, Integer)), 0),
            func.coalesce(func.avg(model.response_time_ms), 0.0),
            func.coalesce(func.sum(model.cost), 0.0),
        )
        if user_id is not None:
            stmt = stmt.where(model.user_id == user_id)
        with self._database.session_scope(commit=False) as session:
            total, successful, cached, avg_time, total_cost = session.execute(stmt).one()
        return CallLogSummary(
            total_calls=int(total),
            successful_calls=int(successful),
            cached_calls=int(cached),
            average_response_time_ms=float(avg_time),
            total_cost=float(total_cost),
        )


__all__ = ["SqlProviderCallLog"]
