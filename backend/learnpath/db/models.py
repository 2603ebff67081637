"""ORM models for the recommendation cache and the provider call log."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin, utcnow

JSONType = JSON


class _CachedPayloadColumns(TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cache_key: Mapped[str] = mapped_column(String(64), nullable=False)
    provider: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    course_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    hit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class CachedRecommendationModel(_CachedPayloadColumns, Base):
    __tablename__ = "cached_recommendations"
    __table_args__ = (
        Index("ix_cached_recommendations_lookup", "cache_key", "provider"),
        Index("ix_cached_recommendations_user_expiry", "user_id", "expires_at"),
    )


class CachedStudyPlanModel(_CachedPayloadColumns, Base):
    __tablename__ = "cached_study_plans"
    __table_args__ = (
        Index("ix_cached_study_plans_lookup", "cache_key", "provider"),
        Index("ix_cached_study_plans_user_expiry", "user_id", "expires_at"),
    )


class ProviderCallLogModel(TimestampMixin, Base):
    __tablename__ = "provider_call_logs"
    __table_args__ = (Index("ix_provider_call_logs_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider: Mapped[str] = mapped_column(String(64), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(256), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cache_hit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    response_time_ms: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_kind: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


__all__ = [
    "CachedRecommendationModel",
    "CachedStudyPlanModel",
    "ProviderCallLogModel",
]
