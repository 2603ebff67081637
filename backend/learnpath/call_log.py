"""Append-only log of provider attempts, used for cache hit-rate statistics."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import List, Optional, Protocol

from .learning_models import ProviderCallRecord
from .telemetry import emit_event


@dataclass(frozen=True)
class CallLogSummary:
    total_calls: int = 0
    successful_calls: int = 0
    cached_calls: int = 0
    average_response_time_ms: float = 0.0
    total_cost: float = 0.0


class ProviderCallLog(Protocol):
    def record(self, call: ProviderCallRecord) -> None:  # pragma: no cover - protocol
        ...

    def summarize(self, user_id: Optional[str] = None) -> CallLogSummary:  # pragma: no cover - protocol
        ...


def summarize_records(records: List[ProviderCallRecord]) -> CallLogSummary:
    if not records:
        return CallLogSummary()
    timings = [record.response_time_ms for record in records]
    return CallLogSummary(
        total_calls=len(records),
        successful_calls=sum(1 for record in records if record.success),
        cached_calls=sum(1 for record in records if record.cache_hit),
        average_response_time_ms=sum(timings) / len(timings),
        total_cost=sum(record.cost or 0.0 for record in records),
    )


def publish_call(call: ProviderCallRecord) -> None:
    emit_event(
        "provider_call",
        provider=call.provider,
        endpoint=call.endpoint,
        success=call.success,
        cache_hit=call.cache_hit,
        response_time_ms=round(call.response_time_ms, 2),
        user_id=call.user_id,
        error_kind=call.error_kind,
    )


class MemoryProviderCallLog:
    """Keeps records in process memory."""

    def __init__(self) -> None:
        self._records: List[ProviderCallRecord] = []
        self._lock = RLock()

    def record(self, call: ProviderCallRecord) -> None:
        with self._lock:
            self._records.append(call)
        publish_call(call)

    def records(self, user_id: Optional[str] = None) -> List[ProviderCallRecord]:
        with self._lock:
            return [record for record in self._records if user_id is None or record.user_id == user_id]

    def summarize(self, user_id: Optional[str] = None) -> CallLogSummary:
        return summarize_records(self.records(user_id))


__all__ = [
    "CallLogSummary",
    "MemoryProviderCallLog",
    "ProviderCallLog",
    "publish_call",
    "summarize_records",
]
