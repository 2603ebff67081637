"""Storage backends for cached recommendations and study plans."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from threading import RLock
from typing import Dict, Optional, Protocol, Tuple

from ..learning_models import CacheEntry, CacheKind


class CacheStore(Protocol):
    """Persistence contract used by :class:`RecommendationCache`."""

    def record_hit(
        self, key: str, provider: str, kind: CacheKind, now: datetime
    ) -> Optional[CacheEntry]:  # pragma: no cover - protocol
        """Return the live entry after bumping ``hit_count`` and ``last_accessed_at`` atomically."""
        ...

    def upsert(self, entry: CacheEntry) -> None:  # pragma: no cover - protocol
        ...

    def delete_expired(
        self, kind: CacheKind, now: datetime, user_id: Optional[str] = None
    ) -> int:  # pragma: no cover - protocol
        ...

    def evict_overflow(
        self, kind: CacheKind, user_id: Optional[str], max_size: int
    ) -> int:  # pragma: no cover - protocol
        ...

    def count(self, kind: CacheKind, user_id: Optional[str] = None) -> int:  # pragma: no cover - protocol
        ...

    def clear(self, user_id: Optional[str] = None) -> int:  # pragma: no cover - protocol
        ...


_EntryKey = Tuple[str, str, str]


class MemoryCacheStore:
    """Process-local store; every operation holds one lock so hit bookkeeping stays consistent."""

    def __init__(self) -> None:
        self._entries: "OrderedDict[_EntryKey, CacheEntry]" = OrderedDict()
        self._lock = RLock()

    @staticmethod
    def _slot(key: str, provider: str, kind: str) -> _EntryKey:
        return (kind, provider, key)

    def record_hit(self, key: str, provider: str, kind: CacheKind, now: datetime) -> Optional[CacheEntry]:
        slot = self._slot(key, provider, kind)
        with self._lock:
            entry = self._entries.get(slot)
            if entry is None or entry.is_expired(now):
                return None
            updated = entry.model_copy(update={"hit_count": entry.hit_count + 1, "last_accessed_at": now})
            self._entries[slot] = updated
            self._entries.move_to_end(slot)
            return updated.model_copy(deep=True)

    def upsert(self, entry: CacheEntry) -> None:
        slot = self._slot(entry.key, entry.provider, entry.kind)
        with self._lock:
            self._entries[slot] = entry.model_copy(deep=True)
            self._entries.move_to_end(slot)

    def delete_expired(self, kind: CacheKind, now: datetime, user_id: Optional[str] = None) -> int:
        with self._lock:
            doomed = [
                slot
                for slot, entry in self._entries.items()
                if entry.kind == kind
                and entry.expires_at < now
                and (user_id is None or entry.user_id == user_id)
            ]
            for slot in doomed:
                del self._entries[slot]
            return len(doomed)

    def evict_overflow(self, kind: CacheKind, user_id: Optional[str], max_size: int) -> int:
        with self._lock:
            scoped = [
                (slot, entry)
                for slot, entry in self._entries.items()
                if entry.kind == kind and entry.user_id == user_id
            ]
            overflow = len(scoped) - max_size
            if overflow <= 0:
                return 0
            scoped.sort(key=lambda item: item[1].last_accessed_at)
            for slot, _ in scoped[:overflow]:
                del self._entries[slot]
            return overflow

    def count(self, kind: CacheKind, user_id: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1
                for entry in self._entries.values()
                if entry.kind == kind and (user_id is None or entry.user_id == user_id)
            )

    def clear(self, user_id: Optional[str] = None) -> int:
        with self._lock:
            if user_id is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            doomed = [slot for slot, entry in self._entries.items() if entry.user_id == user_id]
            for slot in doomed:
                del self._entries[slot]
            return len(doomed)

    def snapshot(self) -> Dict[_EntryKey, CacheEntry]:
        """Copy of the current entries, mainly for tests."""
        with self._lock:
            return {slot: entry.model_copy(deep=True) for slot, entry in self._entries.items()}


__all__ = ["CacheStore", "MemoryCacheStore"]
