"""Structured events for provider calls and cache activity.

Events fan out to in-process listeners and are written to the
``learnpath.telemetry`` logger as one JSON object per line.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger("learnpath.telemetry")

KNOWN_EVENTS: FrozenSet[str] = frozenset({"provider_call", "cache_hit", "cache_write", "cache_cleanup"})

Listener = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


_subscriptions: List[Tuple[Listener, Optional[FrozenSet[str]]]] = []
_lock = RLock()


def register_listener(listener: Listener, events: Optional[Iterable[str]] = None) -> None:
    """Subscribe to every event, or only to the named ones."""
    wanted = frozenset(events) if events is not None else None
    with _lock:
        _subscriptions.append((listener, wanted))


def clear_listeners() -> None:
    with _lock:
        _subscriptions.clear()


@contextmanager
def capture_events(*names: str) -> Iterator[List[TelemetryEvent]]:
    """Collect events emitted inside the block; used by tests."""
    captured: List[TelemetryEvent] = []
    subscription = (captured.append, frozenset(names) if names else None)
    with _lock:
        _subscriptions.append(subscription)
    try:
        yield captured
    finally:
        with _lock:
            _subscriptions.remove(subscription)


def emit_event(name: str, **fields: Any) -> None:
    if name not in KNOWN_EVENTS:
        logger.debug("Emitting unregistered telemetry event %s", name)
    event = TelemetryEvent(name=name, payload={key: _plain(value) for key, value in fields.items()})

    with _lock:
        listeners = [listener for listener, wanted in _subscriptions if wanted is None or name in wanted]

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    if logger.isEnabledFor(logging.INFO):
        logger.info(json.dumps({"event": name, **event.payload}, default=str, sort_keys=True))


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


__all__ = [
    "KNOWN_EVENTS",
    "TelemetryEvent",
    "capture_events",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
