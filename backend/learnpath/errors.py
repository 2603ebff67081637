"""Error taxonomy shared by the providers, the cache and the orchestrator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    DATA = "data"
    TRANSIENT = "transient"
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"


class RecommendationEngineError(RuntimeError):
    """Base class for failures that trigger a fallback instead of reaching the caller."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class ConfigurationError(RecommendationEngineError):
    """Raised when a provider is disabled, unconfigured or unreachable by configuration."""

    kind = ErrorKind.CONFIGURATION


class DataError(RecommendationEngineError):
    """Raised when a course or resource is missing, or a provider returns an unusable payload."""

    kind = ErrorKind.DATA


class TransientError(RecommendationEngineError):
    """Raised on network failures, timeouts and non-2xx provider responses."""

    kind = ErrorKind.TRANSIENT


class CacheKeyError(RecommendationEngineError):
    """Raised when a cache key is not a canonical SHA-256 digest."""

    kind = ErrorKind.VALIDATION


def classify(exc: BaseException) -> ErrorKind:
    if isinstance(exc, RecommendationEngineError):
        return exc.kind
    return ErrorKind.UNEXPECTED


__all__ = [
    "CacheKeyError",
    "ConfigurationError",
    "DataError",
    "ErrorKind",
    "RecommendationEngineError",
    "TransientError",
    "classify",
]
