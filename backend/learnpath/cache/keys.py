"""Canonical cache keys for recommendation and study plan requests."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Dict, Optional, Sequence, Tuple

from ..errors import CacheKeyError
from ..learning_models import QuizAttempt, QuizContext

_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def _digest(payload: Any) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _attempt_sort_key(item: Dict[str, Any]) -> Tuple[Any, ...]:
    # retakes share a quiz id, so every projected field takes part in the order
    time_spent = item["time_spent"]
    return (
        item["quiz_id"],
        item["course_id"],
        item["score"],
        item["total"],
        -1 if time_spent is None else time_spent,
    )


def recommendation_key(
    attempts: Sequence[QuizAttempt],
    course_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> str:
    """Hash of the attempts in a canonical order, so reordering the input yields the same key.

    Requests scoped to a course hash the course id alongside the attempts.
    General requests for a known learner are personalized, so they hash the
    learner id instead.
    """
    projection = sorted(
        (
            {
                "quiz_id": attempt.quiz_id,
                "course_id": attempt.course_id,
                "score": attempt.score,
                "total": attempt.total,
                "time_spent": attempt.time_spent_seconds,
            }
            for attempt in attempts
        ),
        key=_attempt_sort_key,
    )
    if course_id:
        return _digest({"course_id": course_id, "attempts": projection})
    if user_id:
        return _digest({"user_id": user_id, "attempts": projection})
    return _digest(projection)


def study_plan_key(quiz_context: QuizContext) -> str:
    return _digest(
        {
            "quiz_id": quiz_context.quiz_id,
            "course_id": quiz_context.course_id,
            "score": quiz_context.score,
            "total_questions": quiz_context.total_questions,
            "time_spent": quiz_context.time_spent_seconds,
            "difficulty": quiz_context.difficulty,
        }
    )


def is_valid_key(key: object) -> bool:
    return isinstance(key, str) and bool(_KEY_PATTERN.match(key))


def validate_key(key: object) -> str:
    if not is_valid_key(key):
        raise CacheKeyError(f"Cache key must be a 64-character hex SHA-256 digest, got {key!r}.")
    return key  # type: ignore[return-value]


__all__ = ["is_valid_key", "recommendation_key", "study_plan_key", "validate_key"]
