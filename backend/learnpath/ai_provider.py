"""Recommendations from an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from .config import Settings
from .errors import ConfigurationError, DataError, TransientError
from .learning_models import (
    Course,
    PerformanceProfile,
    QuizAttempt,
    RecommendationCandidate,
    UserProfile,
)
from .ranking import rank_candidates

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert educational AI assistant that provides personalized learning recommendations."
    " Respond only with a JSON object of the form {\"recommendations\": [...]} where every item has the keys"
    " title, description, resource_type, difficulty, url, reasoning, priority (1-5), estimated_time and tags."
)
COST_PER_1K_TOKENS = 0.002
TOKENS_PER_RECOMMENDATION = 100

_STYLE_HINTS = {
    "visual": "videos, diagrams, and visual content",
    "auditory": "podcasts, audio lectures, and discussions",
    "kinesthetic": "hands-on exercises, projects, and interactive content",
    "reading": "articles, books, and written materials",
}


class RecommendationProvider(Protocol):
    name: str

    def recommend(
        self,
        attempts: Sequence[QuizAttempt],
        user_profile: UserProfile,
        course: Optional[Course] = None,
        performance: Optional[PerformanceProfile] = None,
    ) -> "ProviderRecommendations":  # pragma: no cover - protocol
        ...


class _CandidatePayload(BaseModel):
    title: str
    description: str = "No description available"
    resource_type: str = "Resource"
    difficulty: str = "intermediate"
    url: str = "https://example.com"
    reasoning: str = "Recommended based on your learning profile"
    priority: int = 3
    estimated_time: str = "30 minutes"
    tags: List[str] = Field(default_factory=list)

    @field_validator("priority", mode="before")
    @classmethod
    def _clamp_priority(cls, value: Any) -> int:
        try:
            priority = int(value)
        except (TypeError, ValueError):
            return 3
        return max(1, min(5, priority))

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


class _CompletionPayload(BaseModel):
    recommendations: List[_CandidatePayload] = Field(default_factory=list)


@dataclass(frozen=True)
class ProviderRecommendations:
    recommendations: List[RecommendationCandidate]
    confidence: int
    latency_ms: int
    cost: float
    tokens: int


def estimate_set_confidence(
    recommendations: Sequence[RecommendationCandidate],
    performance: Optional[PerformanceProfile] = None,
) -> int:
    confidence = 70
    if len(recommendations) >= 5:
        confidence += 10
    if len(recommendations) >= 3:
        confidence += 5
    if recommendations:
        average_priority = sum(item.priority for item in recommendations) / len(recommendations)
        if average_priority <= 2:
            confidence += 10
    if performance is not None:
        confidence += 10
    if len({item.resource_type for item in recommendations}) >= 3:
        confidence += 5
    return min(100, confidence)


def estimate_cost(recommendation_count: int) -> float:
    return recommendation_count * TOKENS_PER_RECOMMENDATION / 1000 * COST_PER_1K_TOKENS


def estimate_tokens(attempts: Sequence[QuizAttempt], user_profile: UserProfile) -> int:
    characters = sum(
        len(attempt.quiz_title or "") + len(" ".join(attempt.strengths)) + len(" ".join(attempt.weaknesses))
        for attempt in attempts
    )
    characters += len(user_profile.program) + len(" ".join(user_profile.interests))
    characters += len(" ".join(user_profile.recent_topics))
    return round(characters / 4)


def build_prompt(
    attempts: Sequence[QuizAttempt],
    user_profile: UserProfile,
    course: Optional[Course] = None,
    performance: Optional[PerformanceProfile] = None,
) -> str:
    context: Dict[str, Any] = {
        "program": user_profile.program,
        "quiz_results": [
            {
                "quiz": attempt.quiz_title or attempt.quiz_id,
                "course_id": attempt.course_id,
                "score_pct": round(attempt.percentage, 1),
                "strengths": attempt.strengths,
                "weaknesses": attempt.weaknesses,
            }
            for attempt in attempts
        ],
    }
    if course is not None:
        context["course"] = {"id": course.course_id, "title": course.title, "program": course.program_title}
    if performance is not None:
        context["performance"] = {
            "overall_pct": round(performance.overall_score_pct, 1),
            "learning_gaps": performance.learning_gaps,
            "strengths": performance.strengths,
        }
    if user_profile.learning_style:
        context["learning_style"] = _STYLE_HINTS.get(user_profile.learning_style, user_profile.learning_style)
    if user_profile.preferred_difficulty:
        context["preferred_difficulty"] = user_profile.preferred_difficulty
    if user_profile.available_hours_per_week:
        context["hours_per_week"] = user_profile.available_hours_per_week
    if user_profile.interests:
        context["interests"] = user_profile.interests
    if user_profile.recent_topics:
        context["recent_topics"] = user_profile.recent_topics
    return "Recommend up to 5 learning resources for this student.\n" + json.dumps(context, sort_keys=True)


class ChatCompletionRecommendationProvider:
    """Calls ``{base_url}/chat/completions`` and validates the JSON answer."""

    def __init__(self, settings: Settings, *, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self._client = client
        self.name = settings.ai_provider

    @property
    def endpoint(self) -> str:
        return f"{self._settings.ai_base_url.rstrip('/')}/chat/completions"

    def recommend(
        self,
        attempts: Sequence[QuizAttempt],
        user_profile: UserProfile,
        course: Optional[Course] = None,
        performance: Optional[PerformanceProfile] = None,
    ) -> ProviderRecommendations:
        if self._settings.ai_mode == "off":
            raise ConfigurationError("AI recommendations are disabled.")
        if not self._settings.ai_configured:
            raise ConfigurationError(f"{self.name} API key is not configured.")

        body = {
            "model": self._settings.ai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(attempts, user_profile, course, performance)},
            ],
            "temperature": 0.7,
            "max_tokens": 2000,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self._settings.ai_api_key}"}

        started = perf_counter()
        local_client = self._client or httpx.Client(timeout=self._settings.ai_timeout_seconds)
        close_client = self._client is None
        try:
            response = local_client.post(self.endpoint, json=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransientError(f"{self.name} request failed: {exc}") from exc
        finally:
            if close_client:
                local_client.close()

        try:
            content = response.json()["choices"][0]["message"]["content"]
            parsed = _CompletionPayload.model_validate_json(content or "")
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as exc:
            raise DataError(f"{self.name} returned an invalid payload: {exc}") from exc

        if not parsed.recommendations:
            raise DataError(f"{self.name} returned no recommendations.")

        candidates = [RecommendationCandidate(**item.model_dump()) for item in parsed.recommendations]
        confidence = estimate_set_confidence(candidates, performance)
        ranked = rank_candidates(
            candidate.model_copy(update={"confidence": confidence}) for candidate in candidates
        )
        latency_ms = int((perf_counter() - started) * 1000)
        logger.debug("%s returned %s recommendations in %sms", self.name, len(ranked), latency_ms)
        return ProviderRecommendations(
            recommendations=ranked,
            confidence=confidence,
            latency_ms=latency_ms,
            cost=estimate_cost(len(ranked)),
            tokens=estimate_tokens(attempts, user_profile),
        )


__all__ = [
    "ChatCompletionRecommendationProvider",
    "ProviderRecommendations",
    "RecommendationProvider",
    "build_prompt",
    "estimate_cost",
    "estimate_set_confidence",
    "estimate_tokens",
]
