"""Study plans authored by an OpenAI agent."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from time import perf_counter
from typing import List

from agents import Agent, ModelSettings, Runner
from pydantic import BaseModel, Field, ValidationError

from .config import Settings
from .errors import ConfigurationError, DataError, TransientError
from .learning_models import QuizContext, StudyPlan, StudyPlanResources, TimeAllocation

logger = logging.getLogger(__name__)

ADVISOR_INSTRUCTIONS = (
    "You are a study coach. Given a student's quiz result, write a focused study plan for the course."
    " Time allocation percentages must add up to exactly 100. Always respond with JSON that matches the"
    " provided schema."
)


class StudyPlanAdvisorPayload(BaseModel):
    current_level: str
    target_score: float = Field(ge=0.0, le=100.0)
    study_steps: List[str] = Field(default_factory=list)
    personalized_advice: str = ""
    focus_areas: List[str] = Field(default_factory=list)
    time_allocation: TimeAllocation
    weekly_goals: List[str] = Field(default_factory=list)
    resources: StudyPlanResources = Field(default_factory=StudyPlanResources)
    estimated_improvement: str = ""
    next_milestone: str = ""

    def to_domain(self, quiz_context: QuizContext, provider: str) -> StudyPlan:
        return StudyPlan(
            course_title=quiz_context.course_title,
            program_id=quiz_context.program_id,
            generated_by=provider,
            **self.model_dump(),
        )


@dataclass(frozen=True)
class StudyPlanAdvice:
    plan: StudyPlan
    latency_ms: float


def estimate_study_plan_confidence(plan: StudyPlan, percentage: float) -> int:
    confidence = 70
    if len(plan.study_steps) >= 5:
        confidence += 10
    if len(plan.focus_areas) >= 3:
        confidence += 10
    if len(plan.weekly_goals) >= 3:
        confidence += 10
    if percentage > 80:
        confidence += 5
    elif percentage > 60:
        confidence += 10
    else:
        confidence += 15
    resources = plan.resources
    if len(resources.primary) + len(resources.supplementary) + len(resources.practice) >= 5:
        confidence += 5
    return min(100, confidence)


_AGENT_CACHE: dict[str, Agent] = {}


def _advisor_agent(model: str) -> Agent:
    if model not in _AGENT_CACHE:
        _AGENT_CACHE[model] = Agent(
            name="LearnPath Study Plan Advisor",
            instructions=ADVISOR_INSTRUCTIONS,
            model=model,
            tools=[],
            model_settings=ModelSettings(store=False),
        )
    return _AGENT_CACHE[model]


class StudyPlanAdvisor:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.name = settings.study_plan_provider

    def _ensure_ready(self) -> None:
        if self._settings.ai_mode == "off":
            raise ConfigurationError("AI study plans are disabled.")
        if not (self._settings.openai_api_key or os.getenv("OPENAI_API_KEY")):
            raise ConfigurationError("OPENAI_API_KEY is not configured for the study plan advisor.")

    def advise(self, quiz_context: QuizContext) -> StudyPlanAdvice:
        self._ensure_ready()
        agent = _advisor_agent(self._settings.study_plan_model)
        schema = StudyPlanAdvisorPayload.model_json_schema()
        context = quiz_context.model_dump(mode="json", exclude={"user_id"})
        context["percentage"] = round(quiz_context.percentage, 1)
        prompt = (
            "Respond strictly with JSON. Schema:\n"
            f"{json.dumps(schema, ensure_ascii=False, indent=2)}\n\n"
            "QUIZ RESULT:\n"
            f"{json.dumps(context, ensure_ascii=False, indent=2)}"
        )

        started = perf_counter()
        try:
            result = asyncio.run(
                asyncio.wait_for(Runner.run(agent, prompt), timeout=self._settings.ai_timeout_seconds)
            )
        except asyncio.TimeoutError as exc:
            raise TransientError(
                f"Study plan advisor timed out after {self._settings.ai_timeout_seconds}s"
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise TransientError(f"Study plan advisor call failed: {exc}") from exc
        latency_ms = round((perf_counter() - started) * 1000.0, 2)

        try:
            payload = StudyPlanAdvisorPayload.model_validate_json(result.final_output)
        except (ValidationError, ValueError, TypeError) as exc:
            raise DataError(f"Study plan advisor returned invalid payload: {exc}") from exc

        logger.debug("Study plan advisor succeeded (course=%s, latency_ms=%s)", quiz_context.course_id, latency_ms)
        return StudyPlanAdvice(plan=payload.to_domain(quiz_context, self.name), latency_ms=latency_ms)


__all__ = [
    "StudyPlanAdvice",
    "StudyPlanAdvisor",
    "StudyPlanAdvisorPayload",
    "estimate_study_plan_confidence",
]
