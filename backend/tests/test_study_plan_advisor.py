from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from learnpath import study_plan_advisor
from learnpath.config import Settings
from learnpath.errors import ConfigurationError, DataError, TransientError
from learnpath.learning_models import QuizContext
from learnpath.study_plan_advisor import StudyPlanAdvisor, estimate_study_plan_confidence

CONTEXT = QuizContext(
    quiz_id="quiz-7",
    course_id="CS101",
    program_id="cs",
    course_title="Intro to Programming",
    score=6,
    total_questions=10,
    user_id="ada",
)

PAYLOAD = {
    "current_level": "Intermediate",
    "target_score": 80,
    "study_steps": ["Trace recursive calls", "Write base cases first", "Pair on exercises"],
    "personalized_advice": "Slow down on recursion questions.",
    "focus_areas": ["recursion", "loops", "debugging"],
    "time_allocation": {
        "concept_review": 30,
        "practice_problems": 40,
        "advanced_topics": 20,
        "real_world_applications": 10,
    },
    "weekly_goals": ["Finish 10 exercises"],
    "resources": {"primary": ["Course notes"], "supplementary": [], "practice": ["Exercise set 3"]},
    "estimated_improvement": "10-15% in two weeks",
    "next_milestone": "Score 75% on the next quiz",
}


def _settings(**overrides: object) -> Settings:
    values = {"LEARNPATH_AI_MODE": "fallback", "OPENAI_API_KEY": "sk-test", "LEARNPATH_AI_TIMEOUT_SECONDS": 1}
    values.update(overrides)
    return Settings(**values)


def _install_runner(monkeypatch, run) -> list:
    prompts: list = []

    async def recording_run(agent, prompt):
        prompts.append(prompt)
        return await run()

    monkeypatch.setattr(study_plan_advisor, "_advisor_agent", lambda model: SimpleNamespace(model=model))
    monkeypatch.setattr(study_plan_advisor, "Runner", SimpleNamespace(run=recording_run))
    return prompts


def test_advisor_returns_validated_plan(monkeypatch) -> None:
    async def run():
        return SimpleNamespace(final_output=json.dumps(PAYLOAD))

    prompts = _install_runner(monkeypatch, run)

    advice = StudyPlanAdvisor(_settings()).advise(CONTEXT)

    assert advice.plan.generated_by == "openai-agent"
    assert advice.plan.course_title == "Intro to Programming"
    assert advice.plan.program_id == "cs"
    assert advice.plan.time_allocation.practice_problems == 40
    assert advice.latency_ms >= 0
    assert '"percentage": 60.0' in prompts[0]
    assert "\"user_id\"" not in prompts[0]


def test_invalid_agent_output_is_data_error(monkeypatch) -> None:
    broken = dict(PAYLOAD, time_allocation={**PAYLOAD["time_allocation"], "concept_review": 90})

    async def run():
        return SimpleNamespace(final_output=json.dumps(broken))

    _install_runner(monkeypatch, run)

    with pytest.raises(DataError):
        StudyPlanAdvisor(_settings()).advise(CONTEXT)


def test_agent_failures_and_timeouts_are_transient(monkeypatch) -> None:
    async def failing():
        raise RuntimeError("rate limited")

    _install_runner(monkeypatch, failing)
    with pytest.raises(TransientError):
        StudyPlanAdvisor(_settings()).advise(CONTEXT)

    async def slow():
        await asyncio.sleep(1)
        return SimpleNamespace(final_output=json.dumps(PAYLOAD))

    _install_runner(monkeypatch, slow)
    with pytest.raises(TransientError):
        StudyPlanAdvisor(_settings(LEARNPATH_AI_TIMEOUT_SECONDS=0.01)).advise(CONTEXT)


def test_advisor_requires_configuration(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError):
        StudyPlanAdvisor(_settings(OPENAI_API_KEY=None)).advise(CONTEXT)
    with pytest.raises(ConfigurationError):
        StudyPlanAdvisor(_settings(LEARNPATH_AI_MODE="off")).advise(CONTEXT)


def test_study_plan_confidence_rewards_complete_plans() -> None:
    plan = study_plan_advisor.StudyPlanAdvisorPayload.model_validate(PAYLOAD).to_domain(CONTEXT, "openai-agent")

    # 70 base, three focus areas, mid score
    assert estimate_study_plan_confidence(plan, 65.0) == 90
    assert estimate_study_plan_confidence(plan, 90.0) == 85
