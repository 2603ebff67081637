from __future__ import annotations

import json

import httpx
import pytest

from learnpath.ai_provider import ChatCompletionRecommendationProvider, build_prompt, estimate_cost
from learnpath.config import Settings
from learnpath.errors import ConfigurationError, DataError, TransientError
from learnpath.learning_models import QuizAttempt, UserProfile

ATTEMPTS = [
    QuizAttempt(
        quiz_id="q1",
        course_id="CS101",
        quiz_title="Loops and Recursion",
        score=4,
        total=10,
        weaknesses=["recursion"],
    )
]


def _settings(**overrides: object) -> Settings:
    values = {
        "LEARNPATH_AI_MODE": "fallback",
        "LEARNPATH_AI_PROVIDER": "deepseek",
        "LEARNPATH_AI_BASE_URL": "https://ai.test/v1/",
        "LEARNPATH_AI_API_KEY": "test-key",
    }
    values.update(overrides)
    return Settings(**values)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _provider(handler, **overrides: object) -> ChatCompletionRecommendationProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ChatCompletionRecommendationProvider(_settings(**overrides), client=client)


def test_successful_completion_is_validated_and_ranked() -> None:
    seen: list[httpx.Request] = []
    answer = {
        "recommendations": [
            {"title": "Recursion Visualized", "priority": "9", "tags": "recursion, visual"},
            {"title": "Base Cases First", "priority": 1, "resource_type": "Article"},
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion(json.dumps(answer)))

    result = _provider(handler).recommend(ATTEMPTS, UserProfile(program="Computer Science"))

    assert str(seen[0].url) == "https://ai.test/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer test-key"
    body = json.loads(seen[0].content)
    assert body["response_format"] == {"type": "json_object"}
    assert [item.title for item in result.recommendations] == ["Base Cases First", "Recursion Visualized"]
    assert result.recommendations[1].priority == 5
    assert result.recommendations[1].tags == ["recursion", "visual"]
    assert result.confidence == 70
    assert all(item.confidence == 70 for item in result.recommendations)
    assert result.cost == pytest.approx(estimate_cost(2))
    assert result.tokens > 0


def test_server_errors_are_transient() -> None:
    provider = _provider(lambda request: httpx.Response(500, json={"error": "overloaded"}))

    with pytest.raises(TransientError):
        provider.recommend(ATTEMPTS, UserProfile())


def test_network_errors_are_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransientError):
        _provider(handler).recommend(ATTEMPTS, UserProfile())


@pytest.mark.parametrize(
    "payload",
    [
        _completion("this is not json"),
        _completion(json.dumps({"recommendations": []})),
        _completion(json.dumps({"recommendations": [{"description": "missing title"}]})),
        {"unexpected": True},
    ],
)
def test_unusable_payloads_are_data_errors(payload: dict) -> None:
    provider = _provider(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(DataError):
        provider.recommend(ATTEMPTS, UserProfile())


def test_missing_key_or_disabled_mode_is_configuration_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ConfigurationError):
        _provider(handler, LEARNPATH_AI_API_KEY=None).recommend(ATTEMPTS, UserProfile())
    with pytest.raises(ConfigurationError):
        _provider(handler, LEARNPATH_AI_API_KEY="your-api-key").recommend(ATTEMPTS, UserProfile())
    with pytest.raises(ConfigurationError):
        _provider(handler, LEARNPATH_AI_MODE="off").recommend(ATTEMPTS, UserProfile())


def test_prompt_carries_learner_context() -> None:
    prompt = build_prompt(
        ATTEMPTS,
        UserProfile(program="Computer Science", learning_style="kinesthetic", interests=["games"]),
    )

    assert "Computer Science" in prompt
    assert "hands-on exercises" in prompt
    assert "Loops and Recursion" in prompt
    assert "games" in prompt
