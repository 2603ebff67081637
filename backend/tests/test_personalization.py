from __future__ import annotations

from learnpath.learning_models import QuizAttempt, UserProfile
from learnpath.personalization import build_personalized_plan, sessions_per_week


def _attempt(quiz_id: str, score: int, weaknesses=(), strengths=()) -> QuizAttempt:
    return QuizAttempt(
        quiz_id=quiz_id,
        course_id="CS101",
        score=score,
        total=10,
        weaknesses=list(weaknesses),
        strengths=list(strengths),
    )


def test_sessions_follow_available_time() -> None:
    assert sessions_per_week() == 7
    assert sessions_per_week(UserProfile(available_hours_per_week=2.5, study_session_minutes=45)) == 3
    assert sessions_per_week(UserProfile(available_hours_per_week=0.1)) == 1


def test_weak_topics_get_sessions_in_proportion() -> None:
    attempts = [
        _attempt("q1", 4, weaknesses=["recursion"]),
        _attempt("q2", 5, weaknesses=["recursion"]),
        _attempt("q3", 6, weaknesses=["loops"]),
        _attempt("q4", 9, strengths=["syntax"]),
    ]

    plan = build_personalized_plan(attempts, UserProfile(available_hours_per_week=4))

    assert plan.prioritized_topics == ["recursion", "loops"]
    assert [session.topic for session in plan.schedule] == ["recursion", "recursion", "loops", "Review: syntax"]
    assert [session.session for session in plan.schedule] == [1, 2, 3, 4]
    assert plan.advice == "Focus on your weakest topic: recursion. Allocate more time to it this week."


def test_schedule_never_exceeds_weekly_sessions() -> None:
    attempts = [_attempt(f"q{index}", 3, weaknesses=["recursion", "loops"]) for index in range(5)]

    plan = build_personalized_plan(attempts, UserProfile(available_hours_per_week=2))

    assert len(plan.schedule) == 2
    assert {session.topic for session in plan.schedule} == {"recursion"}


def test_low_scores_without_weaknesses_use_generic_topics() -> None:
    plan = build_personalized_plan([_attempt("q1", 5)])

    assert plan.prioritized_topics == ["core concepts", "problem solving", "application"]


def test_only_recent_attempts_count() -> None:
    attempts = [_attempt(f"q{index}", 9) for index in range(10)] + [_attempt("old", 2, weaknesses=["io"])]

    plan = build_personalized_plan(attempts)

    assert plan.prioritized_topics == []
    assert plan.schedule == []
    assert plan.advice.startswith("Keep up the good work!")
