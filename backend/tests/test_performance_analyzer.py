from __future__ import annotations

import pytest

from learnpath.difficulty_adviser import DifficultyTier, determine_adaptive_difficulty
from learnpath.learning_models import QuestionDetail, QuizAttempt
from learnpath.performance_analyzer import (
    analyze_performance,
    calculate_overall_percentage,
    identify_strong_areas,
    identify_weak_areas,
)


def _question(question_id: str, tag: str, is_correct: bool, seconds: float = 60.0) -> QuestionDetail:
    return QuestionDetail(
        question_id=question_id,
        is_correct=is_correct,
        time_spent_seconds=seconds,
        tags=[tag],
    )


def test_overall_percentage_pools_questions_across_attempts() -> None:
    attempts = [
        QuizAttempt(quiz_id="q1", course_id="CS101", score=3, total=10),
        QuizAttempt(quiz_id="q2", course_id="CS101", score=7, total=10),
    ]

    profile = analyze_performance(attempts)

    assert calculate_overall_percentage(attempts) == pytest.approx(50.0)
    assert profile.overall_score_pct == pytest.approx(50.0)
    assert profile.attempt_count == 2
    assert profile.total_questions == 20


def test_empty_attempts_produce_zero_profile() -> None:
    profile = analyze_performance([])

    assert profile.overall_score_pct == 0.0
    assert profile.learning_gaps == []
    assert profile.strengths == []
    assert profile.confidence_level == 0


def test_question_details_drive_gaps_strengths_and_timing() -> None:
    attempt = QuizAttempt(
        quiz_id="q1",
        course_id="CS101",
        score=2,
        total=4,
        question_details=[
            _question("a", "recursion", False, seconds=10),
            _question("b", "recursion", False, seconds=10),
            _question("c", "loops", True, seconds=150),
            _question("d", "loops", True),
        ],
    )

    profile = analyze_performance([attempt])

    assert profile.topic_score_pct == {"recursion": 0.0, "loops": 100.0}
    assert profile.learning_gaps == ["recursion"]
    assert profile.strengths == ["loops"]
    assert profile.recommended_focus == ["recursion"]
    assert profile.rushed_count == 2
    assert profile.overthought_count == 1
    assert profile.avg_time_per_question == pytest.approx(57.5)
    assert profile.difficulty_score_pct == {"medium": 50.0}
    # one attempt + details + non-zero score
    assert profile.confidence_level == 70


def test_course_filter_ignores_other_courses() -> None:
    attempts = [
        QuizAttempt(quiz_id="q1", course_id="CS101", score=9, total=10),
        QuizAttempt(quiz_id="q2", course_id="MATH201", score=1, total=10),
    ]

    profile = analyze_performance(attempts, course_id="MATH201")

    assert profile.overall_score_pct == pytest.approx(10.0)
    assert profile.attempt_count == 1
    assert analyze_performance(attempts, course_id="unknown").attempt_count == 0


def test_attempt_level_timing_is_ignored_without_question_details() -> None:
    attempt = QuizAttempt(quiz_id="q1", course_id="CS101", score=6, total=10, time_spent_seconds=120)

    profile = analyze_performance([attempt])

    assert profile.avg_time_per_question == 0.0
    assert profile.time_efficiency == 0.0
    assert determine_adaptive_difficulty(profile) is DifficultyTier.INTERMEDIATE


def test_mixed_attempts_only_count_question_timings() -> None:
    detailed = QuizAttempt(
        quiz_id="q1",
        course_id="CS101",
        score=1,
        total=2,
        time_spent_seconds=900,
        question_details=[_question("a", "loops", True, 45.0), _question("b", "loops", False, 75.0)],
    )
    bare = QuizAttempt(quiz_id="q2", course_id="CS101", score=1, total=2, time_spent_seconds=900)

    profile = analyze_performance([detailed, bare])

    assert profile.avg_time_per_question == pytest.approx(30.0)


def test_weak_and_strong_areas_rank_by_frequency() -> None:
    attempts = [
        QuizAttempt(quiz_id="q1", course_id="CS101", score=4, total=10, weaknesses=["loops", "recursion"]),
        QuizAttempt(quiz_id="q2", course_id="CS101", score=5, total=10, weaknesses=["recursion"], strengths=["syntax"]),
        QuizAttempt(quiz_id="q3", course_id="CS101", score=6, total=10, weaknesses=["io", "sorting"]),
    ]

    assert identify_weak_areas(attempts) == ["recursion", "loops", "io"]
    assert identify_strong_areas(attempts) == ["syntax"]
