"""Aggregates quiz attempts into a performance profile."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .learning_models import PerformanceProfile, QuizAttempt

logger = logging.getLogger(__name__)

GAP_THRESHOLD = 60.0
STRENGTH_THRESHOLD = 80.0
MAX_LEARNING_GAPS = 3
MAX_STRENGTHS = 2
RUSHED_SECONDS = 30.0
OVERTHOUGHT_SECONDS = 120.0


@dataclass
class _Tally:
    correct: int = 0
    total: int = 0

    def record(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total * 100


def calculate_overall_percentage(attempts: Sequence[QuizAttempt]) -> float:
    total = sum(attempt.total for attempt in attempts)
    if total <= 0:
        return 0.0
    return sum(attempt.score for attempt in attempts) / total * 100


def _rank_by_frequency(labels: Iterable[str], limit: int) -> List[str]:
    counts = Counter(label for label in labels if label)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [label for label, _ in ranked[:limit]]


def identify_weak_areas(attempts: Sequence[QuizAttempt], limit: int = 3) -> List[str]:
    """Most frequently reported weaknesses; ties keep first-seen order."""
    return _rank_by_frequency((area for attempt in attempts for area in attempt.weaknesses), limit)


def identify_strong_areas(attempts: Sequence[QuizAttempt], limit: int = 2) -> List[str]:
    return _rank_by_frequency((area for attempt in attempts for area in attempt.strengths), limit)


def analyze_performance(
    attempts: Sequence[QuizAttempt],
    course_id: Optional[str] = None,
) -> PerformanceProfile:
    """Build a :class:`PerformanceProfile` from quiz attempts.

    Attempts are filtered to ``course_id`` when given. Timing comes only from
    question details; attempts without them add questions but no time.
    """
    selected = [attempt for attempt in attempts if course_id is None or attempt.course_id == course_id]
    if not selected:
        return PerformanceProfile()

    total_questions = sum(attempt.total for attempt in selected)
    overall = calculate_overall_percentage(selected)

    topics: Dict[str, _Tally] = {}
    difficulties: Dict[str, _Tally] = {}
    total_time = 0.0
    rushed = 0
    overthought = 0
    has_details = False

    for attempt in selected:
        if not attempt.question_details:
            continue
        has_details = True
        for question in attempt.question_details:
            for tag in question.tags:
                topics.setdefault(tag, _Tally()).record(question.is_correct)
            difficulties.setdefault(question.difficulty, _Tally()).record(question.is_correct)
            total_time += question.time_spent_seconds
            if question.time_spent_seconds < RUSHED_SECONDS and not question.is_correct:
                rushed += 1
            if question.time_spent_seconds > OVERTHOUGHT_SECONDS and question.is_correct:
                overthought += 1

    topic_scores = {topic: tally.percentage for topic, tally in topics.items()}
    difficulty_scores = {level: tally.percentage for level, tally in difficulties.items()}

    avg_time = total_time / total_questions if total_questions > 0 else 0.0
    efficiency = overall / (avg_time / 60) if avg_time > 0 else 0.0

    gaps = sorted(
        (topic for topic, score in topic_scores.items() if score < GAP_THRESHOLD),
        key=lambda topic: topic_scores[topic],
    )[:MAX_LEARNING_GAPS]
    strengths = sorted(
        (topic for topic, score in topic_scores.items() if score > STRENGTH_THRESHOLD),
        key=lambda topic: topic_scores[topic],
        reverse=True,
    )[:MAX_STRENGTHS]

    confidence = min(
        100,
        len(selected) * 20
        + (30 if has_details else 0)
        + (20 if overall > 0 else 0)
        + (30 if total_questions > 10 else 0),
    )

    profile = PerformanceProfile(
        overall_score_pct=min(overall, 100.0),
        topic_score_pct=topic_scores,
        difficulty_score_pct=difficulty_scores,
        avg_time_per_question=round(avg_time, 2),
        time_efficiency=round(efficiency, 2),
        rushed_count=rushed,
        overthought_count=overthought,
        learning_gaps=gaps,
        strengths=strengths,
        improvement_areas=list(gaps),
        recommended_focus=gaps[:2],
        confidence_level=confidence,
        attempt_count=len(selected),
        total_questions=total_questions,
    )
    logger.debug(
        "Analyzed %s attempts (course=%s, overall=%.1f, gaps=%s)",
        len(selected),
        course_id,
        overall,
        gaps,
    )
    return profile


__all__ = [
    "analyze_performance",
    "calculate_overall_percentage",
    "identify_strong_areas",
    "identify_weak_areas",
]
