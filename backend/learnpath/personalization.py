"""Weekly study schedule built from recent quiz attempts."""

from __future__ import annotations

import math
from collections import Counter
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from .learning_models import QuizAttempt, StudySession, UserProfile

DEFAULT_HOURS_PER_WEEK = 7.0
DEFAULT_SESSION_MINUTES = 60
RECENT_ATTEMPT_LIMIT = 10
LOW_SCORE_PCT = 70.0
GENERIC_WEAK_TOPICS = ("core concepts", "problem solving", "application")


class PersonalizedPlan(BaseModel):
    prioritized_topics: List[str] = Field(default_factory=list)
    schedule: List[StudySession] = Field(default_factory=list)
    advice: str


def _topic_counts(attempts: Sequence[QuizAttempt]) -> Counter:
    counts: Counter = Counter()
    for attempt in attempts:
        counts.update(area for area in attempt.weaknesses if area)
    if counts:
        return counts
    # no reported weaknesses: low-scoring attempts count against generic topics
    for attempt in attempts:
        if attempt.percentage < LOW_SCORE_PCT:
            counts.update(GENERIC_WEAK_TOPICS)
    return counts


def sessions_per_week(user_profile: Optional[UserProfile] = None) -> int:
    hours = DEFAULT_HOURS_PER_WEEK
    minutes = DEFAULT_SESSION_MINUTES
    if user_profile is not None:
        hours = user_profile.available_hours_per_week or DEFAULT_HOURS_PER_WEEK
        minutes = user_profile.study_session_minutes or DEFAULT_SESSION_MINUTES
    return max(1, math.floor(hours * 60 / minutes))


def build_personalized_plan(
    attempts: Sequence[QuizAttempt],
    user_profile: Optional[UserProfile] = None,
) -> PersonalizedPlan:
    """Spread the week's sessions over weak topics, weakest first, then review strong ones.

    Only the most recent attempts are considered; callers pass attempts newest first.
    """
    recent = list(attempts)[:RECENT_ATTEMPT_LIMIT]
    counts = _topic_counts(recent)
    prioritized = [topic for topic, _ in sorted(counts.items(), key=lambda item: item[1], reverse=True)]
    total_sessions = sessions_per_week(user_profile)

    schedule: List[StudySession] = []
    for topic in prioritized:
        share = total_sessions * counts[topic] / max(len(recent), 1)
        for _ in range(max(1, math.floor(share + 0.5))):
            schedule.append(StudySession(session=len(schedule) + 1, topic=topic))
            if len(schedule) >= total_sessions:
                break
        if len(schedule) >= total_sessions:
            break

    strong = Counter(area for attempt in recent for area in attempt.strengths if area)
    for topic, _ in sorted(strong.items(), key=lambda item: item[1], reverse=True):
        if len(schedule) >= total_sessions:
            break
        schedule.append(StudySession(session=len(schedule) + 1, topic=f"Review: {topic}"))

    if prioritized:
        advice = f"Focus on your weakest topic: {prioritized[0]}. Allocate more time to it this week."
    else:
        advice = "Keep up the good work! Maintain your strengths and review as needed."

    return PersonalizedPlan(prioritized_topics=prioritized, schedule=schedule, advice=advice)


__all__ = ["PersonalizedPlan", "build_personalized_plan", "sessions_per_week"]
