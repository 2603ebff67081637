"""Domain records shared by the analyzer, the generators, the cache and the providers."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

Difficulty = Literal["easy", "medium", "hard"]
LearningStyle = Literal["visual", "auditory", "kinesthetic", "reading"]
PreferredDifficulty = Literal["beginner", "intermediate", "advanced"]
CacheKind = Literal["recommendation", "study_plan"]
LearningPath = Literal[
    "foundational",
    "practice",
    "advanced",
    "remediation",
    "advancement",
    "program-core",
    "gap-filling",
    "master-basics",
    "build-confidence",
    "advance-skills",
    "core-cs",
    "web-dev",
]

DEFAULT_RESOURCE_MINUTES = 45
_LEADING_INT = re.compile(r"^\s*(\d+)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    is_correct: bool
    time_spent_seconds: float = Field(default=0.0, ge=0.0)
    difficulty: Difficulty = "medium"
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class QuizAttempt(BaseModel):
    """A recorded quiz submission. Produced by the quiz subsystem and never mutated."""

    model_config = ConfigDict(frozen=True)

    quiz_id: str
    course_id: str
    quiz_title: Optional[str] = None
    score: int = Field(ge=0)
    total: int = Field(ge=0)
    time_spent_seconds: Optional[float] = Field(default=None, ge=0.0)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    question_details: List[QuestionDetail] = Field(default_factory=list)

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.score / self.total * 100


class UserProfile(BaseModel):
    user_id: Optional[str] = None
    program: str = "general"
    interests: List[str] = Field(default_factory=list)
    recent_topics: List[str] = Field(default_factory=list)
    learning_style: Optional[LearningStyle] = None
    preferred_difficulty: Optional[PreferredDifficulty] = None
    available_time_minutes: Optional[int] = Field(default=None, ge=0)
    study_session_minutes: Optional[int] = Field(default=None, ge=1)
    available_hours_per_week: Optional[float] = Field(default=None, ge=0.0)


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    type: str = "Resource"
    url: str = "https://example.com"
    rating: Optional[float] = None
    views: Optional[int] = None
    duration: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @property
    def normalized_tags(self) -> List[str]:
        return [tag.lower() for tag in self.tags]

    @property
    def duration_minutes(self) -> int:
        if not self.duration:
            return DEFAULT_RESOURCE_MINUTES
        match = _LEADING_INT.match(self.duration)
        if not match or int(match.group(1)) == 0:
            return DEFAULT_RESOURCE_MINUTES
        return int(match.group(1))


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    title: str
    program_id: str
    program_title: str
    year: Optional[int] = None
    semester: Optional[int] = None


class PerformanceProfile(BaseModel):
    """Aggregated view of a learner's quiz attempts. Recomputed on every request."""

    overall_score_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    topic_score_pct: Dict[str, float] = Field(default_factory=dict)
    difficulty_score_pct: Dict[str, float] = Field(default_factory=dict)
    avg_time_per_question: float = 0.0
    time_efficiency: float = 0.0
    rushed_count: int = 0
    overthought_count: int = 0
    learning_gaps: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    recommended_focus: List[str] = Field(default_factory=list)
    confidence_level: int = Field(default=0, ge=0, le=100)
    attempt_count: int = 0
    total_questions: int = 0


class StudySession(BaseModel):
    session: int = Field(ge=1)
    topic: str


class RecommendationCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    resource_type: str = "Resource"
    difficulty: str = "intermediate"
    url: str = "https://example.com"
    reasoning: str = ""
    priority: int = Field(default=3, ge=1, le=5)
    estimated_time: str = "30 minutes"
    tags: List[str] = Field(default_factory=list)
    confidence: int = Field(default=50, ge=0, le=100)
    learning_path: Optional[LearningPath] = None
    prerequisites: List[str] = Field(default_factory=list)
    personalized_session: Optional[StudySession] = None
    personalized_advice: Optional[str] = None


class RecommendationSet(BaseModel):
    recommendations: List[RecommendationCandidate] = Field(default_factory=list)
    generated_by: str
    confidence: int = Field(default=0, ge=0, le=100)
    performance: Optional[PerformanceProfile] = None
    fallback: bool = False


class CourseRecommendations(BaseModel):
    course_id: str
    course_title: str
    program_title: str
    year: Optional[int] = None
    semester: Optional[int] = None
    recommendations: List[RecommendationCandidate] = Field(default_factory=list)
    performance_pct: float = 0.0
    difficulty: str = "beginner"
    priority: float = 0.0


class QuizContext(BaseModel):
    quiz_id: str
    course_id: str
    program_id: str
    course_title: str = "Unknown Course"
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    time_spent_seconds: Optional[float] = Field(default=None, ge=0.0)
    difficulty: Optional[str] = None
    incorrect_answers: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None

    @property
    def percentage(self) -> float:
        if self.total_questions <= 0:
            return 0.0
        return self.score / self.total_questions * 100


class TimeAllocation(BaseModel):
    concept_review: int = Field(ge=0, le=100)
    practice_problems: int = Field(ge=0, le=100)
    advanced_topics: int = Field(ge=0, le=100)
    real_world_applications: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _sums_to_hundred(self) -> "TimeAllocation":
        total = (
            self.concept_review
            + self.practice_problems
            + self.advanced_topics
            + self.real_world_applications
        )
        if total != 100:
            raise ValueError(f"Time allocation must sum to 100, got {total}.")
        return self


class StudyPlanResources(BaseModel):
    primary: List[str] = Field(default_factory=list)
    supplementary: List[str] = Field(default_factory=list)
    practice: List[str] = Field(default_factory=list)


class StudyPlan(BaseModel):
    course_title: str
    current_level: str
    target_score: float = Field(ge=0.0, le=100.0)
    program_id: str
    study_steps: List[str] = Field(default_factory=list)
    personalized_advice: str = ""
    focus_areas: List[str] = Field(default_factory=list)
    time_allocation: TimeAllocation
    weekly_goals: List[str] = Field(default_factory=list)
    resources: StudyPlanResources = Field(default_factory=StudyPlanResources)
    estimated_improvement: str = ""
    next_milestone: str = ""
    personalized_schedule: List[StudySession] = Field(default_factory=list)
    generated_by: str = "rule-based"


class ProgramStudyPlan(BaseModel):
    program_overview: str
    course_plans: Dict[str, StudyPlan] = Field(default_factory=dict)
    overall_strategy: str
    program_goals: List[str] = Field(default_factory=list)


class CacheEntry(BaseModel):
    key: str
    kind: CacheKind
    provider: str
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    payload: Dict[str, Any]
    confidence: int = Field(default=0, ge=0, le=100)
    created_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime
    last_accessed_at: datetime = Field(default_factory=_utcnow)
    hit_count: int = Field(default=0, ge=0)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or _utcnow())


class ProviderCallRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    endpoint: str
    success: bool
    cache_hit: bool = False
    response_time_ms: float = Field(default=0.0, ge=0.0)
    user_id: Optional[str] = None
    cost: Optional[float] = None
    tokens: Optional[int] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


__all__ = [
    "CacheEntry",
    "CacheKind",
    "Course",
    "CourseRecommendations",
    "DEFAULT_RESOURCE_MINUTES",
    "Difficulty",
    "LearningPath",
    "LearningStyle",
    "PerformanceProfile",
    "ProgramStudyPlan",
    "ProviderCallRecord",
    "QuestionDetail",
    "QuizAttempt",
    "QuizContext",
    "RecommendationCandidate",
    "RecommendationSet",
    "Resource",
    "StudyPlan",
    "StudyPlanResources",
    "StudySession",
    "TimeAllocation",
    "UserProfile",
]
