"""Candidate-producing strategies used by the rule-based recommender."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .catalog import CourseCatalog
from .confidence import calculate_recommendation_confidence, matches_learning_gap
from .difficulty_adviser import DifficultyTier
from .errors import ErrorKind, classify
from .learning_models import (
    Course,
    PerformanceProfile,
    RecommendationCandidate,
    Resource,
    UserProfile,
)

logger = logging.getLogger(__name__)

FOUNDATIONAL_TAGS = frozenset({"basics", "fundamentals", "introduction", "beginner"})
PRACTICE_TAGS = frozenset({"practice", "exercise", "quiz", "problem"})
ADVANCED_TAGS = frozenset({"advanced", "expert", "mastery", "deep-dive"})
GAP_EXCLUDED_TAGS = frozenset({"advanced", "expert"})
MILESTONE_TAGS = {
    "master-basics": frozenset({"comprehensive", "complete", "mastery"}),
    "build-confidence": frozenset({"confidence", "application", "real-world"}),
    "advance-skills": frozenset({"advanced", "expert", "mastery"}),
}


@dataclass(frozen=True)
class CourseStrategyInput:
    course: Course
    resources: Sequence[Resource]
    profile: PerformanceProfile
    tier: DifficultyTier
    user_profile: Optional[UserProfile] = None


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of one strategy run. Failures carry the error instead of candidates."""

    strategy: str
    candidates: Tuple[RecommendationCandidate, ...] = ()
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return classify(self.error) if self.error is not None else None


def run_strategy(name: str, strategy: Callable[..., Iterable[RecommendationCandidate]], *args) -> StrategyOutcome:
    try:
        return StrategyOutcome(strategy=name, candidates=tuple(strategy(*args)))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Recommendation strategy %s failed: %s", name, exc)
        return StrategyOutcome(strategy=name, error=exc)


def collect_candidates(outcomes: Iterable[StrategyOutcome]) -> List[RecommendationCandidate]:
    """Concatenate successful outcomes in order; falls back to the default set when nothing was produced."""
    candidates: List[RecommendationCandidate] = []
    for outcome in outcomes:
        if outcome.ok:
            candidates.extend(outcome.candidates)
    return candidates or default_recommendations()


def _has_any_tag(resource: Resource, wanted: Iterable[str]) -> bool:
    return bool(set(resource.normalized_tags).intersection(wanted))


def _slug(value: str) -> str:
    return "-".join(value.lower().split())


def _score_text(profile: PerformanceProfile) -> str:
    return f"{round(profile.overall_score_pct)}%"


# --- course-specific strategies ---------------------------------------------


def foundational_strategy(data: CourseStrategyInput) -> List[RecommendationCandidate]:
    if data.profile.overall_score_pct >= 50:
        return []
    pool = [resource for resource in data.resources if _has_any_tag(resource, FOUNDATIONAL_TAGS)]
    targeted = [resource for resource in pool if matches_learning_gap(resource, data.profile.learning_gaps)]
    selected = (targeted or pool)[:2]
    gaps = ", ".join(data.profile.learning_gaps[:2])
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Essential foundational content for {data.course.title} - focuses on core concepts",
            resource_type=resource.type,
            difficulty="beginner",
            url=resource.url,
            reasoning=f"Build strong fundamentals in {data.course.title} to address identified learning gaps: {gaps}",
            priority=1 + index,
            estimated_time=resource.duration or "30-45 minutes",
            tags=list(resource.tags),
            confidence=calculate_recommendation_confidence(resource, data.profile, data.user_profile),
            learning_path="foundational",
        )
        for index, resource in enumerate(selected)
    ]


def adaptive_practice_strategy(data: CourseStrategyInput) -> List[RecommendationCandidate]:
    level_tags = {data.tier.value, DifficultyTier.INTERMEDIATE.value}
    pool = [
        resource
        for resource in data.resources
        if _has_any_tag(resource, PRACTICE_TAGS) and _has_any_tag(resource, level_tags)
    ]
    targeted = [resource for resource in pool if matches_learning_gap(resource, data.profile.improvement_areas)]
    selected = (targeted or pool)[:2]
    focus = ", ".join(data.profile.improvement_areas[:2])
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Practice exercises tailored to your current level in {data.course.title}",
            resource_type=resource.type,
            difficulty=data.tier.value,
            url=resource.url,
            reasoning=(
                f"Targeted practice to improve in areas where you scored {_score_text(data.profile)}"
                f" - focus on {focus}"
            ),
            priority=2 + index,
            estimated_time=resource.duration or "45-60 minutes",
            tags=list(resource.tags),
            confidence=calculate_recommendation_confidence(resource, data.profile, data.user_profile),
            learning_path="practice",
            prerequisites=data.profile.strengths[:2],
        )
        for index, resource in enumerate(selected)
    ]


def advanced_strategy(data: CourseStrategyInput) -> List[RecommendationCandidate]:
    if data.profile.overall_score_pct <= 70:
        return []
    pool = [resource for resource in data.resources if _has_any_tag(resource, ADVANCED_TAGS)]
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Advanced content to deepen your understanding of {data.course.title}",
            resource_type=resource.type,
            difficulty="advanced",
            url=resource.url,
            reasoning=f"Take your {data.course.title} knowledge to the next level",
            priority=3,
            estimated_time=resource.duration or "60-90 minutes",
            tags=list(resource.tags),
            confidence=80,
            learning_path="advanced",
            prerequisites=["intermediate-knowledge"],
        )
        for resource in pool[:1]
    ]


def gap_filling_strategy(data: CourseStrategyInput) -> List[RecommendationCandidate]:
    candidates: List[RecommendationCandidate] = []
    for index, gap in enumerate(data.profile.learning_gaps[:3]):
        match = next(
            (
                resource
                for resource in data.resources
                if matches_learning_gap(resource, [gap]) and not _has_any_tag(resource, GAP_EXCLUDED_TAGS)
            ),
            None,
        )
        if match is None:
            continue
        candidates.append(
            RecommendationCandidate(
                title=match.title,
                description=f"Specifically addresses your gap in {gap}",
                resource_type=match.type,
                difficulty="intermediate",
                url=match.url,
                reasoning=f"Targeted resource to fill knowledge gap in {gap} where you need improvement",
                priority=3 + index,
                estimated_time=match.duration or "30-45 minutes",
                tags=list(match.tags),
                confidence=calculate_recommendation_confidence(match, data.profile, data.user_profile),
                learning_path="gap-filling",
                prerequisites=data.profile.strengths[:1],
            )
        )
    return candidates


def next_milestone(score_pct: float) -> str:
    if score_pct < 50:
        return "master-basics"
    if score_pct < 70:
        return "build-confidence"
    return "advance-skills"


def learning_path_strategy(data: CourseStrategyInput) -> List[RecommendationCandidate]:
    milestone = next_milestone(data.profile.overall_score_pct)
    wanted = MILESTONE_TAGS[milestone]
    match = next((resource for resource in data.resources if _has_any_tag(resource, wanted)), None)
    if match is None:
        return []
    return [
        RecommendationCandidate(
            title=match.title,
            description=f"Next step in your learning journey for {data.course.title}",
            resource_type=match.type,
            difficulty="advanced" if data.profile.overall_score_pct > 70 else "intermediate",
            url=match.url,
            reasoning=f"Progressive learning resource to advance from {_score_text(data.profile)} to the next level",
            priority=4,
            estimated_time=match.duration or "60-90 minutes",
            tags=list(match.tags),
            confidence=calculate_recommendation_confidence(match, data.profile, data.user_profile),
            learning_path=milestone,  # type: ignore[arg-type]
            prerequisites=list(data.profile.strengths),
        )
    ]


COURSE_STRATEGIES: Tuple[Tuple[str, Callable[[CourseStrategyInput], List[RecommendationCandidate]]], ...] = (
    ("foundational", foundational_strategy),
    ("adaptive-practice", adaptive_practice_strategy),
    ("advanced", advanced_strategy),
    ("gap-filling", gap_filling_strategy),
    ("learning-path", learning_path_strategy),
)


# --- profile-level strategies -----------------------------------------------


@dataclass
class TopicResourceFinder:
    """Looks up catalog resources for a topic, synthesizing a generic one when the catalog has none."""

    catalog: Optional[CourseCatalog] = None
    _cache: dict = field(default_factory=dict, repr=False)

    def _search(self, term: str) -> List[Resource]:
        if self.catalog is None or not term:
            return []
        key = term.lower()
        if key not in self._cache:
            self._cache[key] = self.catalog.search_resources([key])
        return list(self._cache[key])

    def fundamentals(self, topic: str) -> List[Resource]:
        found = [resource for resource in self._search(topic) if not _has_any_tag(resource, GAP_EXCLUDED_TAGS)]
        found.append(
            Resource(
                title=f"{topic} Fundamentals",
                type="Course",
                url=f"https://example.com/{_slug(topic)}-fundamentals",
                duration="45-60 minutes",
                tags=[topic.lower(), "fundamentals", "beginner"],
            )
        )
        found.append(
            Resource(
                title=f"{topic} Practice Problems",
                type="Practice",
                url=f"https://example.com/{_slug(topic)}-practice",
                duration="30-45 minutes",
                tags=[topic.lower(), "practice", "beginner"],
            )
        )
        return found

    def advanced(self, topic: str) -> List[Resource]:
        found = [resource for resource in self._search(topic) if _has_any_tag(resource, GAP_EXCLUDED_TAGS)]
        found.append(
            Resource(
                title=f"Advanced {topic}",
                type="Course",
                url=f"https://example.com/advanced-{_slug(topic)}",
                duration="60-90 minutes",
                tags=[topic.lower(), "advanced", "expert"],
            )
        )
        return found

    def program_core(self, program: str) -> List[Resource]:
        found = self._search(program)
        found.append(
            Resource(
                title=f"{program} Core Concepts",
                type="Course",
                url=f"https://example.com/{_slug(program)}-core",
                duration="45-60 minutes",
                tags=[program.lower(), "core", "fundamentals"],
            )
        )
        return found


def weak_area_strategy(area: str, finder: TopicResourceFinder) -> List[RecommendationCandidate]:
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Focus on improving your {area} skills",
            resource_type=resource.type,
            difficulty="beginner",
            url=resource.url,
            reasoning=f"Targeted practice to strengthen your {area} understanding",
            priority=1 + index,
            estimated_time=resource.duration or "45-60 minutes",
            tags=list(resource.tags),
            confidence=85,
            learning_path="remediation",
        )
        for index, resource in enumerate(finder.fundamentals(area)[:2])
    ]


def strong_area_strategy(area: str, finder: TopicResourceFinder) -> List[RecommendationCandidate]:
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Advance your {area} expertise",
            resource_type=resource.type,
            difficulty="advanced",
            url=resource.url,
            reasoning=f"Build on your strong {area} foundation to achieve mastery",
            priority=3,
            estimated_time=resource.duration or "60-90 minutes",
            tags=list(resource.tags),
            confidence=90,
            learning_path="advancement",
            prerequisites=[area],
        )
        for resource in finder.advanced(area)[:1]
    ]


def program_core_strategy(program: str, finder: TopicResourceFinder) -> List[RecommendationCandidate]:
    return [
        RecommendationCandidate(
            title=resource.title,
            description=f"Essential {program} program content",
            resource_type=resource.type,
            difficulty="intermediate",
            url=resource.url,
            reasoning=f"Core content for your {program} program",
            priority=2 + index,
            estimated_time=resource.duration or "45-60 minutes",
            tags=list(resource.tags),
            confidence=80,
            learning_path="program-core",
        )
        for index, resource in enumerate(finder.program_core(program)[:2])
    ]


# --- terminal fallback -------------------------------------------------------


def default_recommendations() -> List[RecommendationCandidate]:
    return [
        RecommendationCandidate(
            title="Programming Fundamentals",
            description="Essential programming concepts and best practices",
            resource_type="Course",
            difficulty="beginner",
            url="https://example.com/programming-fundamentals",
            reasoning="Build a strong foundation in programming concepts",
            priority=1,
            estimated_time="60-90 minutes",
            tags=["programming", "fundamentals", "beginner"],
            confidence=60,
            learning_path="foundational",
        ),
        RecommendationCandidate(
            title="Data Structures and Algorithms",
            description="Core computer science concepts for problem solving",
            resource_type="Course",
            difficulty="intermediate",
            url="https://example.com/data-structures",
            reasoning="Essential knowledge for technical interviews and problem solving",
            priority=2,
            estimated_time="90-120 minutes",
            tags=["algorithms", "data-structures", "computer-science"],
            confidence=65,
            learning_path="core-cs",
            prerequisites=["programming-basics"],
        ),
        RecommendationCandidate(
            title="Web Development Basics",
            description="Introduction to HTML, CSS, and JavaScript",
            resource_type="Course",
            difficulty="beginner",
            url="https://example.com/web-development",
            reasoning="Practical skills for modern software development",
            priority=3,
            estimated_time="75-90 minutes",
            tags=["web-development", "html", "css", "javascript"],
            confidence=70,
            learning_path="web-dev",
        ),
    ]


__all__ = [
    "COURSE_STRATEGIES",
    "CourseStrategyInput",
    "StrategyOutcome",
    "TopicResourceFinder",
    "adaptive_practice_strategy",
    "advanced_strategy",
    "collect_candidates",
    "default_recommendations",
    "foundational_strategy",
    "gap_filling_strategy",
    "learning_path_strategy",
    "next_milestone",
    "program_core_strategy",
    "run_strategy",
    "strong_area_strategy",
    "weak_area_strategy",
]
