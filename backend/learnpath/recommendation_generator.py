"""Rule-based recommendation generation from quiz performance."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from .catalog import CourseCatalog
from .difficulty_adviser import base_tier, determine_adaptive_difficulty
from .errors import DataError
from .learning_models import (
    Course,
    CourseRecommendations,
    PerformanceProfile,
    QuizAttempt,
    RecommendationCandidate,
    RecommendationSet,
    UserProfile,
)
from .performance_analyzer import (
    analyze_performance,
    calculate_overall_percentage,
    identify_strong_areas,
    identify_weak_areas,
)
from .personalization import PersonalizedPlan, build_personalized_plan
from .ranking import rank_candidates
from .recommendation_strategies import (
    COURSE_STRATEGIES,
    CourseStrategyInput,
    StrategyOutcome,
    TopicResourceFinder,
    collect_candidates,
    default_recommendations,
    program_core_strategy,
    run_strategy,
    strong_area_strategy,
    weak_area_strategy,
)

logger = logging.getLogger(__name__)

RULE_BASED_PROVIDER = "rule-based"
FilterValue = Union[str, int]


def calculate_course_priority(percentage: float, quiz_count: int) -> float:
    """Low scores and many attempts push a course up the list."""
    return (100 - percentage) + min(quiz_count * 10, 50)


def _set_confidence(candidates: Sequence[RecommendationCandidate]) -> int:
    if not candidates:
        return 0
    return round(sum(candidate.confidence for candidate in candidates) / len(candidates))


def _attach_sessions(
    candidates: Sequence[RecommendationCandidate],
    personalization: PersonalizedPlan,
) -> List[RecommendationCandidate]:
    """Pair candidates with the week's sessions in generation order; extras get advice only."""
    schedule = personalization.schedule
    return [
        candidate.model_copy(
            update={
                "personalized_session": schedule[index] if index < len(schedule) else None,
                "personalized_advice": personalization.advice,
            }
        )
        for index, candidate in enumerate(candidates)
    ]


def _matches_filter(value: Optional[Union[str, int]], wanted: FilterValue) -> bool:
    if str(wanted) == "all":
        return True
    return value is not None and str(value) == str(wanted)


class RuleBasedRecommender:
    """Runs the course-specific or profile-level strategies and ranks the result."""

    def __init__(self, catalog: CourseCatalog) -> None:
        self._catalog = catalog

    def generate(
        self,
        attempts: Sequence[QuizAttempt],
        user_profile: Optional[UserProfile] = None,
        course_id: Optional[str] = None,
    ) -> RecommendationSet:
        profile = user_profile or UserProfile()
        try:
            if course_id:
                return self._generate_for_course(course_id, attempts, profile)
            return self._generate_general(attempts, profile)
        except Exception:  # noqa: BLE001
            logger.exception("Rule-based generation failed (course=%s); returning default set", course_id)
            return self._default_set()

    def generate_for_courses(
        self,
        attempts: Sequence[QuizAttempt],
        program_id: FilterValue = "all",
        year: FilterValue = "all",
        semester: FilterValue = "all",
    ) -> List[CourseRecommendations]:
        results: List[CourseRecommendations] = []
        for course in self._catalog.list_courses():
            if not (
                _matches_filter(course.program_id, program_id)
                and _matches_filter(course.year, year)
                and _matches_filter(course.semester, semester)
            ):
                continue
            course_attempts = [attempt for attempt in attempts if attempt.course_id == course.course_id]
            percentage = calculate_overall_percentage(course_attempts)
            recommendations = self.generate(
                course_attempts,
                UserProfile(program=course.program_title),
                course_id=course.course_id,
            )
            results.append(
                CourseRecommendations(
                    course_id=course.course_id,
                    course_title=course.title,
                    program_title=course.program_title,
                    year=course.year,
                    semester=course.semester,
                    recommendations=recommendations.recommendations,
                    performance_pct=round(percentage, 2),
                    difficulty=base_tier(percentage).value,
                    priority=calculate_course_priority(percentage, len(course_attempts)),
                )
            )
        results.sort(key=lambda item: item.priority, reverse=True)
        return results

    def _generate_for_course(
        self,
        course_id: str,
        attempts: Sequence[QuizAttempt],
        user_profile: UserProfile,
    ) -> RecommendationSet:
        course = self._catalog.find_course(course_id)
        if course is None:
            error = DataError(f"Course {course_id} is not in the catalog.")
            logger.warning("%s Falling back to default recommendations.", error)
            return self._default_set()

        performance = analyze_performance(attempts, course_id=course_id)
        tier = determine_adaptive_difficulty(performance, user_profile.preferred_difficulty)
        data = CourseStrategyInput(
            course=course,
            resources=self._catalog.get_resources_for_course(course_id),
            profile=performance,
            tier=tier,
            user_profile=user_profile,
        )
        outcomes = [run_strategy(name, strategy, data) for name, strategy in COURSE_STRATEGIES]
        return self._finish(outcomes, performance, course)

    def _generate_general(self, attempts: Sequence[QuizAttempt], user_profile: UserProfile) -> RecommendationSet:
        performance = analyze_performance(attempts)
        finder = TopicResourceFinder(self._catalog)
        # a known learner's weekly priorities replace the raw weakness tally
        personalization = build_personalized_plan(attempts, user_profile) if user_profile.user_id else None
        weak_areas = personalization.prioritized_topics if personalization else identify_weak_areas(attempts)
        outcomes: List[StrategyOutcome] = []
        for area in weak_areas:
            outcomes.append(run_strategy(f"weak-area:{area}", weak_area_strategy, area, finder))
        for area in identify_strong_areas(attempts):
            outcomes.append(run_strategy(f"strong-area:{area}", strong_area_strategy, area, finder))
        outcomes.append(run_strategy("program-core", program_core_strategy, user_profile.program, finder))
        return self._finish(outcomes, performance, personalization=personalization)

    def _finish(
        self,
        outcomes: Sequence[StrategyOutcome],
        performance: PerformanceProfile,
        course: Optional[Course] = None,
        personalization: Optional[PersonalizedPlan] = None,
    ) -> RecommendationSet:
        failed = [outcome.strategy for outcome in outcomes if not outcome.ok]
        if failed:
            logger.warning("Strategies failed during generation: %s", ", ".join(failed))
        produced = any(outcome.candidates for outcome in outcomes if outcome.ok)
        candidates = collect_candidates(outcomes)
        if personalization is not None:
            candidates = _attach_sessions(candidates, personalization)
        ranked = rank_candidates(candidates)
        logger.debug(
            "Generated %s rule-based recommendations (course=%s, fallback=%s)",
            len(ranked),
            course.course_id if course else None,
            not produced,
        )
        return RecommendationSet(
            recommendations=ranked,
            generated_by=RULE_BASED_PROVIDER,
            confidence=_set_confidence(ranked),
            performance=performance,
            fallback=not produced,
        )

    def _default_set(self) -> RecommendationSet:
        defaults = default_recommendations()
        return RecommendationSet(
            recommendations=defaults,
            generated_by=RULE_BASED_PROVIDER,
            confidence=_set_confidence(defaults),
            fallback=True,
        )


__all__ = ["RULE_BASED_PROVIDER", "RuleBasedRecommender", "calculate_course_priority"]
