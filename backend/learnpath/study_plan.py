"""Rule-based study plans for a single quiz, several courses, or a whole program."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .catalog import CourseCatalog
from .learning_models import (
    ProgramStudyPlan,
    QuizContext,
    Resource,
    StudyPlan,
    StudyPlanResources,
    TimeAllocation,
)
from .personalization import PersonalizedPlan

logger = logging.getLogger(__name__)

_FOUNDATIONAL = frozenset({"basics", "fundamentals", "introduction", "beginner"})
_PRACTICE = frozenset({"practice", "exercise", "quiz", "problem"})
_INTERMEDIATE = frozenset({"intermediate", "practice", "application"})
_GROWTH = frozenset({"advanced", "expert", "mastery"})
_ADVANCED = frozenset({"advanced", "expert", "mastery", "deep-dive"})
_APPLICATION = frozenset({"real-world", "application", "project", "case-study"})


@dataclass(frozen=True)
class _PlanTemplate:
    level: str
    target_boost: float
    study_steps: Tuple[str, ...]
    advice: str
    focus_areas: Tuple[str, ...]
    allocation: Tuple[int, int, int, int]
    weekly_goals: Tuple[str, ...]
    estimated_improvement: str
    next_milestone: str
    # tag filters for primary/supplementary/practice; None means "any course resource"
    buckets: Tuple[Optional[FrozenSet[str]], Optional[FrozenSet[str]], Optional[FrozenSet[str]]]


BEGINNER_PLAN = _PlanTemplate(
    level="Beginner",
    target_boost=25,
    study_steps=(
        "Review basic concepts and terminology for 30 minutes daily",
        "Complete 2-3 practice problems each day to build confidence",
        "Watch introductory videos to understand core concepts",
        "Create flashcards for key terms and definitions",
        "Join study groups to discuss concepts with peers",
    ),
    advice=(
        "Your current score of {pct} indicates you need to build a strong foundation. Focus on understanding"
        " basic concepts before moving to more complex topics. Don't rush - take time to fully grasp each concept."
    ),
    focus_areas=(
        "Basic terminology and definitions",
        "Fundamental concepts and principles",
        "Simple problem-solving techniques",
        "Building confidence through practice",
    ),
    allocation=(40, 35, 15, 10),
    weekly_goals=(
        "Complete 10 practice problems by end of week",
        "Review all basic concepts covered in the course",
        "Create a glossary of key terms",
        "Achieve 60% on next practice quiz",
    ),
    estimated_improvement="15-25% improvement in 2-3 weeks with consistent study",
    next_milestone="Achieve 60% on next assessment",
    buckets=(_FOUNDATIONAL, None, _PRACTICE),
)

INTERMEDIATE_PLAN = _PlanTemplate(
    level="Intermediate",
    target_boost=20,
    study_steps=(
        "Focus on connecting concepts and understanding relationships",
        "Practice complex problem-solving scenarios",
        "Review areas where you made mistakes in the quiz",
        "Apply concepts to real-world scenarios",
        "Teach concepts to others to reinforce understanding",
    ),
    advice=(
        "Your score of {pct} shows you have a good foundation but need to strengthen your understanding of"
        " complex concepts. Focus on connecting ideas and applying knowledge to new situations."
    ),
    focus_areas=(
        "Concept integration and connections",
        "Complex problem-solving strategies",
        "Application of knowledge to new scenarios",
        "Identifying and filling knowledge gaps",
    ),
    allocation=(25, 40, 25, 10),
    weekly_goals=(
        "Complete 15 challenging practice problems",
        "Review and understand all incorrect answers from the quiz",
        "Apply concepts to 3 real-world scenarios",
        "Achieve 80% on next practice quiz",
    ),
    estimated_improvement="10-20% improvement in 2 weeks with focused practice",
    next_milestone="Achieve 80% on next assessment",
    buckets=(_INTERMEDIATE, None, _GROWTH),
)

ADVANCED_PLAN = _PlanTemplate(
    level="Advanced",
    target_boost=15,
    study_steps=(
        "Explore advanced topics and cutting-edge applications",
        "Work on complex projects and case studies",
        "Mentor other students to reinforce your expertise",
        "Research current trends and developments in the field",
        "Apply knowledge to solve real-world problems",
    ),
    advice=(
        "Your excellent score of {pct} demonstrates strong mastery of the material. Focus on advanced"
        " applications and real-world problem-solving to achieve expert-level proficiency."
    ),
    focus_areas=(
        "Advanced concepts and cutting-edge applications",
        "Complex problem-solving and optimization",
        "Real-world project implementation",
        "Knowledge synthesis and innovation",
    ),
    allocation=(15, 25, 35, 25),
    weekly_goals=(
        "Complete 2 advanced projects or case studies",
        "Research and present on a current topic in the field",
        "Mentor at least 2 other students",
        "Achieve 95% on next assessment",
    ),
    estimated_improvement="5-15% improvement in 2 weeks with advanced focus",
    next_milestone="Achieve expert-level proficiency",
    buckets=(_ADVANCED, _APPLICATION, None),
)


def select_template(percentage: float) -> _PlanTemplate:
    if percentage < 40:
        return BEGINNER_PLAN
    if percentage < 70:
        return INTERMEDIATE_PLAN
    return ADVANCED_PLAN


def _titles(resources: Sequence[Resource], tags: Optional[FrozenSet[str]], limit: int) -> List[str]:
    if tags is None:
        pool = list(resources)
    else:
        pool = [resource for resource in resources if tags.intersection(resource.normalized_tags)]
    return [resource.title for resource in pool[:limit]]


def _allocation(values: Tuple[int, int, int, int]) -> TimeAllocation:
    concept, practice, advanced, applied = values
    return TimeAllocation(
        concept_review=concept,
        practice_problems=practice,
        advanced_topics=advanced,
        real_world_applications=applied,
    )


def apply_personalization(plan: StudyPlan, personalization: Optional[PersonalizedPlan]) -> StudyPlan:
    """Copy of ``plan`` carrying one learner's weekly schedule and advice."""
    if personalization is None:
        return plan
    return plan.model_copy(
        update={
            "personalized_schedule": list(personalization.schedule),
            "personalized_advice": personalization.advice,
        }
    )


def default_study_plan(quiz_context: QuizContext) -> StudyPlan:
    percentage = quiz_context.percentage
    return StudyPlan(
        course_title=quiz_context.course_title,
        current_level="Intermediate",
        target_score=min(100.0, percentage + 20),
        program_id=quiz_context.program_id,
        study_steps=[
            "Review course materials and notes regularly",
            "Complete practice problems and exercises",
            "Join study groups for collaborative learning",
            "Seek help from instructors when needed",
            "Maintain consistent study schedule",
        ],
        personalized_advice=(
            "Focus on understanding core concepts and practicing regularly. Consistency is key to improvement."
        ),
        focus_areas=["Core course concepts", "Problem-solving skills", "Time management", "Regular practice"],
        time_allocation=_allocation((30, 35, 20, 15)),
        weekly_goals=[
            "Complete assigned readings and materials",
            "Practice with 10-15 problems",
            "Review and understand mistakes",
            "Prepare for next assessment",
        ],
        resources=StudyPlanResources(
            primary=["Course Textbook", "Lecture Notes", "Practice Problems"],
            supplementary=["Online Resources", "Study Groups"],
            practice=["Quiz Practice", "Homework Exercises"],
        ),
        estimated_improvement="10-20% improvement with consistent study",
        next_milestone="Improve understanding of core concepts",
    )


def generate_rule_based_study_plan(
    quiz_context: QuizContext,
    catalog: CourseCatalog,
    personalization: Optional[PersonalizedPlan] = None,
) -> StudyPlan:
    """Build a study plan for one quiz result; unknown courses get the default plan."""
    try:
        course = catalog.get_course_by_id(quiz_context.program_id, quiz_context.course_id)
        if course is None:
            logger.info(
                "Course %s/%s not found; using default study plan",
                quiz_context.program_id,
                quiz_context.course_id,
            )
            return apply_personalization(default_study_plan(quiz_context), personalization)

        percentage = quiz_context.percentage
        template = select_template(percentage)
        resources = catalog.get_resources_for_course(quiz_context.course_id)
        primary_tags, supplementary_tags, practice_tags = template.buckets
        plan = StudyPlan(
            course_title=quiz_context.course_title,
            current_level=template.level,
            target_score=min(100.0, percentage + template.target_boost),
            program_id=quiz_context.program_id,
            study_steps=list(template.study_steps),
            personalized_advice=template.advice.format(pct=f"{percentage:.1f}%"),
            focus_areas=list(template.focus_areas),
            time_allocation=_allocation(template.allocation),
            weekly_goals=list(template.weekly_goals),
            resources=StudyPlanResources(
                primary=_titles(resources, primary_tags, 3),
                supplementary=_titles(resources, supplementary_tags, 2),
                practice=_titles(resources, practice_tags, 2),
            ),
            estimated_improvement=template.estimated_improvement,
            next_milestone=template.next_milestone,
        )
        return apply_personalization(plan, personalization)
    except Exception:  # noqa: BLE001
        logger.exception("Rule-based study plan failed for course %s", quiz_context.course_id)
        return default_study_plan(quiz_context)


def generate_multi_course_study_plans(
    quiz_contexts: Sequence[QuizContext],
    catalog: CourseCatalog,
) -> Dict[str, StudyPlan]:
    """One plan per course; a later quiz for the same course replaces the earlier plan."""
    return {context.course_id: generate_rule_based_study_plan(context, catalog) for context in quiz_contexts}


def _overall_percentage(quiz_contexts: Sequence[QuizContext]) -> float:
    total = sum(context.total_questions for context in quiz_contexts)
    if total <= 0:
        return 0.0
    return sum(context.score for context in quiz_contexts) / total * 100


def _by_band(percentage: float, low, middle, high):
    if percentage < 50:
        return low
    if percentage < 70:
        return middle
    return high


_PROGRAM_STRATEGIES = (
    "Focus on building strong foundations across all courses. Prioritize understanding basic concepts before"
    " moving to advanced topics. Allocate more time to courses where you're struggling.",
    "Maintain your good performance while identifying and addressing specific weak areas. Focus on connecting"
    " concepts across courses and applying knowledge in new contexts.",
    "Build on your excellent performance by exploring advanced topics and real-world applications. Consider"
    " taking on leadership roles in study groups and mentoring other students.",
)

_PROGRAM_GOALS = (
    [
        "Improve overall performance to at least 60% within 4 weeks",
        "Complete all foundational materials for each course",
        "Establish consistent study habits and schedule",
        "Seek help from instructors and tutors when needed",
    ],
    [
        "Achieve 80% average across all courses within 6 weeks",
        "Master complex problem-solving techniques",
        "Apply knowledge to real-world scenarios",
        "Develop advanced study and time management skills",
    ],
    [
        "Maintain 90%+ average across all courses",
        "Complete advanced projects and research",
        "Mentor other students and lead study groups",
        "Prepare for advanced coursework and career opportunities",
    ],
)


def generate_program_study_plan(
    program_id: str,
    quiz_contexts: Sequence[QuizContext],
    catalog: CourseCatalog,
    plan_builder: Optional[Callable[[QuizContext], StudyPlan]] = None,
) -> ProgramStudyPlan:
    build = plan_builder or (lambda context: generate_rule_based_study_plan(context, catalog))
    scoped = [context.model_copy(update={"program_id": program_id}) for context in quiz_contexts]
    course_plans = {context.course_id: build(context) for context in scoped}
    overall = _overall_percentage(scoped)
    overview = (
        f"Based on your performance across {len(scoped)} courses with an overall score of {overall:.1f}%,"
        " here's your personalized study plan. Focus on the areas where you need the most improvement while"
        " maintaining your strengths."
    )
    return ProgramStudyPlan(
        program_overview=overview,
        course_plans=course_plans,
        overall_strategy=_by_band(overall, *_PROGRAM_STRATEGIES),
        program_goals=list(_by_band(overall, *_PROGRAM_GOALS)),
    )


__all__ = [
    "ADVANCED_PLAN",
    "BEGINNER_PLAN",
    "INTERMEDIATE_PLAN",
    "apply_personalization",
    "default_study_plan",
    "generate_multi_course_study_plans",
    "generate_program_study_plan",
    "generate_rule_based_study_plan",
    "select_template",
]
