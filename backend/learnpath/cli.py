"""Command line entry point for one-off recommendation and cache jobs."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from .catalog import InMemoryCourseCatalog
from .config import get_settings
from .learning_models import Course, QuizAttempt, QuizContext, Resource, UserProfile
from .logging_config import configure_logging
from .orchestrator import RecommendationOrchestrator, build_context

logger = logging.getLogger("learnpath.cli")

_ATTEMPTS = TypeAdapter(List[QuizAttempt])


def _load_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def load_catalog(path: Optional[Path]) -> InMemoryCourseCatalog:
    """Read ``{"courses": [...], "resources": {course_id: [...]}}`` into a catalog."""
    catalog = InMemoryCourseCatalog()
    if path is None:
        return catalog
    payload = _load_json(path)
    for entry in payload.get("courses", []):
        catalog.add_course(Course.model_validate(entry))
    for course_id, items in payload.get("resources", {}).items():
        course = catalog.find_course(course_id)
        if course is None:
            logger.warning("Skipping resources for unknown course %s", course_id)
            continue
        catalog.add_course(course, [Resource.model_validate(item) for item in items])
    return catalog


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate learning recommendations and study plans.")
    parser.add_argument("--catalog", type=Path, help="JSON file with courses and their resources")
    subparsers = parser.add_subparsers(dest="command", required=True)

    recommend = subparsers.add_parser("recommend", help="Recommend resources from quiz attempts")
    recommend.add_argument("attempts", type=Path, help="JSON list of quiz attempts")
    recommend.add_argument("--profile", type=Path, help="JSON user profile")
    recommend.add_argument("--course-id")
    recommend.add_argument("--provider")

    study_plan = subparsers.add_parser("study-plan", help="Build a study plan for one quiz result")
    study_plan.add_argument("quiz", type=Path, help="JSON quiz context")
    study_plan.add_argument("--attempts", type=Path, help="JSON list of recent attempts for scheduling")
    study_plan.add_argument("--provider")

    stats = subparsers.add_parser("stats", help="Print cache statistics")
    stats.add_argument("--user-id")

    clear = subparsers.add_parser("clear-cache", help="Delete cached entries")
    clear.add_argument("--user-id")

    return parser.parse_args(argv)


def run(args: argparse.Namespace, orchestrator: RecommendationOrchestrator) -> Any:
    if args.command == "recommend":
        attempts = _ATTEMPTS.validate_python(_load_json(args.attempts))
        profile = UserProfile.model_validate(_load_json(args.profile)) if args.profile else None
        result = orchestrator.generate_recommendations(
            attempts, profile, course_id=args.course_id, provider=args.provider
        )
        return result.model_dump(mode="json")
    if args.command == "study-plan":
        quiz = QuizContext.model_validate(_load_json(args.quiz))
        attempts = _ATTEMPTS.validate_python(_load_json(args.attempts)) if args.attempts else None
        plan = orchestrator.generate_study_plan(quiz, provider=args.provider, attempts=attempts)
        return plan.model_dump(mode="json")
    if args.command == "stats":
        return orchestrator.context.cache.stats(args.user_id).model_dump(mode="json")
    removed = orchestrator.context.cache.clear(args.user_id)
    return {"removed": removed}


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        orchestrator = RecommendationOrchestrator(build_context(get_settings(), catalog=load_catalog(args.catalog)))
        output = run(args, orchestrator)
    except (OSError, ValueError, ValidationError) as exc:
        logger.error("Could not complete %s: %s", args.command, exc)
        return 1
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
