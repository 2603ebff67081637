"""Course and resource lookups consumed by the generators."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .learning_models import Course, Resource


class CourseCatalog(Protocol):
    """Read-only view over the course catalog and its curated resources."""

    def get_course_by_id(self, program_id: str, course_id: str) -> Optional[Course]:  # pragma: no cover - protocol
        ...

    def find_course(self, course_id: str) -> Optional[Course]:  # pragma: no cover - protocol
        ...

    def get_resources_for_course(self, course_id: str) -> Sequence[Resource]:  # pragma: no cover - protocol
        ...

    def search_resources(self, tags: Iterable[str]) -> List[Resource]:  # pragma: no cover - protocol
        ...

    def list_courses(self) -> List[Course]:  # pragma: no cover - protocol
        ...


class InMemoryCourseCatalog:
    """Dictionary-backed catalog, suitable for tests and seeded deployments."""

    def __init__(
        self,
        courses: Optional[Iterable[Course]] = None,
        resources: Optional[Dict[str, Iterable[Resource]]] = None,
    ) -> None:
        self._courses: Dict[str, Course] = {}
        self._resources: Dict[str, List[Resource]] = {}
        for course in courses or []:
            self.add_course(course)
        for course_id, items in (resources or {}).items():
            self._resources[course_id] = list(items)

    def add_course(self, course: Course, resources: Optional[Iterable[Resource]] = None) -> None:
        self._courses[course.course_id] = course
        if resources is not None:
            self._resources[course.course_id] = list(resources)

    def get_course_by_id(self, program_id: str, course_id: str) -> Optional[Course]:
        course = self._courses.get(course_id)
        if course is None or course.program_id != program_id:
            return None
        return course

    def find_course(self, course_id: str) -> Optional[Course]:
        return self._courses.get(course_id)

    def get_resources_for_course(self, course_id: str) -> List[Resource]:
        return list(self._resources.get(course_id, []))

    def search_resources(self, tags: Iterable[str]) -> List[Resource]:
        wanted = {tag.lower() for tag in tags if tag}
        if not wanted:
            return []
        matches: List[Resource] = []
        seen: set[str] = set()
        for course_id in sorted(self._resources):
            for resource in self._resources[course_id]:
                if resource.url in seen:
                    continue
                if wanted.intersection(resource.normalized_tags):
                    matches.append(resource)
                    seen.add(resource.url)
        return matches

    def list_courses(self) -> List[Course]:
        return sorted(
            self._courses.values(),
            key=lambda course: (course.program_id, course.year or 0, course.semester or 0, course.course_id),
        )


__all__ = ["CourseCatalog", "InMemoryCourseCatalog"]
