# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course catalog for student enrollment.

Each course runs on its own learning platform host, derived from the
course id: ``telc_a1`` lives at ``https://telc-a1.<domain>``.
"""

from dataclasses import dataclass

from linguadash.core.config.settings import DashboardSettings

LESSONS_PATH = "/lessons"


@dataclass(frozen=True)
class Course:
    """A course students can be enrolled in.

    Attributes:
        id: Course identifier, e.g. ``telc_a1``.
        name: Display name.
        level: CEFR level.
        icon: Icon name used by the dashboard.
    """

    id: str
    name: str
    level: str
    icon: str

    def platform_url(self, settings: DashboardSettings) -> str:
        """Base URL of the course's learning platform."""
        host = self.id.replace("_", "-")
        return f"{settings.course_platform_scheme}://{host}.{settings.course_platform_domain}"

    def lessons_url(self, settings: DashboardSettings) -> str:
        """Landing page for invited students."""
        return f"{self.platform_url(settings)}{LESSONS_PATH}"


COURSES: dict[str, Course] = {
    course.id: course
    for course in (
        Course("telc_a1", "telc A1 - Beginner", "A1", "seedling"),
        Course("telc_a2", "telc A2 - Elementary", "A2", "book"),
        Course("telc_b1", "telc B1 - Intermediate", "B1", "target"),
        Course("telc_b2", "telc B2 - Upper Intermediate", "B2", "rocket"),
    )
}


def get_course(course_id: str | None) -> Course | None:
    """Look up a course, returning None for unknown ids."""
    if not course_id:
        return None
    return COURSES.get(course_id)


def is_valid_course(course_id: str | None) -> bool:
    return get_course(course_id) is not None
