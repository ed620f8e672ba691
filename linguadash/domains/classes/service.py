# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher classes with their active student counts."""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.infrastructure.database.models import TeacherClass, TeacherStudent
from linguadash.utils.datetime import format_iso

logger = logging.getLogger(__name__)

ACTIVE_STUDENT = "active"


class ClassServiceError(Exception):
    """Base exception for class service errors."""

    pass


class MissingTeacherError(ClassServiceError):
    """Raised when no teacher id is given."""

    pass


class ClassService:
    """Service for reading a teacher's classes.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_classes(self, teacher_id: str | None) -> list[dict[str, Any]]:
        """List a teacher's classes, newest first.

        Args:
            teacher_id: Clerk id of the teacher.

        Returns:
            Classes with id, name, description, studentCount and createdAt.

        Raises:
            MissingTeacherError: If no teacher id is given.
        """
        if not teacher_id:
            raise MissingTeacherError("Teacher ID is required")

        student_counts = (
            select(TeacherStudent.class_id, func.count(TeacherStudent.id).label("student_count"))
            .where(TeacherStudent.status == ACTIVE_STUDENT)
            .group_by(TeacherStudent.class_id)
            .subquery()
        )
        result = await self.db.execute(
            select(TeacherClass, func.coalesce(student_counts.c.student_count, 0))
            .outerjoin(student_counts, student_counts.c.class_id == TeacherClass.id)
            .where(TeacherClass.teacher_id == teacher_id)
            .order_by(TeacherClass.created_at.desc())
        )

        classes = [
            {
                "id": teacher_class.id,
                "name": teacher_class.class_name,
                "description": teacher_class.description,
                "studentCount": count,
                "createdAt": format_iso(teacher_class.created_at),
            }
            for teacher_class, count in result.all()
        ]
        logger.info("Listed classes: teacher=%s, classes=%d", teacher_id, len(classes))
        return classes
