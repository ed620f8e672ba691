# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning activity models.

Grammar error logs, task completions, vocabulary exposure and lesson
progress. These feed the cohort-level dashboards.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from linguadash.infrastructure.database.models.base import Base, CreatedAtMixin


class GrammarError(Base, CreatedAtMixin):
    """A grammar mistake detected in a learner's output."""

    __tablename__ = "grammar_errors"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    error_text: Mapped[str | None] = mapped_column(Text)
    correction: Mapped[str | None] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text)
    error_type: Mapped[str | None] = mapped_column(String(100))
    grammar_category: Mapped[str | None] = mapped_column(String(100))
    severity: Mapped[str | None] = mapped_column(String(20))
    source_type: Mapped[str | None] = mapped_column(String(50))
    context: Mapped[str | None] = mapped_column(Text)
    task_id: Mapped[str | None] = mapped_column(String(255))


class TaskCompletion(Base, CreatedAtMixin):
    """Completion of a lesson task."""

    __tablename__ = "task_completions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    course_id: Mapped[str | None] = mapped_column(String(100))
    lesson_id: Mapped[str | None] = mapped_column(String(255))
    task_type: Mapped[str | None] = mapped_column(String(100))
    attempts: Mapped[int | None] = mapped_column(Integer)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserVocabulary(Base, CreatedAtMixin):
    """A German term a learner has been exposed to."""

    __tablename__ = "german_user_vocabulary"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    term: Mapped[str] = mapped_column(String(255), nullable=False)
    first_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    times_seen: Mapped[int | None] = mapped_column(Integer)
    times_correct: Mapped[int | None] = mapped_column(Integer)


class UserLessonProgress(Base):
    """Progress of a learner through a lesson."""

    __tablename__ = "user_lesson_progress"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    lesson_id: Mapped[str | None] = mapped_column(String(255))
    lesson_title: Mapped[str | None] = mapped_column(String(500))
    completed: Mapped[bool | None] = mapped_column(Boolean)
    completion_percentage: Mapped[float | None] = mapped_column(Float)
    last_accessed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
