# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-skill score models.

The learning platform writes one row per scored exercise. Several
percentage columns are stored as text by the platform and are cast to
numbers when filtered or aggregated. Embedded JSON payloads are stored
as text and parsed leniently by the report services.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from linguadash.infrastructure.database.models.base import Base, CreatedAtMixin


def _uuid_pk():
    return mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )


class LessonSpeakingScore(Base, CreatedAtMixin):
    """Evaluated speaking task."""

    __tablename__ = "lesson_speaking_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    lesson_id: Mapped[str | None] = mapped_column(String(255))
    course_id: Mapped[str | None] = mapped_column(String(100))
    course_name: Mapped[str | None] = mapped_column(String(255))
    percentage_score: Mapped[float | None] = mapped_column(Float)
    total_score: Mapped[float | None] = mapped_column(Float)
    score: Mapped[float | None] = mapped_column(Float)
    grammar_vocabulary_score: Mapped[float | None] = mapped_column(Float)
    grammar_score: Mapped[float | None] = mapped_column(Float)
    communication_score: Mapped[float | None] = mapped_column(Float)
    conversation_history: Mapped[str | None] = mapped_column(Text)
    evaluation_data: Mapped[str | None] = mapped_column(Text)
    feedback: Mapped[str | None] = mapped_column(Text)


class LessonChatbotScore(Base, CreatedAtMixin):
    """Evaluated chatbot conversation task."""

    __tablename__ = "lesson_chatbot_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    course_name: Mapped[str | None] = mapped_column(String(255))
    total_score: Mapped[float | None] = mapped_column(Float)
    grammar_score: Mapped[float | None] = mapped_column(Float)
    vocabulary_score: Mapped[float | None] = mapped_column(Float)
    conversation_history: Mapped[str | None] = mapped_column(Text)
    evaluation_data: Mapped[str | None] = mapped_column(Text)


class ReadingResult(Base, CreatedAtMixin):
    """Reading exercise result with per-question answers."""

    __tablename__ = "reading_results"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500))
    section_id: Mapped[str | None] = mapped_column(String(255))
    lesson_id: Mapped[str | None] = mapped_column(String(255))
    percentage: Mapped[str | None] = mapped_column(Text)
    exercise_results: Mapped[str | None] = mapped_column(Text)


class ListeningResult(Base, CreatedAtMixin):
    """Listening exercise result with audio engagement data."""

    __tablename__ = "listening_results"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    exercise_id: Mapped[str | None] = mapped_column(String(255))
    audio_title: Mapped[str | None] = mapped_column(String(500))
    percentage: Mapped[str | None] = mapped_column(Text)
    question_results: Mapped[str | None] = mapped_column(Text)
    audio_play_count: Mapped[int | None] = mapped_column(Integer)
    transcript_viewed: Mapped[bool | None] = mapped_column(Boolean)
    time_taken_seconds: Mapped[float | None] = mapped_column(Float)


class LessonWritingScore(Base, CreatedAtMixin):
    """Evaluated writing task."""

    __tablename__ = "lesson_writing_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    score: Mapped[float | None] = mapped_column(Float)
    task_type: Mapped[str | None] = mapped_column(String(100))
    lesson_id: Mapped[str | None] = mapped_column(String(255))


class PronunciationScore(Base, CreatedAtMixin):
    """Score for a single word within a pronunciation attempt."""

    __tablename__ = "pronunciation_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    attempt_id: Mapped[str | None] = mapped_column(String(255))
    word: Mapped[str | None] = mapped_column(String(255))
    pronunciation_score: Mapped[str | None] = mapped_column(Text)
    course: Mapped[str | None] = mapped_column(String(100))
    task_id: Mapped[str | None] = mapped_column(String(255))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class LessonListeningScore(Base, CreatedAtMixin):
    """Lesson-level listening score used by the listening dashboard."""

    __tablename__ = "lesson_listening_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    lesson_id: Mapped[str | None] = mapped_column(String(255))
    task_id: Mapped[str | None] = mapped_column(String(255))
    score_percentage: Mapped[float | None] = mapped_column(Float)
    total_questions: Mapped[int | None] = mapped_column(Integer)
    correct_answers: Mapped[int | None] = mapped_column(Integer)
    time_spent_seconds: Mapped[float | None] = mapped_column(Float)
    audio_replays: Mapped[int | None] = mapped_column(Integer)
    difficulty_level: Mapped[str | None] = mapped_column(String(50))


class LessonReadingScore(Base, CreatedAtMixin):
    """Lesson-level reading score."""

    __tablename__ = "lesson_reading_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    score_percentage: Mapped[float | None] = mapped_column(Float)


class LessonGrammarScore(Base, CreatedAtMixin):
    """Lesson-level grammar score; the percentage is stored as text."""

    __tablename__ = "lesson_grammar_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    percentage_score: Mapped[str | None] = mapped_column(Text)


class SpeakingScore(Base, CreatedAtMixin):
    """Free speaking practice score."""

    __tablename__ = "speaking_scores"

    id: Mapped[str] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    score: Mapped[float | None] = mapped_column(Float)
