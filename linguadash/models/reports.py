# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request models for the teacher dashboard reports."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from linguadash.models.common import CamelModel


class OrganizationScopedRequest(CamelModel):
    """Request scoped to an organization.

    A missing organization code falls back to the configured default.
    """

    organization_code: str | None = Field(default=None, description="Organization code")


class ScoreFilters(CamelModel):
    """Optional filters applied to per-skill score queries.

    Each report uses the subset of filters that matches its table.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    min_score: float | None = None
    max_score: float | None = None
    task_id: str | None = None
    lesson_id: str | None = None
    course_id: str | None = None
    section_id: str | None = None
    exercise_id: str | None = None
    title: str | None = Field(default=None, description="Case-insensitive title match")
    audio_title: str | None = Field(default=None, description="Case-insensitive audio title match")
    task_type: str | None = None
    word: str | None = None
    course: str | None = None


class ScoreReportRequest(OrganizationScopedRequest):
    """Request for a per-skill score report.

    A user id narrows the report to one student, overriding the
    organization scope.
    """

    user_id: str | None = None
    filters: ScoreFilters = Field(default_factory=ScoreFilters)


class ChatbotScoresQuery(CamelModel):
    """Filters of the raw chatbot score listing."""

    user_id: str | None = None
    lesson_id: str | None = Field(default=None, description="Matched against the task id")
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_score: float | None = None
    max_score: float | None = None


class TaskCompletionsRequest(OrganizationScopedRequest):
    """Request for the task completion analytics."""

    course_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class StudentsOverviewRequest(OrganizationScopedRequest):
    """Request for the students overview."""

    teacher_id: str | None = None


class StudentDetailsRequest(OrganizationScopedRequest):
    """Request for the detail page of one student."""

    teacher_id: str | None = None
    student_id: str | None = None
    time_range: Literal["week", "month", "all"] = "month"


class ListeningDashboardRequest(OrganizationScopedRequest):
    """Request for the listening dashboard."""

    lesson_id: str | None = None
    lesson_ids: list[str] | None = None
    student_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    min_score: float | None = None
    max_score: float | None = None
    group_by: Literal["student", "lesson", "date", "score_range"] = "student"
    sort_by: Literal["score", "attempts", "date", "improvement"] = "score"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1, le=1000)
