# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request models for the LinguaDash API."""

from linguadash.models.classes import TeacherClassesRequest
from linguadash.models.common import CamelModel
from linguadash.models.enrollment import (
    ActivateEnrollmentRequest,
    DeleteEnrollmentRequest,
    EnrollStudentsRequest,
)
from linguadash.models.reports import (
    ChatbotScoresQuery,
    ListeningDashboardRequest,
    OrganizationScopedRequest,
    ScoreFilters,
    ScoreReportRequest,
    StudentDetailsRequest,
    StudentsOverviewRequest,
    TaskCompletionsRequest,
)
from linguadash.models.users import EmailLookupRequest, UsersWithEmailsRequest

__all__ = [
    "ActivateEnrollmentRequest",
    "CamelModel",
    "ChatbotScoresQuery",
    "DeleteEnrollmentRequest",
    "EmailLookupRequest",
    "EnrollStudentsRequest",
    "ListeningDashboardRequest",
    "OrganizationScopedRequest",
    "ScoreFilters",
    "ScoreReportRequest",
    "StudentDetailsRequest",
    "StudentsOverviewRequest",
    "TaskCompletionsRequest",
    "TeacherClassesRequest",
    "UsersWithEmailsRequest",
]
