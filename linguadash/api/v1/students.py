# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student overview API endpoints.

This module provides the teacher dashboard's student pages:
- POST /students - Overview row of every active student
- POST /student-details - Detail page of one student
- POST /student-progress-overview - Engagement-ranked progress cards

Example:
    POST /api/v1/teacher-dashboard/students
    {"organizationCode": "ANB"}
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.core.config import get_settings
from linguadash.domains.analytics import (
    ProgressOverviewReport,
    StudentNotInOrganizationError,
    StudentReport,
)
from linguadash.domains.organization import DirectoryService
from linguadash.models.reports import (
    OrganizationScopedRequest,
    StudentDetailsRequest,
    StudentsOverviewRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_report(db: AsyncSession, directory: DirectoryService) -> StudentReport:
    """Get student report instance."""
    return StudentReport(
        db,
        directory,
        streak_course_id=get_settings().dashboard.streak_course_id,
    )


@router.post(
    "/students",
    summary="Students overview",
    description="Overview of every student in the organization with recent activity.",
)
async def students_overview(
    data: StudentsOverviewRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> list[dict[str, Any]]:
    """List active students with progress, streak, words and skills."""
    report = _get_report(db, directory)
    return await report.overview(resolve_organization_code(data.organization_code))


@router.post(
    "/student-details",
    summary="Student details",
    description="Detail page of one student of the teacher's organization.",
)
async def student_details(
    data: StudentDetailsRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Get the detail page of one student.

    Args:
        data: Teacher, student and time range.
        db: Database session.
        directory: Identity directory.

    Returns:
        Student detail dict.

    Raises:
        HTTPException: If ids are missing or the student is not a member.
    """
    if not data.teacher_id or not data.student_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Teacher ID and Student ID are required",
        )

    report = _get_report(db, directory)
    try:
        return await report.details(resolve_organization_code(data.organization_code), data)
    except StudentNotInOrganizationError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student not found or access denied",
        )


@router.post(
    "/student-progress-overview",
    summary="Student progress overview",
    description="Per-student progress cards ranked by engagement, with a cohort summary.",
)
async def student_progress_overview(
    data: OrganizationScopedRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Build progress cards for every member of the organization."""
    report = ProgressOverviewReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code))
