# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

This module provides the student enrollment workflow:
- POST /teacher-dashboard/enroll-students-magic - Invite students by email
- GET /teacher-dashboard/enroll-students-magic - Invitation status
- POST /teacher-dashboard/enroll-students - Enroll students manually
- GET /teacher-dashboard/enroll-students - List enrollments
- DELETE /teacher-dashboard/enroll-students - Delete an enrollment
- POST /student/activate-enrollment - Activate the caller's enrollment

Every endpoint requires a Clerk session. Teachers become the inviter of
the enrollments they create; students activate their own enrollments.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_clerk_client, get_db, require_auth
from linguadash.api.middleware.auth import CurrentUser
from linguadash.core.config import get_settings
from linguadash.domains.enrollment import (
    EnrollmentNotFoundError,
    EnrollmentService,
    InvalidCourseError,
    InvalidEmailsError,
    InvitationsNotConfiguredError,
    MissingFieldError,
)
from linguadash.infrastructure.identity import ClerkClient
from linguadash.models.enrollment import (
    ActivateEnrollmentRequest,
    DeleteEnrollmentRequest,
    EnrollStudentsRequest,
)

logger = logging.getLogger(__name__)

teacher_router = APIRouter()
student_router = APIRouter()


def get_enrollment_service(
    db: AsyncSession = Depends(get_db),
    clerk: ClerkClient = Depends(get_clerk_client),
) -> EnrollmentService:
    """Get enrollment service instance."""
    return EnrollmentService(db, clerk, get_settings().dashboard)


def _validation_error(error: InvalidCourseError | InvalidEmailsError) -> HTTPException:
    if isinstance(error, InvalidEmailsError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(error), "invalidEmails": error.invalid_emails},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


@teacher_router.post(
    "/enroll-students-magic",
    summary="Invite students",
    description="Send Clerk invitations and record invited enrollments.",
)
async def enroll_students_magic(
    data: EnrollStudentsRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """Invite students by email.

    Args:
        data: Emails, course, organization and optional class.
        current_user: Authenticated teacher.
        service: Enrollment service.

    Returns:
        Summary counts and per-email results.

    Raises:
        HTTPException: If invitations are not configured or input is invalid.
    """
    try:
        return await service.enroll_students(data, teacher_id=current_user.id)
    except InvitationsNotConfiguredError as e:
        logger.error("Invitation requested but Clerk is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )
    except (InvalidCourseError, InvalidEmailsError) as e:
        raise _validation_error(e)


@teacher_router.get("/enroll-students-magic", summary="Invitation status")
async def invitation_status(
    organization: Annotated[str | None, Query()] = None,
    invitation_id: Annotated[str | None, Query(alias="invitationId")] = None,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """Get one invitation, or the organization's invitations with counts.

    Raises:
        HTTPException: If the invitation does not exist.
    """
    try:
        return await service.invitation_status(organization, invitation_id)
    except EnrollmentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@teacher_router.post("/enroll-students", summary="Enroll students manually")
async def enroll_students(
    data: EnrollStudentsRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """Record invited enrollments without sending invitations.

    Raises:
        HTTPException: If the course or any email is invalid.
    """
    try:
        return await service.enroll_students_manual(data, teacher_id=current_user.id)
    except (InvalidCourseError, InvalidEmailsError) as e:
        raise _validation_error(e)


@teacher_router.get("/enroll-students", summary="List enrollments")
async def list_enrollments(
    organization: Annotated[str | None, Query()] = None,
    course: Annotated[str | None, Query()] = None,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """List enrollments with counts by status and course."""
    return await service.list_enrollments(organization, course)


@teacher_router.delete("/enroll-students", summary="Delete enrollment")
async def delete_enrollment(
    data: DeleteEnrollmentRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """Delete an enrollment by id.

    Raises:
        HTTPException: If no enrollment id is given.
    """
    try:
        await service.delete_enrollment(data.enrollment_id)
    except MissingFieldError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("Enrollment %s deleted by %s", data.enrollment_id, current_user.id)
    return {"success": True, "message": "Enrollment deleted successfully"}


@student_router.post("/activate-enrollment", summary="Activate enrollment")
async def activate_enrollment(
    data: ActivateEnrollmentRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    """Activate the signed-in student's enrollment.

    Raises:
        HTTPException: If fields are missing or no enrollment matches.
    """
    try:
        enrollment = await service.activate_enrollment(data, clerk_user_id=current_user.id)
    except MissingFieldError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except EnrollmentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {
        "success": True,
        "message": "Enrollment activated successfully",
        "enrollment": enrollment,
    }
