# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for inviting and enrolling students in courses.

This module provides the EnrollmentService class for:
- Enrollment by Clerk invitation (magic link)
- Manual enrollment without an invitation
- Listing, deleting and activating enrollments

Bulk enrollment reports failures per email; one failing address never
fails the rest of the batch.
"""

import logging
import re
from collections import Counter
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.core.config.settings import DashboardSettings
from linguadash.domains.enrollment.courses import Course, get_course
from linguadash.infrastructure.database.models import StudentEnrollment
from linguadash.infrastructure.database.models.enrollment import (
    ENROLLMENT_STATUS_ACTIVE,
    ENROLLMENT_STATUS_INVITED,
    INVITATION_STATUS_ACCEPTED,
    INVITATION_STATUS_EXPIRED,
    INVITATION_STATUS_SENT,
)
from linguadash.infrastructure.identity import ClerkClient, IdentityProviderError
from linguadash.models.enrollment import ActivateEnrollmentRequest, EnrollStudentsRequest
from linguadash.utils.datetime import utc_now

logger = logging.getLogger(__name__)

EMAIL_SEPARATORS = re.compile(r"[,;\n]+")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NO_CLASS = "none"
CLERK_IDENTIFIER_EXISTS = "form_identifier_exists"


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class InvalidCourseError(EnrollmentServiceError):
    """Raised when the course id is unknown."""

    pass


class InvalidEmailsError(EnrollmentServiceError):
    """Raised when one or more email addresses are malformed.

    Attributes:
        invalid_emails: The rejected addresses, in input order.
    """

    def __init__(self, invalid_emails: list[str]) -> None:
        super().__init__("Invalid email addresses found")
        self.invalid_emails = invalid_emails


class EnrollmentNotFoundError(EnrollmentServiceError):
    """Raised when no enrollment or invitation matches."""

    pass


class InvitationsNotConfiguredError(EnrollmentServiceError):
    """Raised when Clerk invitations cannot be sent."""

    pass


class MissingFieldError(EnrollmentServiceError):
    """Raised when a required request field is missing."""

    pass


def parse_emails(emails: str | list[str] | None) -> list[str]:
    """Normalize an email list.

    A string is split on commas, semicolons and newlines. Entries are
    trimmed and lowercased; empties are dropped and duplicates removed,
    keeping first-seen order.
    """
    if emails is None:
        return []
    if isinstance(emails, str):
        candidates = EMAIL_SEPARATORS.split(emails)
    else:
        candidates = emails
    cleaned = (email.strip().lower() for email in candidates)
    return list(dict.fromkeys(email for email in cleaned if email))


def invalid_emails(emails: list[str]) -> list[str]:
    return [email for email in emails if not EMAIL_PATTERN.match(email)]


def normalize_class_id(class_id: str | None) -> str | None:
    """Treat an empty or ``"none"`` class selection as no class."""
    if not class_id or class_id == NO_CLASS:
        return None
    return class_id


def _summary(results: list[dict[str, Any]], total: int) -> dict[str, int]:
    successful = sum(1 for result in results if result["success"])
    return {
        "total": total,
        "successful": successful,
        "failed": len(results) - successful,
        "alreadyEnrolled": sum(1 for result in results if result.get("alreadyEnrolled")),
    }


class EnrollmentService:
    """Service for the student enrollment lifecycle.

    Attributes:
        db: Async database session.
        clerk: Clerk Backend API client, used for invitations.
        settings: Dashboard settings, used for course platform URLs.
    """

    def __init__(
        self,
        db: AsyncSession,
        clerk: ClerkClient,
        settings: DashboardSettings,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            clerk: Clerk Backend API client.
            settings: Dashboard settings.
        """
        self.db = db
        self.clerk = clerk
        self.settings = settings

    # =========================================================================
    # Enrollment
    # =========================================================================

    async def enroll_students(
        self,
        request: EnrollStudentsRequest,
        teacher_id: str,
    ) -> dict[str, Any]:
        """Invite students by email and record their enrollments.

        Each new address gets a Clerk invitation that redirects to the
        course lessons, followed by an ``invited`` enrollment row. If the
        row cannot be written, the invitation is revoked.

        Args:
            request: Emails, course, organization and optional class.
            teacher_id: Clerk id of the inviting teacher.

        Returns:
            Summary counts and one result per email.

        Raises:
            InvitationsNotConfiguredError: If no Clerk secret key is set.
            InvalidCourseError: If the course id is unknown.
            InvalidEmailsError: If any email is malformed.
        """
        if not self.clerk.is_configured:
            raise InvitationsNotConfiguredError(
                "Magic link invitations are not configured. Please contact support."
            )

        course, emails = self._validate(request)
        organization_code = self._organization_code(request.organization_code)
        class_id = normalize_class_id(request.class_id)
        lessons_url = course.lessons_url(self.settings)

        results = []
        for email in emails:
            if await self.find_existing(email, course.id, organization_code, class_id):
                results.append(self._already_enrolled(email))
                continue

            metadata = {
                "role": "student",
                "courseId": course.id,
                "organizationCode": organization_code,
                "invitedBy": teacher_id,
                "enrollmentType": "teacher_invitation",
                "coursePlatformUrl": lessons_url,
            }
            if class_id:
                metadata["classId"] = class_id

            try:
                invitation = await self.clerk.create_invitation(
                    email_address=email,
                    redirect_url=lessons_url,
                    public_metadata=metadata,
                    notify=True,
                )
            except IdentityProviderError as e:
                results.append(self._invitation_failure(email, e))
                continue

            invitation_id = invitation["id"]
            now = utc_now()
            enrollment = StudentEnrollment(
                student_email=email,
                course_id=course.id,
                organization_code=organization_code,
                class_id=class_id,
                invited_by=teacher_id,
                invitation_id=invitation_id,
                invitation_status=INVITATION_STATUS_SENT,
                invitation_sent_at=now,
                invited_at=now,
                status=ENROLLMENT_STATUS_INVITED,
                enrollment_data={
                    "source": "teacher_dashboard",
                    "invitation_method": "magic_link",
                    "clerk_invitation_id": invitation_id,
                    "course_platform_url": lessons_url,
                },
            )
            if not await self._insert(enrollment):
                await self._revoke(invitation_id)
                results.append({
                    "email": email,
                    "success": False,
                    "message": "Failed to create enrollment record",
                })
                continue

            results.append({
                "email": email,
                "success": True,
                "message": "Magic link invitation sent successfully",
                "invitationId": invitation_id,
            })

        summary = _summary(results, len(emails))
        summary["userExists"] = sum(1 for result in results if result.get("userExists"))
        logger.info(
            "Invited students: course=%s, organization=%s, by=%s, successful=%d, failed=%d",
            course.id,
            organization_code,
            teacher_id,
            summary["successful"],
            summary["failed"],
        )
        return {"summary": summary, "results": results}

    async def enroll_students_manual(
        self,
        request: EnrollStudentsRequest,
        teacher_id: str,
    ) -> dict[str, Any]:
        """Record ``invited`` enrollments without sending invitations.

        Raises:
            InvalidCourseError: If the course id is unknown.
            InvalidEmailsError: If any email is malformed.
        """
        course, emails = self._validate(request)
        organization_code = self._organization_code(request.organization_code)
        class_id = normalize_class_id(request.class_id)

        results = []
        for email in emails:
            if await self.find_existing(email, course.id, organization_code, class_id):
                results.append(self._already_enrolled(email))
                continue

            enrollment = StudentEnrollment(
                student_email=email,
                course_id=course.id,
                organization_code=organization_code,
                class_id=class_id,
                invited_by=teacher_id,
                invited_at=utc_now(),
                status=ENROLLMENT_STATUS_INVITED,
                enrollment_data={
                    "source": "teacher_dashboard",
                    "invited_via": "manual_entry",
                },
            )
            if await self._insert(enrollment):
                results.append({"email": email, "success": True, "message": "Successfully enrolled"})
            else:
                results.append({
                    "email": email,
                    "success": False,
                    "message": "Failed to create enrollment",
                })

        summary = _summary(results, len(emails))
        logger.info(
            "Enrolled students: course=%s, organization=%s, by=%s, successful=%d, failed=%d",
            course.id,
            organization_code,
            teacher_id,
            summary["successful"],
            summary["failed"],
        )
        return {"summary": summary, "results": results}

    async def find_existing(
        self,
        email: str,
        course_id: str,
        organization_code: str,
        class_id: str | None = None,
    ) -> StudentEnrollment | None:
        """Find an enrollment of the email in the course and organization.

        The class narrows the match only when one is given.
        """
        query = select(StudentEnrollment).where(
            StudentEnrollment.student_email == email,
            StudentEnrollment.course_id == course_id,
            StudentEnrollment.organization_code == organization_code,
        )
        if class_id:
            query = query.where(StudentEnrollment.class_id == class_id)

        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_enrollments(
        self,
        organization_code: str | None = None,
        course_id: str | None = None,
    ) -> dict[str, Any]:
        """List an organization's enrollments, newest invitation first.

        Returns:
            Enrollments plus counts by status and by course.
        """
        organization_code = self._organization_code(organization_code)
        query = select(StudentEnrollment).where(
            StudentEnrollment.organization_code == organization_code
        )
        if course_id:
            query = query.where(StudentEnrollment.course_id == course_id)

        result = await self.db.execute(
            query.order_by(StudentEnrollment.invited_at.desc().nulls_last())
        )
        enrollments = list(result.scalars().all())

        by_course: dict[str, dict[str, int]] = {}
        for enrollment in enrollments:
            counts = by_course.setdefault(
                enrollment.course_id, {"total": 0, "active": 0, "invited": 0}
            )
            counts["total"] += 1
            if enrollment.status in (ENROLLMENT_STATUS_ACTIVE, ENROLLMENT_STATUS_INVITED):
                counts[enrollment.status] += 1

        statuses = Counter(enrollment.status for enrollment in enrollments)
        return {
            "enrollments": [enrollment.to_dict() for enrollment in enrollments],
            "summary": {
                "total": len(enrollments),
                "byStatus": {
                    "active": statuses[ENROLLMENT_STATUS_ACTIVE],
                    "invited": statuses[ENROLLMENT_STATUS_INVITED],
                },
                "byCourse": by_course,
            },
        }

    async def invitation_status(
        self,
        organization_code: str | None = None,
        invitation_id: str | None = None,
    ) -> dict[str, Any]:
        """Report invitation status.

        With an invitation id the Clerk invitation is returned. Otherwise
        the organization's invited enrollments are listed with counts.

        Raises:
            EnrollmentNotFoundError: If Clerk has no such invitation.
        """
        if invitation_id:
            try:
                invitation = await self.clerk.get_invitation(invitation_id)
            except IdentityProviderError as e:
                logger.warning("Invitation lookup failed: id=%s, error=%s", invitation_id, e.message)
                raise EnrollmentNotFoundError("Invitation not found") from e
            return {"invitation": invitation}

        result = await self.db.execute(
            select(StudentEnrollment)
            .where(
                StudentEnrollment.organization_code == self._organization_code(organization_code),
                StudentEnrollment.invitation_id.is_not(None),
            )
            .order_by(StudentEnrollment.invitation_sent_at.desc().nulls_last())
        )
        enrollments = list(result.scalars().all())

        statuses = Counter(enrollment.invitation_status for enrollment in enrollments)
        return {
            "enrollments": [enrollment.to_dict() for enrollment in enrollments],
            "summary": {
                "total": len(enrollments),
                "sent": statuses[INVITATION_STATUS_SENT],
                "accepted": statuses[INVITATION_STATUS_ACCEPTED],
                "expired": statuses[INVITATION_STATUS_EXPIRED],
            },
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def delete_enrollment(self, enrollment_id: str | None) -> None:
        """Delete an enrollment by id.

        Deleting an id that matches no row is a no-op, so a repeated
        delete from the dashboard still succeeds.

        Raises:
            MissingFieldError: If no id is given.
        """
        if not enrollment_id:
            raise MissingFieldError("Enrollment ID required")

        result = await self.db.execute(
            delete(StudentEnrollment).where(StudentEnrollment.id == enrollment_id)
        )
        await self.db.commit()
        logger.info("Deleted enrollment %s: rows=%s", enrollment_id, result.rowcount)

    async def activate_enrollment(
        self,
        request: ActivateEnrollmentRequest,
        clerk_user_id: str,
    ) -> dict[str, Any]:
        """Activate the signed-in student's enrollments for a course.

        Args:
            request: Email, course and optional class and organization.
            clerk_user_id: Clerk id of the signed-in student.

        Returns:
            The first activated enrollment.

        Raises:
            MissingFieldError: If email or course is missing.
            EnrollmentNotFoundError: If no enrollment matches.
        """
        if not request.email or not request.course_id:
            raise MissingFieldError("Email and courseId are required")

        query = select(StudentEnrollment).where(
            StudentEnrollment.student_email == request.email.strip().lower(),
            StudentEnrollment.course_id == request.course_id,
        )
        if request.organization_code:
            query = query.where(StudentEnrollment.organization_code == request.organization_code)
        class_id = normalize_class_id(request.class_id)
        if class_id:
            query = query.where(StudentEnrollment.class_id == class_id)

        result = await self.db.execute(query)
        enrollments = list(result.scalars().all())
        if not enrollments:
            raise EnrollmentNotFoundError("Enrollment not found")

        self.mark_active(enrollments, clerk_user_id)
        await self.db.commit()

        logger.info(
            "Activated enrollment: email=%s, course=%s, user=%s, rows=%d",
            request.email,
            request.course_id,
            clerk_user_id,
            len(enrollments),
        )
        return enrollments[0].to_dict()

    @staticmethod
    def mark_active(enrollments: list[StudentEnrollment], clerk_user_id: str) -> int:
        """Mark enrollments active for a Clerk user.

        Rows already active for the same user are left untouched.

        Returns:
            Number of rows changed.
        """
        now = utc_now()
        changed = 0
        for enrollment in enrollments:
            if enrollment.is_active and enrollment.clerk_user_id == clerk_user_id:
                continue
            enrollment.status = ENROLLMENT_STATUS_ACTIVE
            enrollment.invitation_status = INVITATION_STATUS_ACCEPTED
            enrollment.invitation_accepted_at = now
            enrollment.activated_at = now
            enrollment.clerk_user_id = clerk_user_id
            changed += 1
        return changed

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate(self, request: EnrollStudentsRequest) -> tuple[Course, list[str]]:
        course = get_course(request.course_id)
        if course is None:
            raise InvalidCourseError("Invalid course ID")

        emails = parse_emails(request.emails)
        rejected = invalid_emails(emails)
        if rejected:
            raise InvalidEmailsError(rejected)
        return course, emails

    def _organization_code(self, organization_code: str | None) -> str:
        return organization_code or self.settings.default_organization_code

    async def _insert(self, enrollment: StudentEnrollment) -> bool:
        """Insert one enrollment row, rolling back on failure."""
        self.db.add(enrollment)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to insert enrollment: email=%s, course=%s, error=%s",
                enrollment.student_email,
                enrollment.course_id,
                str(e),
            )
            return False
        return True

    async def _revoke(self, invitation_id: str) -> None:
        try:
            await self.clerk.revoke_invitation(invitation_id)
        except IdentityProviderError as e:
            logger.error("Failed to revoke invitation %s: %s", invitation_id, e.message)

    @staticmethod
    def _already_enrolled(email: str) -> dict[str, Any]:
        return {
            "email": email,
            "success": False,
            "message": "Student already enrolled in this course",
            "alreadyEnrolled": True,
        }

    @staticmethod
    def _invitation_failure(email: str, error: IdentityProviderError) -> dict[str, Any]:
        logger.warning(
            "Invitation failed: email=%s, status=%s, code=%s, message=%s",
            email,
            error.status_code,
            error.code,
            error.message,
        )
        if error.code == CLERK_IDENTIFIER_EXISTS:
            return {
                "email": email,
                "success": False,
                "message": "User already exists - they may sign in directly",
                "userExists": True,
            }
        message = error.message or "Failed to send invitation"
        if error.status_code == 422:
            message = "Invalid invitation parameters. Please check Clerk configuration."
        return {"email": email, "success": False, "message": message}
