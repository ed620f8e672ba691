# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Enrollment service."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from linguadash.domains.enrollment import (
    EnrollmentNotFoundError,
    EnrollmentService,
    InvalidCourseError,
    InvalidEmailsError,
    InvitationsNotConfiguredError,
    MissingFieldError,
    parse_emails,
)
from linguadash.domains.enrollment.service import invalid_emails, normalize_class_id
from linguadash.infrastructure.database.models import StudentEnrollment
from linguadash.infrastructure.identity import IdentityProviderError
from linguadash.models.enrollment import ActivateEnrollmentRequest, EnrollStudentsRequest


@pytest.fixture
def mock_clerk():
    """Create a configured mock Clerk client."""
    clerk = MagicMock()
    clerk.is_configured = True
    clerk.create_invitation = AsyncMock(return_value={"id": "inv_1"})
    clerk.get_invitation = AsyncMock(return_value={"id": "inv_1", "status": "pending"})
    clerk.revoke_invitation = AsyncMock(return_value={"id": "inv_1", "status": "revoked"})
    return clerk


@pytest.fixture
def enrollment_service(mock_db, mock_clerk, dashboard_settings):
    """Create enrollment service with mocks."""
    return EnrollmentService(db=mock_db, clerk=mock_clerk, settings=dashboard_settings)


def lookup_result(existing=None):
    """Result of a single-row existence lookup."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = existing
    return result


def rows_result(rows):
    """Result of a multi-row select."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def make_enrollment(**overrides) -> StudentEnrollment:
    values = {
        "student_email": "anna@example.com",
        "course_id": "telc_a1",
        "organization_code": "ANB",
        "status": "invited",
    }
    values.update(overrides)
    return StudentEnrollment(**values)


class TestEmailParsing:
    """Tests for email normalization."""

    def test_splits_on_commas_semicolons_and_newlines(self):
        """Test every separator splits the list."""
        emails = parse_emails("a@example.com, b@example.com;c@example.com\nd@example.com")
        assert emails == ["a@example.com", "b@example.com", "c@example.com", "d@example.com"]

    def test_trims_lowercases_and_deduplicates(self):
        """Test normalization keeps first-seen order."""
        emails = parse_emails(" Anna@Example.com ,,anna@example.com;  ;ben@example.com")
        assert emails == ["anna@example.com", "ben@example.com"]

    def test_accepts_list(self):
        """Test a list input is normalized the same way."""
        assert parse_emails(["B@example.com", "", "b@example.com"]) == ["b@example.com"]
        assert parse_emails(None) == []

    def test_invalid_emails(self):
        """Test malformed addresses are reported."""
        assert invalid_emails(["ok@example.com", "missing-at.com", "no@tld"]) == [
            "missing-at.com",
            "no@tld",
        ]

    def test_normalize_class_id(self):
        """Test none and empty mean no class."""
        assert normalize_class_id("none") is None
        assert normalize_class_id("") is None
        assert normalize_class_id("class-1") == "class-1"


class TestEnrollStudents:
    """Tests for invitation-based enrollment."""

    @pytest.mark.asyncio
    async def test_requires_configured_clerk(self, enrollment_service, mock_clerk):
        """Test invitations fail fast without a secret key."""
        mock_clerk.is_configured = False
        request = EnrollStudentsRequest(emails="anna@example.com", course_id="telc_a1")

        with pytest.raises(InvitationsNotConfiguredError):
            await enrollment_service.enroll_students(request, "user_teacher")

    @pytest.mark.asyncio
    async def test_rejects_unknown_course(self, enrollment_service):
        """Test an unknown course id is rejected."""
        request = EnrollStudentsRequest(emails="anna@example.com", course_id="telc_c2")

        with pytest.raises(InvalidCourseError):
            await enrollment_service.enroll_students(request, "user_teacher")

    @pytest.mark.asyncio
    async def test_rejects_invalid_emails_before_any_invite(self, enrollment_service, mock_clerk):
        """Test one bad address rejects the whole request."""
        request = EnrollStudentsRequest(
            emails="anna@example.com, not-an-email",
            course_id="telc_a1",
        )

        with pytest.raises(InvalidEmailsError) as exc_info:
            await enrollment_service.enroll_students(request, "user_teacher")

        assert exc_info.value.invalid_emails == ["not-an-email"]
        mock_clerk.create_invitation.assert_not_called()

    @pytest.mark.asyncio
    async def test_invites_and_records_enrollment(
        self, enrollment_service, mock_db, mock_clerk, sample_teacher_id
    ):
        """Test a new student gets an invitation and an invited row."""
        mock_db.execute.return_value = lookup_result(None)
        request = EnrollStudentsRequest(
            emails="Anna@Example.com",
            course_id="telc_a1",
            organization_code="ANB",
            class_id="class-1",
        )

        response = await enrollment_service.enroll_students(request, sample_teacher_id)

        assert response["summary"] == {
            "total": 1,
            "successful": 1,
            "failed": 0,
            "alreadyEnrolled": 0,
            "userExists": 0,
        }
        assert response["results"][0]["invitationId"] == "inv_1"

        kwargs = mock_clerk.create_invitation.call_args.kwargs
        assert kwargs["email_address"] == "anna@example.com"
        assert kwargs["redirect_url"] == "https://telc-a1.thesmartlanguage.com/lessons"
        assert kwargs["public_metadata"]["classId"] == "class-1"
        assert kwargs["public_metadata"]["invitedBy"] == sample_teacher_id

        enrollment = mock_db.add.call_args.args[0]
        assert enrollment.status == "invited"
        assert enrollment.invitation_id == "inv_1"
        assert enrollment.invitation_status == "sent"
        assert enrollment.class_id == "class-1"

    @pytest.mark.asyncio
    async def test_already_enrolled_is_skipped(self, enrollment_service, mock_db, mock_clerk):
        """Test an existing enrollment is reported, not re-invited."""
        mock_db.execute.side_effect = [
            lookup_result(make_enrollment()),
            lookup_result(None),
        ]
        request = EnrollStudentsRequest(
            emails=["anna@example.com", "ben@example.com"],
            course_id="telc_a1",
        )

        response = await enrollment_service.enroll_students(request, "user_teacher")

        assert response["summary"]["alreadyEnrolled"] == 1
        assert response["summary"]["successful"] == 1
        assert response["results"][0]["alreadyEnrolled"] is True
        mock_clerk.create_invitation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_clerk_user(self, enrollment_service, mock_db, mock_clerk):
        """Test an address that already has an account is flagged."""
        mock_db.execute.return_value = lookup_result(None)
        mock_clerk.create_invitation.side_effect = IdentityProviderError(
            "That email address is taken.",
            status_code=422,
            code="form_identifier_exists",
        )
        request = EnrollStudentsRequest(emails="anna@example.com", course_id="telc_a1")

        response = await enrollment_service.enroll_students(request, "user_teacher")

        assert response["summary"]["userExists"] == 1
        assert response["summary"]["failed"] == 1
        assert response["results"][0]["userExists"] is True
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_invitation_parameters(self, enrollment_service, mock_db, mock_clerk):
        """Test other validation failures get a configuration hint."""
        mock_db.execute.return_value = lookup_result(None)
        mock_clerk.create_invitation.side_effect = IdentityProviderError(
            "redirect_url is invalid",
            status_code=422,
            code="form_param_format_invalid",
        )
        request = EnrollStudentsRequest(emails="anna@example.com", course_id="telc_a1")

        response = await enrollment_service.enroll_students(request, "user_teacher")

        assert response["results"][0]["message"] == (
            "Invalid invitation parameters. Please check Clerk configuration."
        )

    @pytest.mark.asyncio
    async def test_revokes_invitation_when_insert_fails(
        self, enrollment_service, mock_db, mock_clerk
    ):
        """Test a failed insert revokes the sent invitation."""
        mock_db.execute.return_value = lookup_result(None)
        mock_db.commit.side_effect = SQLAlchemyError("insert failed")
        request = EnrollStudentsRequest(emails="anna@example.com", course_id="telc_a1")

        response = await enrollment_service.enroll_students(request, "user_teacher")

        assert response["results"][0] == {
            "email": "anna@example.com",
            "success": False,
            "message": "Failed to create enrollment record",
        }
        mock_db.rollback.assert_awaited_once()
        mock_clerk.revoke_invitation.assert_awaited_once_with("inv_1")


class TestManualEnrollment:
    """Tests for enrollment without invitations."""

    @pytest.mark.asyncio
    async def test_does_not_call_clerk(self, enrollment_service, mock_db, mock_clerk):
        """Test manual enrollment only writes rows."""
        mock_clerk.is_configured = False
        mock_db.execute.return_value = lookup_result(None)
        request = EnrollStudentsRequest(
            emails="anna@example.com\nben@example.com",
            course_id="telc_b1",
            class_id="none",
        )

        response = await enrollment_service.enroll_students_manual(request, "user_teacher")

        assert response["summary"]["successful"] == 2
        assert mock_db.add.call_count == 2
        assert mock_db.add.call_args.args[0].class_id is None
        mock_clerk.create_invitation.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_failure_continues_batch(self, enrollment_service, mock_db):
        """Test one failed row does not stop the others."""
        mock_db.execute.return_value = lookup_result(None)
        mock_db.commit.side_effect = [SQLAlchemyError("duplicate"), None]
        request = EnrollStudentsRequest(
            emails="anna@example.com, ben@example.com",
            course_id="telc_a2",
        )

        response = await enrollment_service.enroll_students_manual(request, "user_teacher")

        assert [result["success"] for result in response["results"]] == [False, True]
        assert response["results"][0]["message"] == "Failed to create enrollment"


class TestQueries:
    """Tests for listing and invitation status."""

    @pytest.mark.asyncio
    async def test_list_enrollments_summary(self, enrollment_service, mock_db):
        """Test counts by status and course."""
        mock_db.execute.return_value = rows_result([
            make_enrollment(status="active"),
            make_enrollment(student_email="ben@example.com"),
            make_enrollment(course_id="telc_b1", status="inactive"),
        ])

        response = await enrollment_service.list_enrollments("ANB")

        assert response["summary"]["total"] == 3
        assert response["summary"]["byStatus"] == {"active": 1, "invited": 1}
        assert response["summary"]["byCourse"] == {
            "telc_a1": {"total": 2, "active": 1, "invited": 1},
            "telc_b1": {"total": 1, "active": 0, "invited": 0},
        }
        assert response["enrollments"][0]["student_email"] == "anna@example.com"

    @pytest.mark.asyncio
    async def test_invitation_status_by_id(self, enrollment_service, mock_clerk):
        """Test a single invitation is read from Clerk."""
        response = await enrollment_service.invitation_status(invitation_id="inv_1")

        assert response == {"invitation": {"id": "inv_1", "status": "pending"}}
        mock_clerk.get_invitation.assert_awaited_once_with("inv_1")

    @pytest.mark.asyncio
    async def test_invitation_status_unknown_id(self, enrollment_service, mock_clerk):
        """Test a Clerk failure reads as not found."""
        mock_clerk.get_invitation.side_effect = IdentityProviderError("not found", status_code=404)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.invitation_status(invitation_id="inv_missing")

    @pytest.mark.asyncio
    async def test_invitation_status_summary(self, enrollment_service, mock_db):
        """Test invitation counts for an organization."""
        mock_db.execute.return_value = rows_result([
            make_enrollment(invitation_id="inv_1", invitation_status="sent"),
            make_enrollment(invitation_id="inv_2", invitation_status="accepted"),
            make_enrollment(invitation_id="inv_3", invitation_status="accepted"),
        ])

        response = await enrollment_service.invitation_status("ANB")

        assert response["summary"] == {"total": 3, "sent": 1, "accepted": 2, "expired": 0}


class TestLifecycle:
    """Tests for deletion and activation."""

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, enrollment_service):
        """Test deletion without an id fails."""
        with pytest.raises(MissingFieldError):
            await enrollment_service.delete_enrollment(None)

    @pytest.mark.asyncio
    async def test_delete_commits(self, enrollment_service, mock_db):
        """Test deletion executes and commits."""
        await enrollment_service.delete_enrollment("enr-1")

        mock_db.execute.assert_awaited_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_unknown_id_succeeds(self, enrollment_service, mock_db):
        """Test deleting an id without a row is a no-op."""
        result = MagicMock()
        result.rowcount = 0
        mock_db.execute.return_value = result

        assert await enrollment_service.delete_enrollment("enr-missing") is None

        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_activate_requires_email_and_course(self, enrollment_service):
        """Test activation validates its input."""
        with pytest.raises(MissingFieldError):
            await enrollment_service.activate_enrollment(
                ActivateEnrollmentRequest(email="anna@example.com"),
                "user_1",
            )

    @pytest.mark.asyncio
    async def test_activate_not_found(self, enrollment_service, mock_db):
        """Test activation without a matching row fails."""
        mock_db.execute.return_value = rows_result([])

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.activate_enrollment(
                ActivateEnrollmentRequest(email="anna@example.com", course_id="telc_a1"),
                "user_1",
            )

    @pytest.mark.asyncio
    async def test_activate_marks_rows_active(self, enrollment_service, mock_db):
        """Test matching rows become active for the user."""
        enrollment = make_enrollment(invitation_status="sent")
        mock_db.execute.return_value = rows_result([enrollment])

        response = await enrollment_service.activate_enrollment(
            ActivateEnrollmentRequest(email="Anna@Example.com", course_id="telc_a1"),
            "user_1",
        )

        assert enrollment.status == "active"
        assert enrollment.invitation_status == "accepted"
        assert enrollment.clerk_user_id == "user_1"
        assert enrollment.activated_at is not None
        assert response["status"] == "active"
        mock_db.commit.assert_awaited_once()

    def test_mark_active_skips_rows_already_active_for_user(self):
        """Test repeated activation changes nothing."""
        enrollment = make_enrollment()

        assert EnrollmentService.mark_active([enrollment], "user_1") == 1
        activated_at = enrollment.activated_at
        assert EnrollmentService.mark_active([enrollment], "user_1") == 0
        assert enrollment.activated_at == activated_at
