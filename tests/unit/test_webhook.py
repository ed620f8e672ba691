# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Clerk webhook verification and handling."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError
from svix.webhooks import Webhook

from linguadash.core.config.settings import ClerkSettings
from linguadash.domains.enrollment import (
    ClerkWebhookHandler,
    InvalidWebhookSignatureError,
    MissingWebhookHeadersError,
    WebhookNotConfiguredError,
    WebhookProcessingError,
)
from linguadash.infrastructure.database.models import StudentEnrollment


@pytest.fixture
def handler(mock_db, clerk_settings, dashboard_settings):
    """Create webhook handler with mock database."""
    return ClerkWebhookHandler(db=mock_db, settings=clerk_settings, dashboard=dashboard_settings)


def signed_delivery(secret: str, event: dict, sent_at: datetime | None = None) -> tuple[bytes, dict]:
    """Sign an event the way Svix delivers it."""
    payload = json.dumps(event)
    msg_id = "msg_2abc"
    timestamp = sent_at or datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, payload)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
    }
    return payload.encode(), headers


def rows_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def created_event(user: dict, **metadata) -> dict:
    user["public_metadata"] = {"role": "student", "courseId": "telc_a1", **metadata}
    return {"type": "user.created", "data": user}


class TestVerification:
    """Tests for Svix signature verification."""

    def test_valid_signature(self, handler, clerk_settings):
        """Test a correctly signed delivery returns the event."""
        event = {"type": "user.updated", "data": {"id": "user_1"}}
        payload, headers = signed_delivery(clerk_settings.webhook_secret.get_secret_value(), event)

        assert handler.verify(payload, headers) == event

    def test_missing_headers(self, handler):
        """Test a delivery without Svix headers is rejected."""
        with pytest.raises(MissingWebhookHeadersError):
            handler.verify(b"{}", {"svix-id": "msg_1"})

    def test_tampered_payload(self, handler, clerk_settings):
        """Test a modified body fails verification."""
        payload, headers = signed_delivery(
            clerk_settings.webhook_secret.get_secret_value(),
            {"type": "user.deleted", "data": {"id": "user_1"}},
        )

        with pytest.raises(InvalidWebhookSignatureError):
            handler.verify(payload.replace(b"user_1", b"user_2"), headers)

    def test_stale_timestamp(self, handler, clerk_settings):
        """Test deliveries outside the tolerance window are rejected."""
        payload, headers = signed_delivery(
            clerk_settings.webhook_secret.get_secret_value(),
            {"type": "user.updated", "data": {}},
            sent_at=datetime.now(timezone.utc) - timedelta(hours=1),
        )

        with pytest.raises(InvalidWebhookSignatureError):
            handler.verify(payload, headers)

    def test_unconfigured_secret(self, mock_db, dashboard_settings):
        """Test verification requires a webhook secret."""
        handler = ClerkWebhookHandler(mock_db, ClerkSettings(webhook_secret=None), dashboard_settings)

        with pytest.raises(WebhookNotConfiguredError):
            handler.verify(b"{}", {})


class TestUserCreated:
    """Tests for enrollment activation on sign-up."""

    @pytest.mark.asyncio
    async def test_activates_invited_enrollment(self, handler, mock_db, sample_clerk_user):
        """Test the invited enrollment becomes active."""
        enrollment = StudentEnrollment(
            student_email="anna@example.com",
            course_id="telc_a1",
            organization_code="ANB",
            status="invited",
            invitation_status="sent",
        )
        mock_db.execute.return_value = rows_result([enrollment])

        outcome = await handler.handle(created_event(sample_clerk_user, organizationCode="ANB"))

        assert outcome == {"event": "user.created", "updated": 1}
        assert enrollment.status == "active"
        assert enrollment.clerk_user_id == sample_clerk_user["id"]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replay_changes_nothing(self, handler, mock_db, sample_clerk_user):
        """Test a redelivered event leaves active rows untouched."""
        activated_at = datetime(2025, 3, 1, tzinfo=timezone.utc)
        enrollment = StudentEnrollment(
            student_email="anna@example.com",
            course_id="telc_a1",
            organization_code="ANB",
            status="active",
            clerk_user_id=sample_clerk_user["id"],
            activated_at=activated_at,
        )
        mock_db.execute.return_value = rows_result([enrollment])

        outcome = await handler.handle(created_event(sample_clerk_user))

        assert outcome["updated"] == 0
        assert enrollment.activated_at == activated_at

    @pytest.mark.asyncio
    async def test_ignores_users_without_student_metadata(self, handler, mock_db, sample_clerk_user):
        """Test teachers and self sign-ups do not touch enrollments."""
        sample_clerk_user["public_metadata"] = {"role": "teacher"}

        outcome = await handler.handle({"type": "user.created", "data": sample_clerk_user})

        assert outcome["updated"] == 0
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_matching_enrollment(self, handler, mock_db, sample_clerk_user):
        """Test an unmatched sign-up is not an error."""
        mock_db.execute.return_value = rows_result([])

        outcome = await handler.handle(created_event(sample_clerk_user, classId="class-1"))

        assert outcome["updated"] == 0
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_failure(self, handler, mock_db, sample_clerk_user):
        """Test database errors roll back and surface."""
        mock_db.execute.side_effect = SQLAlchemyError("connection lost")

        with pytest.raises(WebhookProcessingError):
            await handler.handle(created_event(sample_clerk_user))

        mock_db.rollback.assert_awaited_once()


class TestOtherEvents:
    """Tests for update, delete and unknown events."""

    @pytest.mark.asyncio
    async def test_user_deleted_deactivates(self, handler, mock_db):
        """Test a deleted user's enrollments become inactive."""
        enrollment = StudentEnrollment(
            student_email="anna@example.com",
            course_id="telc_a1",
            organization_code="ANB",
            status="active",
            clerk_user_id="user_1",
            enrollment_data={"source": "teacher_dashboard"},
        )
        mock_db.execute.return_value = rows_result([enrollment])

        outcome = await handler.handle({"type": "user.deleted", "data": {"id": "user_1"}})

        assert outcome == {"event": "user.deleted", "updated": 1}
        assert enrollment.status == "inactive"
        assert enrollment.clerk_user_id is None
        assert enrollment.enrollment_data["source"] == "teacher_dashboard"
        assert enrollment.enrollment_data["user_deleted"] is True
        assert "deleted_at" in enrollment.enrollment_data

    @pytest.mark.asyncio
    async def test_user_updated_is_acknowledged(self, handler, mock_db, sample_clerk_user):
        """Test updates are logged only."""
        outcome = await handler.handle({"type": "user.updated", "data": sample_clerk_user})

        assert outcome == {"event": "user.updated", "handled": True}
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_event_is_ignored(self, handler):
        """Test unhandled event types are acknowledged."""
        outcome = await handler.handle({"type": "session.created", "data": {}})

        assert outcome == {"event": "session.created", "handled": False}
