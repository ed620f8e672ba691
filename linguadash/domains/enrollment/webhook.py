# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clerk webhook handling.

Clerk delivers user lifecycle events through Svix. Every delivery is
verified against the webhook secret before it is processed:

- ``user.created`` activates the invited student's enrollments
- ``user.updated`` is logged
- ``user.deleted`` deactivates the user's enrollments

Svix retries deliveries, so every handler is safe to replay.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from svix.webhooks import Webhook, WebhookVerificationError

from linguadash.core.config.settings import ClerkSettings, DashboardSettings
from linguadash.domains.enrollment.service import EnrollmentService
from linguadash.infrastructure.database.models import StudentEnrollment
from linguadash.infrastructure.database.models.enrollment import ENROLLMENT_STATUS_INACTIVE
from linguadash.infrastructure.identity import primary_email
from linguadash.utils.datetime import format_iso, utc_now
from linguadash.utils.logging import get_logger

logger = get_logger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class WebhookError(Exception):
    """Base exception for webhook errors."""

    pass


class WebhookNotConfiguredError(WebhookError):
    """Raised when no webhook secret is configured."""

    pass


class MissingWebhookHeadersError(WebhookError):
    """Raised when a Svix header is absent."""

    pass


class InvalidWebhookSignatureError(WebhookError):
    """Raised when the signature or timestamp does not verify."""

    pass


class WebhookProcessingError(WebhookError):
    """Raised when a verified event cannot be applied."""

    pass


class ClerkWebhookHandler:
    """Verifies and applies Clerk user events.

    Attributes:
        db: Async database session.
        settings: Clerk configuration holding the webhook secret.
        dashboard: Dashboard settings, for the default organization.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: ClerkSettings,
        dashboard: DashboardSettings,
    ) -> None:
        self.db = db
        self.settings = settings
        self.dashboard = dashboard

    def verify(self, payload: bytes, headers: Mapping[str, str]) -> dict[str, Any]:
        """Verify a delivery and return the parsed event.

        Args:
            payload: Raw request body.
            headers: Request headers.

        Returns:
            The event with its ``type`` and ``data``.

        Raises:
            WebhookNotConfiguredError: If no secret is configured.
            MissingWebhookHeadersError: If a Svix header is missing.
            InvalidWebhookSignatureError: If verification fails.
        """
        if self.settings.webhook_secret is None:
            raise WebhookNotConfiguredError("Webhook secret not configured")

        svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
        if not all(svix_headers.values()):
            raise MissingWebhookHeadersError("Missing required headers")

        webhook = Webhook(self.settings.webhook_secret.get_secret_value())
        try:
            return webhook.verify(payload, svix_headers)
        except WebhookVerificationError as e:
            logger.warning(
                "webhook_verification_failed",
                svix_id=svix_headers["svix-id"],
                error=str(e),
            )
            raise InvalidWebhookSignatureError("Invalid webhook signature") from e

    async def handle(self, event: dict[str, Any]) -> dict[str, Any]:
        """Apply a verified event.

        Returns:
            Handler outcome, for logging and tests.

        Raises:
            WebhookProcessingError: If the database update fails.
        """
        event_type = event.get("type")
        data = event.get("data") or {}

        try:
            if event_type == "user.created":
                return await self.user_created(data)
            if event_type == "user.updated":
                logger.info("clerk_user_updated", user_id=data.get("id"), email=primary_email(data))
                return {"event": event_type, "handled": True}
            if event_type == "user.deleted":
                return await self.user_deleted(data)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("webhook_processing_failed", event_type=event_type)
            raise WebhookProcessingError("Webhook processing failed") from e

        logger.info("clerk_event_ignored", event_type=event_type)
        return {"event": event_type, "handled": False}

    async def user_created(self, user: dict[str, Any]) -> dict[str, Any]:
        """Activate the enrollments a student was invited to.

        Only users whose public metadata marks them as an invited student
        are considered. Rows already active for this user are not touched,
        so a replayed event changes nothing.
        """
        metadata = user.get("public_metadata") or {}
        user_id = user.get("id")
        if metadata.get("role") != "student" or not metadata.get("courseId"):
            logger.info("clerk_user_without_enrollment_metadata", user_id=user_id)
            return {"event": "user.created", "updated": 0}

        email = primary_email(user)
        if not email:
            logger.error("clerk_user_without_email", user_id=user_id)
            return {"event": "user.created", "updated": 0}

        organization_code = metadata.get("organizationCode") or self.dashboard.default_organization_code
        class_id = metadata.get("classId")

        query = select(StudentEnrollment).where(
            StudentEnrollment.student_email == email.lower(),
            StudentEnrollment.course_id == metadata["courseId"],
            StudentEnrollment.organization_code == organization_code,
        )
        if class_id:
            query = query.where(StudentEnrollment.class_id == class_id)
        else:
            query = query.where(StudentEnrollment.class_id.is_(None))

        result = await self.db.execute(query)
        enrollments = list(result.scalars().all())
        if not enrollments:
            logger.warning(
                "enrollment_not_found",
                email=email,
                course_id=metadata["courseId"],
            )
            return {"event": "user.created", "updated": 0}

        updated = EnrollmentService.mark_active(enrollments, user_id)
        await self.db.commit()

        logger.info(
            "enrollments_activated",
            user_id=user_id,
            course_id=metadata["courseId"],
            updated=updated,
        )
        return {"event": "user.created", "updated": updated}

    async def user_deleted(self, user: dict[str, Any]) -> dict[str, Any]:
        """Deactivate the enrollments of a deleted user."""
        user_id = user.get("id")
        if not user_id:
            return {"event": "user.deleted", "updated": 0}

        result = await self.db.execute(
            select(StudentEnrollment).where(StudentEnrollment.clerk_user_id == user_id)
        )
        enrollments = list(result.scalars().all())

        deleted_at = format_iso(utc_now())
        for enrollment in enrollments:
            enrollment.status = ENROLLMENT_STATUS_INACTIVE
            enrollment.clerk_user_id = None
            enrollment.enrollment_data = {
                **(enrollment.enrollment_data or {}),
                "user_deleted": True,
                "deleted_at": deleted_at,
            }
        await self.db.commit()

        logger.info("enrollments_deactivated", user_id=user_id, rows=len(enrollments))
        return {"event": "user.deleted", "updated": len(enrollments)}
