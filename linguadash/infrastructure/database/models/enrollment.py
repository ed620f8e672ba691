# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student enrollment model.

An enrollment row is created when a teacher invites or manually enrolls
a student, and activated when the student's account is created.

Status lifecycle: invited -> active -> inactive (account deleted).
Invitation status: sent -> accepted.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from linguadash.infrastructure.database.models.base import Base

ENROLLMENT_STATUS_INVITED = "invited"
ENROLLMENT_STATUS_ACTIVE = "active"
ENROLLMENT_STATUS_INACTIVE = "inactive"

INVITATION_STATUS_SENT = "sent"
INVITATION_STATUS_ACCEPTED = "accepted"
INVITATION_STATUS_EXPIRED = "expired"


class StudentEnrollment(Base):
    """Enrollment of a student email in a course for an organization."""

    __tablename__ = "student_enrollments"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    student_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(100), nullable=False)
    organization_code: Mapped[str] = mapped_column(String(50), nullable=False)
    class_id: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ENROLLMENT_STATUS_INVITED,
    )
    invitation_id: Mapped[str | None] = mapped_column(String(255))
    invitation_status: Mapped[str | None] = mapped_column(String(20))
    invitation_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    invitation_accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    invited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    invited_by: Mapped[str | None] = mapped_column(String(255))
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    clerk_user_id: Mapped[str | None] = mapped_column(String(255), index=True)
    enrollment_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    @property
    def is_active(self) -> bool:
        """Check if the enrollment has been activated."""
        return self.status == ENROLLMENT_STATUS_ACTIVE
