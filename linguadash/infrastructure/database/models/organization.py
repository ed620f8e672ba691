# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization membership model."""

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from linguadash.infrastructure.database.models.base import Base, CreatedAtMixin


class UserOrganization(Base, CreatedAtMixin):
    """Membership of a platform user in an organization.

    One row per (user, organization). The organization code scopes
    every teacher dashboard report.
    """

    __tablename__ = "user_organizations"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    organization_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    organization_name: Mapped[str | None] = mapped_column(String(255))
