# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization membership resolution.

Every teacher dashboard report is scoped to the members of one
organization, identified by its short code (``ANB`` by default).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.infrastructure.database.models import UserOrganization

logger = logging.getLogger(__name__)

UNKNOWN_ORGANIZATION = "Unknown"


class OrganizationService:
    """Service resolving organization membership.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_members(
        self,
        organization_code: str,
        limit: int | None = None,
    ) -> list[UserOrganization]:
        """Get the membership rows of an organization in store order.

        Args:
            organization_code: Organization code.
            limit: Optional maximum number of rows.

        Returns:
            List of membership rows.
        """
        query = select(UserOrganization).where(
            UserOrganization.organization_code == organization_code
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_member_ids(self, organization_code: str) -> list[str]:
        """Get the user ids of an organization's members in store order."""
        result = await self.db.execute(
            select(UserOrganization.user_id).where(
                UserOrganization.organization_code == organization_code
            )
        )
        member_ids = list(result.scalars().all())
        logger.debug(
            "Resolved %d members for organization %s",
            len(member_ids),
            organization_code,
        )
        return member_ids

    async def is_member(
        self,
        user_id: str,
        organization_code: str,
    ) -> UserOrganization | None:
        """Get the membership row of a user in an organization, if any."""
        result = await self.db.execute(
            select(UserOrganization)
            .where(
                UserOrganization.user_id == user_id,
                UserOrganization.organization_code == organization_code,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_organization_names(self, user_ids: list[str]) -> dict[str, str]:
        """Map user ids to their organization name.

        Users without a membership row map to ``"Unknown"``.
        """
        names = {user_id: UNKNOWN_ORGANIZATION for user_id in user_ids}
        if not user_ids:
            return names

        result = await self.db.execute(
            select(UserOrganization.user_id, UserOrganization.organization_name).where(
                UserOrganization.user_id.in_(user_ids)
            )
        )
        for user_id, organization_name in result.all():
            names[user_id] = organization_name or UNKNOWN_ORGANIZATION
        return names
