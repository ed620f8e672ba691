# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization member listings with identity data."""

import logging
from typing import Any

from linguadash.domains.organization.directory import DirectoryService, StudentProfile
from linguadash.domains.organization.service import OrganizationService, UNKNOWN_ORGANIZATION

logger = logging.getLogger(__name__)


class MemberDirectory:
    """Lists the members of an organization with names and emails.

    Attributes:
        organizations: Organization membership service.
        directory: Identity directory.
    """

    def __init__(self, organizations: OrganizationService, directory: DirectoryService) -> None:
        self.organizations = organizations
        self.directory = directory

    async def members_with_emails(
        self,
        organization_code: str,
        include_emails: bool = True,
    ) -> dict[str, Any]:
        """List an organization's members with identity and email stats.

        Args:
            organization_code: Organization code.
            include_emails: Resolve profiles through the identity provider.
                When False, members get placeholder profiles.

        Returns:
            Dict with ``users`` and ``stats``.
        """
        members = await self.organizations.get_members(organization_code)
        if not members:
            return {
                "users": [],
                "stats": {
                    "totalUsers": 0,
                    "usersWithEmails": 0,
                    "usersWithoutEmails": 0,
                    "organizationCode": organization_code,
                },
            }

        if include_emails:
            logger.info("Fetching email data for %d users", len(members))
            profiles = await self.directory.get_profiles([m.user_id for m in members])
        else:
            profiles = [StudentProfile.placeholder(m.user_id) for m in members]

        users = []
        for member, profile in zip(members, profiles):
            users.append({
                **profile.to_dict(),
                "organizationName": member.organization_name or UNKNOWN_ORGANIZATION,
                "organizationCode": member.organization_code or organization_code,
            })

        with_email = sum(1 for user in users if user["email"])
        return {
            "users": users,
            "stats": {
                "totalUsers": len(users),
                "usersWithEmails": with_email,
                "usersWithoutEmails": len(users) - with_email,
                "organizationCode": organization_code,
            },
        }

    async def quick_list(self, organization_code: str, limit: int = 50) -> dict[str, Any]:
        """List up to ``limit`` members with their profiles."""
        members = await self.organizations.get_members(organization_code, limit=limit)
        profiles = await self.directory.get_profiles([m.user_id for m in members])
        return {
            "users": [profile.to_dict() for profile in profiles[:limit]],
            "totalFound": len(profiles),
        }
