# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared plumbing for the teacher dashboard reports.

Every report resolves the members of an organization, fetches rows for
them with the request filters applied in SQL, and enriches the result
with identity data from the directory.
"""

import logging
from typing import Any

from sqlalchemy import Float, case, cast
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.domains.organization import (
    DirectoryService,
    OrganizationService,
    StudentProfile,
    placeholder_name,
)

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Base exception for report errors."""

    pass


class StudentNotInOrganizationError(ReportError):
    """Raised when a student is not a member of the teacher's organization."""

    pass


NUMERIC_TEXT_PATTERN = r"^\s*-?\d+(\.\d+)?\s*$"


def numeric(column: Any) -> Any:
    """Cast a text score column to a float expression.

    Values that do not look like a number become NULL, so comparisons
    against them are false instead of failing the query.
    """
    return case(
        (column.op("~")(NUMERIC_TEXT_PATTERN), cast(column, Float)),
        else_=None,
    )


def identity_fields(user_id: str, profile: StudentProfile | None) -> dict[str, Any]:
    """Name and email fields shared by per-student cards."""
    if profile is None:
        profile = StudentProfile.placeholder(user_id)
    return {
        "userId": user_id,
        "name": profile.full_name or placeholder_name(user_id),
        "email": profile.email,
        "firstName": profile.first_name,
        "lastName": profile.last_name,
    }


def distinct_in_order(values: list[Any]) -> list[Any]:
    """Distinct values in first-seen order."""
    return list(dict.fromkeys(values))


class ReportService:
    """Base class for organization-scoped reports.

    Attributes:
        db: Async database session.
        organizations: Organization membership service.
        directory: Identity directory.
    """

    def __init__(self, db: AsyncSession, directory: DirectoryService) -> None:
        self.db = db
        self.organizations = OrganizationService(db)
        self.directory = directory

    async def resolve_scope(
        self,
        organization_code: str,
        user_id: str | None = None,
    ) -> list[str]:
        """Resolve the user ids a report covers.

        An explicit user id overrides the organization scope. An
        organization without members yields an empty scope.
        """
        if user_id:
            return [user_id]
        return await self.organizations.get_member_ids(organization_code)

    async def user_details(self, user_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Build the ``users`` block of row-oriented reports.

        Returns:
            Mapping of user id to user_id, name, email, names and
            organization name.
        """
        profiles = await self.directory.get_profiles(user_ids)
        organizations = await self.organizations.get_organization_names(user_ids)
        return {
            profile.user_id: {
                "user_id": profile.user_id,
                "name": profile.full_name or placeholder_name(profile.user_id),
                "email": profile.email,
                "firstName": profile.first_name,
                "lastName": profile.last_name,
                "organization": organizations[profile.user_id],
            }
            for profile in profiles
        }

    @staticmethod
    def enrich_row(row: dict[str, Any], user: dict[str, Any] | None) -> dict[str, Any]:
        """Attach user display fields to a result row."""
        user = user or {}
        return {
            **row,
            "userName": user.get("name"),
            "userEmail": user.get("email"),
            "userFirstName": user.get("firstName"),
            "userLastName": user.get("lastName"),
            "organization": user.get("organization"),
        }
