# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student identity enrichment from the identity provider.

Score tables only carry Clerk user ids. The directory resolves those
ids to names and email addresses so dashboards can show who is who.
Lookups that fail degrade to a placeholder profile instead of failing
the report.

Example:
    >>> directory = DirectoryService(ClerkClient(settings.clerk))
    >>> profiles = await directory.get_profiles(["user_2abcdEFG"])
    >>> profiles[0].full_name
    'Jane Doe'
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from linguadash.infrastructure.identity import (
    ClerkClient,
    IdentityProviderError,
    primary_email,
)

logger = logging.getLogger(__name__)

UNKNOWN_USER_NAME = "Unknown User"
DEFAULT_BATCH_SIZE = 10


def placeholder_name(user_id: str) -> str:
    """Display name for a user whose profile is unavailable.

    Clerk ids look like ``user_2abcd...``; four characters after the
    prefix are enough to tell students apart on a dashboard.
    """
    if user_id.startswith("user_"):
        return f"Student {user_id[5:9]}"
    return user_id


@dataclass
class StudentProfile:
    """Identity of a platform user.

    Attributes:
        user_id: Clerk user id.
        email: Primary email address, None when unknown.
        first_name: Given name.
        last_name: Family name.
        full_name: Display name.
    """

    user_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    full_name: str

    @classmethod
    def from_clerk_user(cls, user: dict[str, Any]) -> "StudentProfile":
        """Build a profile from a Clerk user object."""
        first_name = user.get("first_name")
        last_name = user.get("last_name")
        full_name = f"{first_name or ''} {last_name or ''}".strip() or UNKNOWN_USER_NAME
        return cls(
            user_id=user["id"],
            email=primary_email(user),
            first_name=first_name,
            last_name=last_name,
            full_name=full_name,
        )

    @classmethod
    def placeholder(cls, user_id: str) -> "StudentProfile":
        """Build a placeholder profile for an unresolvable user."""
        return cls(
            user_id=user_id,
            email=None,
            first_name=None,
            last_name=None,
            full_name=placeholder_name(user_id),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return {
            "userId": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
        }


class DirectoryService:
    """Resolves Clerk user ids to profiles.

    Attributes:
        _client: Clerk Backend API client.
        _batch_size: Number of concurrent lookups per batch.
    """

    def __init__(self, client: ClerkClient, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._client = client
        self._batch_size = batch_size

    @property
    def is_configured(self) -> bool:
        """Check whether the identity provider can be queried."""
        return self._client.is_configured

    async def find_profile(self, user_id: str) -> StudentProfile | None:
        """Look up one user, returning None if the lookup fails."""
        if not self.is_configured:
            return None
        try:
            user = await self._client.get_user(user_id)
        except IdentityProviderError as e:
            logger.warning("Failed to fetch user %s: %s", user_id, e.message)
            return None
        return StudentProfile.from_clerk_user(user)

    async def get_email(self, user_id: str) -> str | None:
        """Get the primary email address of a user, if resolvable."""
        profile = await self.find_profile(user_id)
        return profile.email if profile else None

    async def get_profiles(self, user_ids: list[str]) -> list[StudentProfile]:
        """Resolve profiles for user ids, preserving input order.

        Users are looked up concurrently in batches. A user whose lookup
        fails, or every user when the provider is not configured, gets a
        placeholder profile.

        Args:
            user_ids: Clerk user ids.

        Returns:
            One profile per input id, in input order.
        """
        if not user_ids:
            return []

        if not self.is_configured:
            logger.info("Identity provider not configured, using placeholder profiles")
            return [StudentProfile.placeholder(user_id) for user_id in user_ids]

        profiles: list[StudentProfile] = []
        for start in range(0, len(user_ids), self._batch_size):
            batch = user_ids[start:start + self._batch_size]
            results = await asyncio.gather(*(self.find_profile(user_id) for user_id in batch))
            for user_id, profile in zip(batch, results):
                profiles.append(profile or StudentProfile.placeholder(user_id))

        return profiles

    async def get_profile_map(self, user_ids: list[str]) -> dict[str, StudentProfile]:
        """Resolve profiles keyed by user id."""
        return {profile.user_id: profile for profile in await self.get_profiles(user_ids)}

    async def find_by_emails(
        self,
        email_addresses: list[str],
        limit: int = 100,
    ) -> list[StudentProfile]:
        """Find users owning any of the given email addresses.

        Raises:
            IdentityProviderError: If the provider rejects the request.
        """
        users = await self._client.list_users(email_addresses=email_addresses, limit=limit)
        return [StudentProfile.from_clerk_user(user) for user in users]

    async def search(self, query: str, limit: int = 20) -> list[StudentProfile]:
        """Search users by email, name or username.

        Raises:
            IdentityProviderError: If the provider rejects the request.
        """
        users = await self._client.list_users(query=query, limit=limit)
        return [StudentProfile.from_clerk_user(user) for user in users]
