# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async client for the Clerk Backend API.

Clerk is the identity provider of the learning platform. LinguaDash
uses it to look up user profiles and email addresses and to send
sign-up invitations to students.

Example:
    >>> client = ClerkClient(settings.clerk)
    >>> user = await client.get_user("user_2abc")
    >>> await client.close()
"""

import logging
from typing import Any

import httpx

from linguadash.core.config.settings import ClerkSettings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Raised when a Clerk Backend API call fails.

    Attributes:
        message: Error message from Clerk, or a transport description.
        status_code: HTTP status code, None for transport failures.
        code: First Clerk error code, e.g. ``form_identifier_exists``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class IdentityProviderNotConfiguredError(IdentityProviderError):
    """Raised when no Clerk secret key is configured."""

    pass


def primary_email(user: dict[str, Any]) -> str | None:
    """Select the primary email address of a Clerk user object.

    Uses the address whose id matches ``primary_email_address_id``,
    falling back to the first address.

    Args:
        user: Clerk user object as returned by the Backend API.

    Returns:
        The email address, or None if the user has none.
    """
    addresses = user.get("email_addresses") or []
    primary_id = user.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


class ClerkClient:
    """Thin async wrapper over the Clerk Backend API.

    Every non-2xx response raises IdentityProviderError carrying the
    first Clerk error code and message.

    Attributes:
        _settings: Clerk configuration.
        _client: HTTP client for API requests.
    """

    def __init__(
        self,
        settings: ClerkSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Clerk configuration.
            transport: Optional httpx transport, used by tests.
        """
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.api_url,
            headers=settings.auth_headers,
            timeout=settings.timeout,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        """Check whether a secret key is available."""
        return self._settings.is_configured

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if not self.is_configured:
            raise IdentityProviderNotConfiguredError("Clerk secret key is not configured")

        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error("Clerk request failed: %s %s: %s", method, path, str(e))
            raise IdentityProviderError(f"Clerk request failed: {e}") from e

        if response.is_success:
            return response.json()

        raise self._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> IdentityProviderError:
        code = None
        message = response.text or f"Clerk returned HTTP {response.status_code}"
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if errors:
            first = errors[0]
            code = first.get("code")
            message = first.get("long_message") or first.get("message") or message

        logger.warning(
            "Clerk API error: status=%d, code=%s, message=%s",
            response.status_code,
            code,
            message,
        )
        return IdentityProviderError(message, status_code=response.status_code, code=code)

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, user_id: str) -> dict[str, Any]:
        """Get a single user by id."""
        return await self._request("GET", f"/users/{user_id}")

    async def list_users(
        self,
        user_ids: list[str] | None = None,
        email_addresses: list[str] | None = None,
        query: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """List users matching the given filters.

        Args:
            user_ids: Restrict to these user ids.
            email_addresses: Restrict to users owning these addresses.
            query: Free-text search over email, name and username.
            limit: Maximum number of users returned.

        Returns:
            List of Clerk user objects.
        """
        params: list[tuple[str, str | int]] = [("limit", limit)]
        params.extend(("user_id", user_id) for user_id in user_ids or [])
        params.extend(("email_address", email) for email in email_addresses or [])
        if query:
            params.append(("query", query))

        data = await self._request("GET", "/users", params=params)
        # The endpoint returns a bare array; paginated variants wrap it
        if isinstance(data, dict):
            return data.get("data", [])
        return data

    # =========================================================================
    # Invitations
    # =========================================================================

    async def create_invitation(
        self,
        email_address: str,
        redirect_url: str,
        public_metadata: dict[str, Any],
        notify: bool = True,
    ) -> dict[str, Any]:
        """Create a sign-up invitation and email it to the address.

        Args:
            email_address: Address to invite.
            redirect_url: Where the invitation link lands after sign-up.
            public_metadata: Metadata copied onto the created user.
            notify: Whether Clerk sends the invitation email.

        Returns:
            The created invitation object.
        """
        payload = {
            "email_address": email_address,
            "redirect_url": redirect_url,
            "public_metadata": public_metadata,
            "notify": notify,
        }
        invitation = await self._request("POST", "/invitations", json=payload)
        logger.info("Created Clerk invitation %s for %s", invitation.get("id"), email_address)
        return invitation

    async def get_invitation(self, invitation_id: str) -> dict[str, Any]:
        """Get an invitation by id."""
        return await self._request("GET", f"/invitations/{invitation_id}")

    async def revoke_invitation(self, invitation_id: str) -> dict[str, Any]:
        """Revoke a pending invitation."""
        return await self._request("POST", f"/invitations/{invitation_id}/revoke")
