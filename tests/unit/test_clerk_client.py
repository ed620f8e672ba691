# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the Clerk Backend API client."""

import json

import httpx
import pytest

from linguadash.core.config.settings import ClerkSettings
from linguadash.infrastructure.identity import (
    ClerkClient,
    IdentityProviderError,
    IdentityProviderNotConfiguredError,
    primary_email,
)


def make_client(settings: ClerkSettings, handler) -> ClerkClient:
    """Create a client whose requests are answered by handler."""
    return ClerkClient(settings, transport=httpx.MockTransport(handler))


class TestPrimaryEmail:
    """Tests for primary email selection."""

    def test_uses_primary_address(self, sample_clerk_user):
        """Test the address matching the primary id wins."""
        assert primary_email(sample_clerk_user) == "anna@example.com"

    def test_falls_back_to_first_address(self, sample_clerk_user):
        """Test the first address is used without a primary match."""
        sample_clerk_user["primary_email_address_id"] = "idn_missing"
        assert primary_email(sample_clerk_user) == "old@example.com"

    def test_no_addresses(self):
        """Test a user without addresses has no email."""
        assert primary_email({"id": "user_1"}) is None


class TestRequests:
    """Tests for request building and response handling."""

    @pytest.mark.asyncio
    async def test_get_user_sends_bearer_token(self, clerk_settings):
        """Test the secret key is sent as a bearer token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"id": "user_1"})

        client = make_client(clerk_settings, handler)
        user = await client.get_user("user_1")
        await client.close()

        assert user == {"id": "user_1"}
        assert seen["auth"] == "Bearer sk_test_secret"
        assert seen["path"] == "/v1/users/user_1"

    @pytest.mark.asyncio
    async def test_list_users_repeats_filters(self, clerk_settings):
        """Test list filters are sent as repeated query parameters."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_ids"] = request.url.params.get_list("user_id")
            seen["limit"] = request.url.params.get("limit")
            return httpx.Response(200, json=[{"id": "user_1"}, {"id": "user_2"}])

        client = make_client(clerk_settings, handler)
        users = await client.list_users(user_ids=["user_1", "user_2"], limit=2)
        await client.close()

        assert [user["id"] for user in users] == ["user_1", "user_2"]
        assert seen["user_ids"] == ["user_1", "user_2"]
        assert seen["limit"] == "2"

    @pytest.mark.asyncio
    async def test_list_users_unwraps_paginated_response(self, clerk_settings):
        """Test a wrapped response returns its data list."""
        client = make_client(
            clerk_settings,
            lambda request: httpx.Response(200, json={"data": [{"id": "user_1"}], "total_count": 1}),
        )
        users = await client.list_users(query="anna")
        await client.close()

        assert users == [{"id": "user_1"}]

    @pytest.mark.asyncio
    async def test_create_invitation_payload(self, clerk_settings):
        """Test the invitation body carries redirect and metadata."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "inv_1"})

        client = make_client(clerk_settings, handler)
        invitation = await client.create_invitation(
            email_address="anna@example.com",
            redirect_url="https://telc-a1.thesmartlanguage.com/lessons",
            public_metadata={"role": "student"},
        )
        await client.close()

        assert invitation["id"] == "inv_1"
        assert seen["method"] == "POST"
        assert seen["body"] == {
            "email_address": "anna@example.com",
            "redirect_url": "https://telc-a1.thesmartlanguage.com/lessons",
            "public_metadata": {"role": "student"},
            "notify": True,
        }


class TestErrors:
    """Tests for error translation."""

    @pytest.mark.asyncio
    async def test_clerk_error_code_is_parsed(self, clerk_settings):
        """Test the first Clerk error supplies code and message."""
        body = {
            "errors": [
                {
                    "code": "form_identifier_exists",
                    "message": "That email address is taken.",
                    "long_message": "That email address is taken. Please try another.",
                }
            ]
        }
        client = make_client(clerk_settings, lambda request: httpx.Response(422, json=body))

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.create_invitation("anna@example.com", "https://example.com", {})
        await client.close()

        assert exc_info.value.status_code == 422
        assert exc_info.value.code == "form_identifier_exists"
        assert exc_info.value.message == "That email address is taken. Please try another."

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, clerk_settings):
        """Test plain text errors keep the body as message."""
        client = make_client(clerk_settings, lambda request: httpx.Response(502, text="Bad gateway"))

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.get_invitation("inv_1")
        await client.close()

        assert exc_info.value.status_code == 502
        assert exc_info.value.code is None
        assert exc_info.value.message == "Bad gateway"

    @pytest.mark.asyncio
    async def test_transport_error(self, clerk_settings):
        """Test transport failures raise without a status code."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(clerk_settings, handler)

        with pytest.raises(IdentityProviderError) as exc_info:
            await client.get_user("user_1")
        await client.close()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_unconfigured_client_raises(self):
        """Test calls without a secret key fail before any request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        client = make_client(ClerkSettings(secret_key=None), handler)

        assert client.is_configured is False
        with pytest.raises(IdentityProviderNotConfiguredError):
            await client.get_user("user_1")
        await client.close()

        assert calls == []
