# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request models for user and email lookups."""

from linguadash.models.common import CamelModel
from linguadash.models.reports import OrganizationScopedRequest


class UsersWithEmailsRequest(OrganizationScopedRequest):
    """Request listing organization members with emails."""

    include_emails: bool = True


class EmailLookupRequest(CamelModel):
    """Identity lookup request.

    The action selects which of the other fields is required:
    getEmailById, getUserWithEmail, getBatchEmails, getUsersByEmails
    or searchUsers.
    """

    action: str | None = None
    user_id: str | None = None
    user_ids: list[str] | None = None
    email_addresses: list[str] | None = None
    query: str | None = None
