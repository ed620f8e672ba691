# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity provider integration (Clerk Backend API)."""

from linguadash.infrastructure.identity.client import (
    ClerkClient,
    IdentityProviderError,
    IdentityProviderNotConfiguredError,
    primary_email,
)

__all__ = [
    "ClerkClient",
    "IdentityProviderError",
    "IdentityProviderNotConfiguredError",
    "primary_email",
]
