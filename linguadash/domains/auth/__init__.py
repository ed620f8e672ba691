# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain: Clerk session token verification."""

from linguadash.domains.auth.session import (
    InvalidTokenError,
    SessionClaims,
    SessionTokenError,
    SessionVerifier,
    TokenExpiredError,
)

__all__ = [
    "InvalidTokenError",
    "SessionClaims",
    "SessionTokenError",
    "SessionVerifier",
    "TokenExpiredError",
]
