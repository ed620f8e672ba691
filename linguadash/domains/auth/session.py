# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clerk session token verification.

Clerk issues short-lived RS256 session JWTs to signed-in users. They are
verified networklessly against the instance's PEM public key
(``CLERK_JWT_KEY``) using python-jose.

Example:
    >>> verifier = SessionVerifier(get_settings().clerk)
    >>> claims = verifier.decode_token(token)
    >>> claims.sub
    'user_2abc'
"""

import logging

from jose import ExpiredSignatureError, jwt
from pydantic import BaseModel

from linguadash.core.config.settings import ClerkSettings

logger = logging.getLogger(__name__)

SESSION_TOKEN_ALGORITHM = "RS256"


class SessionClaims(BaseModel):
    """Claims of a Clerk session token.

    Attributes:
        sub: Clerk user id of the caller.
        sid: Session id.
        azp: Authorized party (origin of the frontend).
        iss: Issuer (the Clerk frontend API URL).
        exp: Expiration timestamp.
        iat: Issued at timestamp.
    """

    sub: str
    sid: str | None = None
    azp: str | None = None
    iss: str | None = None
    exp: int
    iat: int | None = None


class SessionTokenError(Exception):
    """Base exception for session token verification."""

    pass


class TokenExpiredError(SessionTokenError):
    """Raised when a session token has expired."""

    pass


class InvalidTokenError(SessionTokenError):
    """Raised when a session token is malformed or badly signed."""

    pass


class SessionVerifier:
    """Verifier for Clerk session tokens.

    Attributes:
        _settings: Clerk configuration holding the PEM public key.
    """

    def __init__(self, settings: ClerkSettings) -> None:
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        """Check whether a verification key is available."""
        return bool(self._settings.jwt_key)

    def decode_token(self, token: str) -> SessionClaims:
        """Decode and validate a session token.

        Args:
            token: Encoded JWT from the Authorization header.

        Returns:
            SessionClaims with the verified claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If no key is configured or the token is invalid.
        """
        if not self.is_configured:
            raise InvalidTokenError("Session verification key is not configured")

        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_key,
                algorithms=[SESSION_TOKEN_ALGORITHM],
                options={"verify_aud": False},
            )
            return SessionClaims(**payload)

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except Exception as e:
            logger.warning("Session token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")
