# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Clerk session token verification.

Tokens are signed with a throwaway RSA key; the verifier holds its
public half the way CLERK_JWT_KEY does in production.
"""

import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from linguadash.core.config.settings import ClerkSettings
from linguadash.domains.auth.session import (
    InvalidTokenError,
    SessionVerifier,
    TokenExpiredError,
)


@pytest.fixture(scope="module")
def rsa_key_pair() -> tuple[str, str]:
    """Generate a PEM encoded (private, public) key pair."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def verifier(rsa_key_pair) -> SessionVerifier:
    """Create verifier trusting the test public key."""
    return SessionVerifier(ClerkSettings(jwt_key=rsa_key_pair[1]))


def session_token(private_pem: str, **overrides) -> str:
    now = int(time.time())
    claims = {
        "sub": "user_2teacherXYZ",
        "sid": "sess_1",
        "iss": "https://clerk.example.com",
        "iat": now,
        "exp": now + 60,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256")


class TestSessionVerifier:
    """Tests for SessionVerifier."""

    def test_decodes_valid_token(self, verifier, rsa_key_pair):
        """Test a valid token yields the caller's claims."""
        claims = verifier.decode_token(session_token(rsa_key_pair[0]))

        assert claims.sub == "user_2teacherXYZ"
        assert claims.sid == "sess_1"

    def test_expired_token(self, verifier, rsa_key_pair):
        """Test expired tokens raise TokenExpiredError."""
        token = session_token(rsa_key_pair[0], exp=int(time.time()) - 10)

        with pytest.raises(TokenExpiredError):
            verifier.decode_token(token)

    def test_token_signed_with_other_key(self, verifier):
        """Test tokens from another key are rejected."""
        other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        other_pem = other.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()

        with pytest.raises(InvalidTokenError):
            verifier.decode_token(session_token(other_pem))

    def test_garbage_token(self, verifier):
        """Test malformed tokens are rejected."""
        with pytest.raises(InvalidTokenError):
            verifier.decode_token("not-a-jwt")

    def test_unconfigured_verifier(self, rsa_key_pair):
        """Test verification requires a public key."""
        verifier = SessionVerifier(ClerkSettings(jwt_key=None))

        assert verifier.is_configured is False
        with pytest.raises(InvalidTokenError):
            verifier.decode_token(session_token(rsa_key_pair[0]))
