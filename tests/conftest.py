# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
- End-to-end tests
"""

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from linguadash.core.config.settings import ClerkSettings, DashboardSettings
from linguadash.domains.organization import StudentProfile


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "DB_DATABASE": "linguadash_test",
        "CLERK_SECRET_KEY": "sk_test_secret",
        "CLERK_WEBHOOK_SECRET": "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw",
        "DASHBOARD_DEFAULT_ORGANIZATION_CODE": "ANB",
    }


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "e2e: mark test as an end-to-end test (requires full stack)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def mock_directory() -> MagicMock:
    """Create mock identity directory returning named profiles."""

    def profile(user_id: str) -> StudentProfile:
        return StudentProfile(
            user_id=user_id,
            email=f"{user_id}@example.com",
            first_name="Anna",
            last_name=user_id,
            full_name=f"Anna {user_id}",
        )

    async def get_profiles(user_ids: list[str]) -> list[StudentProfile]:
        return [profile(user_id) for user_id in user_ids]

    async def get_profile_map(user_ids: list[str]) -> dict[str, StudentProfile]:
        return {user_id: profile(user_id) for user_id in user_ids}

    async def find_profile(user_id: str) -> StudentProfile:
        return profile(user_id)

    directory = MagicMock()
    directory.is_configured = True
    directory.get_profiles = AsyncMock(side_effect=get_profiles)
    directory.get_profile_map = AsyncMock(side_effect=get_profile_map)
    directory.find_profile = AsyncMock(side_effect=find_profile)
    return directory


@pytest.fixture
def clerk_settings() -> ClerkSettings:
    """Clerk settings with a secret key and webhook secret."""
    return ClerkSettings(
        secret_key="sk_test_secret",
        webhook_secret="whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw",
    )


@pytest.fixture
def dashboard_settings() -> DashboardSettings:
    """Default dashboard settings."""
    return DashboardSettings()


@pytest.fixture
def sample_organization_code() -> str:
    """Provide a sample organization code for testing."""
    return "ANB"


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample Clerk student ID for testing."""
    return "user_2abcDEFghiJKL"


@pytest.fixture
def sample_teacher_id() -> str:
    """Provide a sample Clerk teacher ID for testing."""
    return "user_2teacherXYZ"


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference time for date-dependent helpers."""
    return datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_clerk_user() -> dict[str, Any]:
    """Provide a Clerk user object as returned by the Backend API."""
    return {
        "id": "user_2abcDEFghiJKL",
        "first_name": "Anna",
        "last_name": "Schmidt",
        "primary_email_address_id": "idn_2",
        "email_addresses": [
            {"id": "idn_1", "email_address": "old@example.com"},
            {"id": "idn_2", "email_address": "anna@example.com"},
        ],
        "public_metadata": {},
    }
