# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get the Clerk client and identity directory
- Get authenticated callers
- Resolve the organization a request is scoped to

Example:
    @router.post("/speaking-scores")
    async def speaking_scores(
        db: AsyncSession = Depends(get_db),
        directory: DirectoryService = Depends(get_directory),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.middleware.auth import CurrentUser, get_current_user
from linguadash.core.config import get_settings
from linguadash.domains.organization import DirectoryService
from linguadash.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)
from linguadash.infrastructure.identity import ClerkClient

logger = logging.getLogger(__name__)

# Clerk client singleton
_clerk_client: ClerkClient | None = None


async def init_db() -> None:
    """Initialize the database pool and the Clerk client."""
    global _clerk_client
    settings = get_settings()

    _clerk_client = ClerkClient(settings.clerk)
    await init_database(settings)

    if not _clerk_client.is_configured:
        logger.warning("Clerk secret key not configured, identity lookups use placeholders")


async def close_db() -> None:
    """Close the database pool and the Clerk client."""
    global _clerk_client

    await close_database()

    if _clerk_client:
        await _clerk_client.close()
        _clerk_client = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for one request.

    Yields:
        AsyncSession committed when the request succeeds.
    """
    async with get_session() as session:
        yield session


def get_clerk_client() -> ClerkClient:
    """Get the Clerk Backend API client.

    Raises:
        HTTPException: If the client has not been initialized.
    """
    if _clerk_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider client not initialized",
        )
    return _clerk_client


def get_directory(clerk: ClerkClient = Depends(get_clerk_client)) -> DirectoryService:
    """Get the identity directory."""
    return DirectoryService(clerk, batch_size=get_settings().clerk.lookup_batch_size)


def resolve_organization_code(organization_code: str | None) -> str:
    """Fall back to the default organization when a request names none."""
    return organization_code or get_settings().dashboard.default_organization_code


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require an authenticated caller.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
