# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User and email lookup endpoints.

This module provides identity lookups backed by Clerk:
- POST /teacher-dashboard/users-with-emails - Organization members with emails
- GET /teacher-dashboard/users-with-emails - Quick member list
- POST /users/email-lookup - Lookup actions by id, email or search query
- GET /users/email-lookup - One user with email
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.domains.organization import DirectoryService, MemberDirectory, OrganizationService
from linguadash.models.users import EmailLookupRequest, UsersWithEmailsRequest

logger = logging.getLogger(__name__)

members_router = APIRouter()
lookup_router = APIRouter()


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@members_router.post("/users-with-emails", summary="Organization members with emails")
async def users_with_emails(
    data: UsersWithEmailsRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """List organization members with identity data and email stats."""
    members = MemberDirectory(OrganizationService(db), directory)
    return await members.members_with_emails(
        resolve_organization_code(data.organization_code),
        include_emails=data.include_emails,
    )


@members_router.get("/users-with-emails", summary="Quick member list")
async def quick_member_list(
    organization_code: Annotated[str | None, Query(alias="organizationCode")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """List up to ``limit`` members with their profiles."""
    members = MemberDirectory(OrganizationService(db), directory)
    return await members.quick_list(resolve_organization_code(organization_code), limit=limit)


@lookup_router.post("/email-lookup", summary="Email lookup")
async def email_lookup(
    data: EmailLookupRequest,
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Run one identity lookup action.

    Raises:
        HTTPException: If the action is unknown or its input is missing.
    """
    if data.action == "getEmailById":
        if not data.user_id:
            raise _bad_request("userId is required")
        return {"userId": data.user_id, "email": await directory.get_email(data.user_id)}

    if data.action == "getUserWithEmail":
        if not data.user_id:
            raise _bad_request("userId is required")
        profile = await directory.find_profile(data.user_id)
        return {"user": profile.to_dict() if profile else None}

    if data.action == "getBatchEmails":
        if data.user_ids is None:
            raise _bad_request("userIds array is required")
        profiles = await directory.get_profiles(data.user_ids)
        return {"users": [profile.to_dict() for profile in profiles]}

    if data.action == "getUsersByEmails":
        if data.email_addresses is None:
            raise _bad_request("emailAddresses array is required")
        profiles = await directory.find_by_emails(data.email_addresses)
        return {"users": [profile.to_dict() for profile in profiles]}

    if data.action == "searchUsers":
        if not data.query:
            raise _bad_request("query is required")
        profiles = await directory.search(data.query)
        return {"users": [profile.to_dict() for profile in profiles]}

    raise _bad_request("Invalid action")


@lookup_router.get("/email-lookup", summary="User with email")
async def get_user_with_email(
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Get one user with their primary email."""
    if not user_id:
        raise _bad_request("userId query parameter is required")
    profile = await directory.find_profile(user_id)
    return {"user": profile.to_dict() if profile else None}
