# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Listening dashboard endpoints.

- POST /listening-dashboard - Grouped or per-student listening analysis
- GET /listening-dashboard - Available lessons and date range

Example:
    POST /api/v1/listening-dashboard
    {"groupBy": "lesson", "dateFrom": "2025-01-01T00:00:00Z"}
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.domains.analytics import ListeningDashboardReport, StudentNotInOrganizationError
from linguadash.domains.organization import DirectoryService
from linguadash.models.reports import ListeningDashboardRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", summary="Listening dashboard")
async def listening_dashboard(
    data: ListeningDashboardRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Build the listening dashboard.

    Raises:
        HTTPException: If the requested student is not a member.
    """
    report = ListeningDashboardReport(db, directory)
    try:
        return await report.build(resolve_organization_code(data.organization_code), data)
    except StudentNotInOrganizationError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student not found or access denied",
        )


@router.get("", summary="Listening dashboard metadata")
async def listening_dashboard_metadata(
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """List lessons with listening attempts and their date range."""
    report = ListeningDashboardReport(db, directory)
    return await report.metadata()
