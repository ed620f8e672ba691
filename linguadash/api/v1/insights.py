# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning insight endpoints.

This module provides the cross-skill analysis pages:
- POST /grammar-errors - Grammar error trends and per-student cards
- POST /discourse-analysis - Conversation patterns and engagement
- POST /task-completions - Completion trends, streaks and achievements
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.domains.analytics import DiscourseReport, GrammarErrorReport, TaskCompletionReport
from linguadash.domains.organization import DirectoryService
from linguadash.models.reports import OrganizationScopedRequest, TaskCompletionsRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/grammar-errors", summary="Grammar errors")
async def grammar_errors(
    data: OrganizationScopedRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Grammar error categories, weekly trend and student cards."""
    report = GrammarErrorReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code))


@router.post("/discourse-analysis", summary="Discourse analysis")
async def discourse_analysis(
    data: OrganizationScopedRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Message length, turn taking and engagement over the last 30 days."""
    report = DiscourseReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code))


@router.post("/task-completions", summary="Task completions")
async def task_completions(
    data: TaskCompletionsRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Completion trends plus per-student streaks, calendar and achievements."""
    report = TaskCompletionReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)
