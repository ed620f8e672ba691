# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Chatbot score endpoints.

- POST /chatbot-scores - Per-student chatbot cards for an organization
- GET /chatbot-scores - Raw chatbot score rows with optional filters
"""

import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.domains.analytics import ChatbotScoreReport
from linguadash.domains.organization import DirectoryService
from linguadash.models.reports import ChatbotScoresQuery, ScoreReportRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", summary="Chatbot score cards")
async def chatbot_score_cards(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> list[dict[str, Any]]:
    """Per-student chatbot cards with the longest logged conversation."""
    report = ChatbotScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)


@router.get("", summary="List chatbot scores")
async def list_chatbot_scores(
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    lesson_id: Annotated[str | None, Query(alias="lessonId")] = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
    min_score: Annotated[float | None, Query(alias="minScore")] = None,
    max_score: Annotated[float | None, Query(alias="maxScore")] = None,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> list[dict[str, Any]]:
    """List chatbot score rows, newest first."""
    report = ChatbotScoreReport(db, directory)
    return await report.list_scores(
        ChatbotScoresQuery(
            user_id=user_id,
            lesson_id=lesson_id,
            start_date=start_date,
            end_date=end_date,
            min_score=min_score,
            max_score=max_score,
        )
    )
