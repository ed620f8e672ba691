# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-skill score report endpoints.

This module provides the teacher dashboard's score pages:
- POST /speaking-scores - Speaking task cards per student
- POST /reading-scores - Reading results with stats
- POST /listening-scores - Listening results with stats
- POST /writing-scores - Writing scores with stats
- POST /pronunciation-scores - Pronunciation sessions with stats

Every report is scoped to an organization and accepts optional filters.

Example:
    POST /api/v1/teacher-dashboard/reading-scores
    {"organizationCode": "ANB", "filters": {"minScore": 50}}
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db, get_directory, resolve_organization_code
from linguadash.domains.analytics import (
    ListeningScoreReport,
    PronunciationScoreReport,
    ReadingScoreReport,
    SpeakingScoreReport,
    WritingScoreReport,
)
from linguadash.domains.organization import DirectoryService
from linguadash.models.reports import ScoreReportRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/speaking-scores", summary="Speaking scores")
async def speaking_scores(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> list[dict[str, Any]]:
    """Per-student speaking cards with transcripts and evaluations."""
    report = SpeakingScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)


@router.post("/reading-scores", summary="Reading scores")
async def reading_scores(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Reading results with topic and exercise type statistics."""
    report = ReadingScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)


@router.post("/listening-scores", summary="Listening scores")
async def listening_scores(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Listening results with question type and audio engagement statistics."""
    report = ListeningScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)


@router.post("/writing-scores", summary="Writing scores")
async def writing_scores(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Writing scores with task type statistics."""
    report = WritingScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)


@router.post("/pronunciation-scores", summary="Pronunciation scores")
async def pronunciation_scores(
    data: ScoreReportRequest,
    db: AsyncSession = Depends(get_db),
    directory: DirectoryService = Depends(get_directory),
) -> dict[str, Any]:
    """Pronunciation sessions with word difficulty statistics."""
    report = PronunciationScoreReport(db, directory)
    return await report.build(resolve_organization_code(data.organization_code), data)
