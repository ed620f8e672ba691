# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Writing scores report."""

import logging
from collections import Counter
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, distinct_in_order
from linguadash.domains.analytics.metrics import mean, score_distribution, to_number
from linguadash.domains.analytics.reading import RECENT_ACTIVITY_SIZE
from linguadash.infrastructure.database.models import LessonWritingScore
from linguadash.models.reports import ScoreReportRequest
from linguadash.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)


class WritingScoreReport(ReportService):
    """Report over graded writing tasks."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> dict[str, Any]:
        """Build the writing scores report.

        Returns:
            Dict with ``scores``, ``stats`` and ``users``.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        rows = await self._fetch(user_ids, request) if user_ids else []

        result_user_ids = distinct_in_order([row.user_id for row in rows])
        users = await self.user_details(result_user_ids)
        scores = [self.enrich_row(row.to_dict(), users.get(row.user_id)) for row in rows]

        values = [to_number(row.score) or 0 for row in rows]
        task_types = Counter(row.task_type or "unknown" for row in rows)
        stats = {
            "totalEntries": len(scores),
            "averageScore": mean(values),
            "uniqueLearners": len(result_user_ids),
            "scoreDistribution": score_distribution(values),
            "taskTypes": dict(task_types),
            "recentActivity": scores[:RECENT_ACTIVITY_SIZE],
        }

        logger.info(
            "Built writing report: organization=%s, entries=%d",
            organization_code,
            len(scores),
        )
        return {"scores": scores, "stats": stats, "users": list(users.values())}

    async def _fetch(
        self,
        user_ids: list[str],
        request: ScoreReportRequest,
    ) -> list[LessonWritingScore]:
        filters = request.filters
        query = select(LessonWritingScore).where(LessonWritingScore.user_id.in_(user_ids))
        if filters.start_date:
            query = query.where(LessonWritingScore.created_at >= ensure_utc(filters.start_date))
        if filters.end_date:
            query = query.where(LessonWritingScore.created_at <= ensure_utc(filters.end_date))
        if filters.min_score is not None:
            query = query.where(LessonWritingScore.score >= filters.min_score)
        if filters.max_score is not None:
            query = query.where(LessonWritingScore.score <= filters.max_score)
        if filters.task_type:
            query = query.where(LessonWritingScore.task_type == filters.task_type)
        if filters.lesson_id:
            query = query.where(LessonWritingScore.lesson_id == filters.lesson_id)

        result = await self.db.execute(query.order_by(LessonWritingScore.created_at.desc()))
        return list(result.scalars().all())
