# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pronunciation scores report.

Each word attempt is stored as its own row. Rows sharing an attempt id
form one practice session.
"""

import logging
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, distinct_in_order, numeric
from linguadash.domains.analytics.metrics import mean, score_distribution, to_number
from linguadash.domains.analytics.reading import RECENT_ACTIVITY_SIZE
from linguadash.infrastructure.database.models import PronunciationScore
from linguadash.models.reports import ScoreReportRequest
from linguadash.utils.datetime import ensure_utc, format_iso

logger = logging.getLogger(__name__)

HARDEST_WORDS = 10


def group_sessions(
    rows: list[PronunciationScore],
    users: dict[str, dict[str, Any]],
) -> list[dict[str, Any]]:
    """Group word rows into sessions by attempt id, in first-seen order."""
    sessions: dict[str, dict[str, Any]] = {}
    for row in rows:
        user = users.get(row.user_id) or {}
        session = sessions.setdefault(row.attempt_id, {
            "attempt_id": row.attempt_id,
            "user_id": row.user_id,
            "userName": user.get("name"),
            "organization": user.get("organization"),
            "task_id": row.task_id,
            "course": row.course,
            "completed_at": format_iso(row.completed_at),
            "words": [],
            "averageScore": 0,
            "totalWords": 0,
        })
        session["words"].append({
            "word": row.word,
            "score": to_number(row.pronunciation_score) or 0,
            "id": row.id,
        })

    for session in sessions.values():
        session["totalWords"] = len(session["words"])
        session["averageScore"] = mean(word["score"] for word in session["words"])
    return list(sessions.values())


def word_difficulty(rows: list[PronunciationScore]) -> list[dict[str, Any]]:
    """The hardest words by average score, ascending."""
    words: dict[str, dict[str, Any]] = {}
    for row in rows:
        stat = words.setdefault(row.word, {"word": row.word, "totalScore": 0, "attempts": 0})
        stat["totalScore"] += to_number(row.pronunciation_score) or 0
        stat["attempts"] += 1

    for stat in words.values():
        stat["averageScore"] = stat["totalScore"] / stat["attempts"]
    return sorted(words.values(), key=lambda stat: stat["averageScore"])[:HARDEST_WORDS]


class PronunciationScoreReport(ReportService):
    """Report over word pronunciation attempts."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> dict[str, Any]:
        """Build the pronunciation report.

        Returns:
            Dict with ``scores``, ``sessions``, ``stats`` and ``users``.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        rows = await self._fetch(user_ids, request) if user_ids else []

        result_user_ids = distinct_in_order([row.user_id for row in rows])
        users = await self.user_details(result_user_ids)
        scores = [self.enrich_row(row.to_dict(), users.get(row.user_id)) for row in rows]
        sessions = group_sessions(rows, users)

        values = [to_number(row.pronunciation_score) or 0 for row in rows]
        stats = {
            "totalEntries": len(scores),
            "totalSessions": len(sessions),
            "averageScore": mean(values),
            "uniqueLearners": len(result_user_ids),
            "scoreDistribution": score_distribution(values),
            "uniqueWords": len({row.word for row in rows}),
            "wordDifficulty": word_difficulty(rows),
            "recentActivity": sessions[:RECENT_ACTIVITY_SIZE],
        }

        logger.info(
            "Built pronunciation report: organization=%s, entries=%d, sessions=%d",
            organization_code,
            len(scores),
            len(sessions),
        )
        return {
            "scores": scores,
            "sessions": sessions,
            "stats": stats,
            "users": list(users.values()),
        }

    async def _fetch(
        self,
        user_ids: list[str],
        request: ScoreReportRequest,
    ) -> list[PronunciationScore]:
        filters = request.filters
        query = select(PronunciationScore).where(PronunciationScore.user_id.in_(user_ids))
        if filters.start_date:
            query = query.where(PronunciationScore.completed_at >= ensure_utc(filters.start_date))
        if filters.end_date:
            query = query.where(PronunciationScore.completed_at <= ensure_utc(filters.end_date))
        if filters.min_score is not None:
            query = query.where(numeric(PronunciationScore.pronunciation_score) >= filters.min_score)
        if filters.max_score is not None:
            query = query.where(numeric(PronunciationScore.pronunciation_score) <= filters.max_score)
        if filters.word:
            query = query.where(PronunciationScore.word == filters.word)
        if filters.course or filters.course_id:
            query = query.where(PronunciationScore.course == (filters.course or filters.course_id))
        if filters.task_id:
            query = query.where(PronunciationScore.task_id == filters.task_id)

        result = await self.db.execute(query.order_by(PronunciationScore.completed_at.desc()))
        return list(result.scalars().all())
