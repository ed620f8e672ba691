# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Listening results report with audio engagement analysis."""

import logging
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, distinct_in_order, numeric
from linguadash.domains.analytics.metrics import (
    mean,
    parse_json_payload,
    score_distribution,
    to_number,
)
from linguadash.domains.analytics.reading import RECENT_ACTIVITY_SIZE, question_type_stats
from linguadash.infrastructure.database.models import ListeningResult
from linguadash.models.reports import ScoreReportRequest
from linguadash.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)


def classify_question(question: dict[str, Any]) -> str:
    """Classify a listening question from the selected answer."""
    selected = question.get("selectedAnswer")
    if not selected:
        return "No Answer"

    answer = str(selected).lower()
    if answer in ("true", "false"):
        return "True/False"
    if len(answer) <= 20 and "," not in answer and len(answer.split(" ")) <= 3:
        return "Fill in the Blank"
    return "Multiple Choice"


def audio_engagement(results: list[dict[str, Any]]) -> dict[str, Any]:
    """Summarize replay, transcript and timing behaviour.

    A missing play count counts as a single play.
    """
    with_transcript = [r["scorePercentage"] for r in results if r.get("transcript_viewed")]
    without_transcript = [r["scorePercentage"] for r in results if not r.get("transcript_viewed")]
    play_counts = [r.get("audio_play_count") or 1 for r in results]
    times = [r["time_taken_seconds"] for r in results if r.get("time_taken_seconds")]

    distribution = {"1": 0, "2": 0, "3": 0, "4+": 0}
    for count in play_counts:
        distribution[str(count) if count <= 3 else "4+"] += 1

    return {
        "averagePlayCount": mean(play_counts),
        "transcriptViewRate": len(with_transcript) / len(results) * 100 if results else 0,
        "averageTimeSpent": mean(times),
        "playCountDistribution": distribution,
        "transcriptImpactOnScore": {
            "withTranscript": {
                "count": len(with_transcript),
                "averageScore": mean(with_transcript),
            },
            "withoutTranscript": {
                "count": len(without_transcript),
                "averageScore": mean(without_transcript),
            },
        },
    }


class ListeningScoreReport(ReportService):
    """Report over listening exercise results."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> dict[str, Any]:
        """Build the listening results report.

        Returns:
            Dict with ``results``, ``stats`` and ``users``.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        rows = await self._fetch(user_ids, request) if user_ids else []

        result_user_ids = distinct_in_order([row.user_id for row in rows])
        users = await self.user_details(result_user_ids)

        results = []
        for row in rows:
            questions = parse_json_payload(row.question_results)
            results.append({
                **self.enrich_row(row.to_dict(), users.get(row.user_id)),
                "questionResults": questions if isinstance(questions, list) else [],
                "scorePercentage": to_number(row.percentage) or 0,
            })

        scores = [result["scorePercentage"] for result in results]
        stats = {
            "totalEntries": len(results),
            "averageScore": mean(scores),
            "uniqueLearners": len(result_user_ids),
            "scoreDistribution": score_distribution(scores),
            "audioTopics": distinct_in_order([result["audio_title"] for result in results]),
            "questionTypes": question_type_stats(results, "questionResults", classify_question),
            "audioEngagement": audio_engagement(results),
            "recentActivity": results[:RECENT_ACTIVITY_SIZE],
        }

        logger.info(
            "Built listening report: organization=%s, entries=%d",
            organization_code,
            len(results),
        )
        return {"results": results, "stats": stats, "users": list(users.values())}

    async def _fetch(self, user_ids: list[str], request: ScoreReportRequest) -> list[ListeningResult]:
        filters = request.filters
        query = select(ListeningResult).where(ListeningResult.user_id.in_(user_ids))
        if filters.start_date:
            query = query.where(ListeningResult.created_at >= ensure_utc(filters.start_date))
        if filters.end_date:
            query = query.where(ListeningResult.created_at <= ensure_utc(filters.end_date))
        if filters.min_score is not None:
            query = query.where(numeric(ListeningResult.percentage) >= filters.min_score)
        if filters.max_score is not None:
            query = query.where(numeric(ListeningResult.percentage) <= filters.max_score)
        if filters.task_id:
            query = query.where(ListeningResult.task_id == filters.task_id)
        if filters.exercise_id:
            query = query.where(ListeningResult.exercise_id == filters.exercise_id)
        if filters.audio_title:
            query = query.where(ListeningResult.audio_title.ilike(f"%{filters.audio_title}%"))

        result = await self.db.execute(query.order_by(ListeningResult.created_at.desc()))
        return list(result.scalars().all())
