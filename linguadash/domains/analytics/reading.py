# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reading results report."""

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
from linguadash.infrastructure.database.models import ReadingResult
from linguadash.models.reports import ScoreReportRequest
from linguadash.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_SIZE = 10
LONG_ANSWER_LENGTH = 50


def classify_exercise(exercise: dict[str, Any]) -> str:
    """Classify a reading exercise from the shape of its answers."""
    user_answer = exercise.get("userAnswer")
    correct_answer = exercise.get("correctAnswer")
    if not user_answer or not correct_answer:
        return "Reading Exercise"

    user_answer, correct_answer = str(user_answer), str(correct_answer)
    if len(user_answer) > LONG_ANSWER_LENGTH:
        return "Text Comprehension"
    if "," in user_answer or "," in correct_answer:
        return "Multiple Choice"
    return "Short Answer"


def question_type_stats(
    rows: list[dict[str, Any]],
    key: str,
    classify: Any,
) -> list[dict[str, Any]]:
    """Accuracy per question type, in first-seen type order.

    Args:
        rows: Enriched result rows.
        key: Row key holding the parsed question list.
        classify: Function mapping a question to its type.
    """
    stats: dict[str, dict[str, Any]] = {}
    for row in rows:
        questions = row.get(key)
        if not isinstance(questions, list):
            continue
        for question in questions:
            if not isinstance(question, dict):
                continue
            kind = classify(question)
            stat = stats.setdefault(kind, {
                "type": kind,
                "totalQuestions": 0,
                "correctAnswers": 0,
                "accuracy": 0,
            })
            stat["totalQuestions"] += 1
            if question.get("isCorrect"):
                stat["correctAnswers"] += 1
            stat["accuracy"] = stat["correctAnswers"] / stat["totalQuestions"] * 100
    return list(stats.values())


class ReadingScoreReport(ReportService):
    """Report over reading exercise results."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> dict[str, Any]:
        """Build the reading results report.

        Returns:
            Dict with ``results``, ``stats`` and ``users``.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        rows = await self._fetch(user_ids, request) if user_ids else []

        result_user_ids = distinct_in_order([row.user_id for row in rows])
        users = await self.user_details(result_user_ids)

        results = []
        for row in rows:
            exercises = parse_json_payload(row.exercise_results)
            results.append({
                **self.enrich_row(row.to_dict(), users.get(row.user_id)),
                "exerciseResults": exercises if isinstance(exercises, list) else [],
                "scorePercentage": to_number(row.percentage) or 0,
            })

        scores = [result["scorePercentage"] for result in results]
        stats = {
            "totalEntries": len(results),
            "averageScore": mean(scores),
            "uniqueLearners": len(result_user_ids),
            "scoreDistribution": score_distribution(scores),
            "readingTopics": distinct_in_order([result["title"] for result in results]),
            "exerciseTypes": question_type_stats(results, "exerciseResults", classify_exercise),
            "recentActivity": results[:RECENT_ACTIVITY_SIZE],
        }

        logger.info(
            "Built reading report: organization=%s, entries=%d",
            organization_code,
            len(results),
        )
        return {"results": results, "stats": stats, "users": list(users.values())}

    async def _fetch(self, user_ids: list[str], request: ScoreReportRequest) -> list[ReadingResult]:
        filters = request.filters
        query = select(ReadingResult).where(ReadingResult.user_id.in_(user_ids))
        if filters.start_date:
            query = query.where(ReadingResult.created_at >= ensure_utc(filters.start_date))
        if filters.end_date:
            query = query.where(ReadingResult.created_at <= ensure_utc(filters.end_date))
        if filters.min_score is not None:
            query = query.where(numeric(ReadingResult.percentage) >= filters.min_score)
        if filters.max_score is not None:
            query = query.where(numeric(ReadingResult.percentage) <= filters.max_score)
        if filters.section_id:
            query = query.where(ReadingResult.section_id == filters.section_id)
        if filters.lesson_id:
            query = query.where(ReadingResult.lesson_id == filters.lesson_id)
        if filters.title:
            query = query.where(ReadingResult.title.ilike(f"%{filters.title}%"))

        result = await self.db.execute(query.order_by(ReadingResult.created_at.desc()))
        return list(result.scalars().all())
