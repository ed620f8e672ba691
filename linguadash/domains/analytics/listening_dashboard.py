# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Listening dashboard over lesson-level listening scores.

The dashboard either drills into one student or groups the whole
organization's attempts by student, lesson, day or score range.
"""

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import func, select

from linguadash.domains.analytics.base import (
    ReportService,
    StudentNotInOrganizationError,
    distinct_in_order,
    identity_fields,
)
from linguadash.domains.analytics.metrics import (
    classify_trend,
    mean,
    round_half_up,
    rounded_mean,
    variance,
)
from linguadash.infrastructure.database.models import LessonListeningScore
from linguadash.models.reports import ListeningDashboardRequest
from linguadash.utils.datetime import day_key, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

# (label, lower bound, upper bound), best first
SCORE_RANGES = (
    ("Excellent (81-100%)", 81, 100),
    ("Good (61-80%)", 61, 80),
    ("Average (41-60%)", 41, 60),
    ("Below Average (21-40%)", 21, 40),
    ("Poor (0-20%)", 0, 20),
)

TREND_ORDER = {"improving": 3, "stable": 2, "declining": 1}

WEAK_LESSON_SCORE = 60
STRONG_LESSON_SCORE = 80
INCONSISTENCY_VARIANCE = 400
REPLAY_DEPENDENCY = 3
QUICK_SECONDS_PER_QUESTION = 30
HIGH_ACCURACY_RATE = 0.7


def score_of(row: LessonListeningScore) -> float:
    return row.score_percentage or 0


def score_range_label(score: float) -> str:
    """Label of the range a score falls in; fractions round into the lower range."""
    for label, _, upper in reversed(SCORE_RANGES):
        if score <= upper:
            return label
    return SCORE_RANGES[0][0]


def score_ranges(rows: list[LessonListeningScore]) -> list[dict[str, Any]]:
    """Attempt counts per 20-point range, lowest first."""
    counts = {label: 0 for label, _, _ in SCORE_RANGES}
    for row in rows:
        counts[score_range_label(score_of(row))] += 1
    return [
        {"range": f"{lower}-{upper}%", "count": counts[label]}
        for label, lower, upper in reversed(SCORE_RANGES)
    ]


def listening_trend(rows: list[LessonListeningScore]) -> str:
    return classify_trend((ensure_utc(row.created_at), score_of(row)) for row in rows)


def lesson_performance(rows: list[LessonListeningScore]) -> list[dict[str, Any]]:
    """Average score per lesson, best first."""
    lessons: dict[str | None, list[float]] = defaultdict(list)
    for row in rows:
        lessons[row.lesson_id].append(score_of(row))
    performance = [
        {"lesson": lesson, "avgScore": rounded_mean(scores), "attempts": len(scores)}
        for lesson, scores in lessons.items()
    ]
    performance.sort(key=lambda entry: entry["avgScore"], reverse=True)
    return performance


def weak_areas(rows: list[LessonListeningScore], performance: list[dict[str, Any]]) -> list[str]:
    areas = [
        f"Lesson {entry['lesson']}"
        for entry in performance
        if entry["avgScore"] < WEAK_LESSON_SCORE
    ][:3]
    if variance([score_of(row) for row in rows]) > INCONSISTENCY_VARIANCE:
        areas.append("Inconsistent performance")
    if rows and mean(row.audio_replays or 0 for row in rows) > REPLAY_DEPENDENCY:
        areas.append("High audio replay dependency")
    return areas


def strong_areas(rows: list[LessonListeningScore], performance: list[dict[str, Any]]) -> list[str]:
    areas = [
        f"Lesson {entry['lesson']}"
        for entry in performance
        if entry["avgScore"] >= STRONG_LESSON_SCORE
    ][:3]
    if not rows:
        return areas

    average_questions = mean(row.total_questions or 0 for row in rows)
    if average_questions:
        average_time = mean(row.time_spent_seconds or 0 for row in rows)
        if average_time / average_questions < QUICK_SECONDS_PER_QUESTION:
            areas.append("Quick comprehension")
    high_rate = sum(1 for row in rows if score_of(row) >= STRONG_LESSON_SCORE) / len(rows)
    if high_rate > HIGH_ACCURACY_RATE:
        areas.append("Consistent high accuracy")
    return areas


def efficiency_score(rows: list[LessonListeningScore]) -> int:
    """Accuracy per second spent on a question, averaged over attempts."""
    if not rows:
        return 0
    total = 0.0
    for row in rows:
        if not row.total_questions:
            continue
        seconds_per_question = (row.time_spent_seconds or 0) / row.total_questions
        total += (score_of(row) / 100) * 100 / max(seconds_per_question, 1)
    return round_half_up(total / len(rows))


def _group(
    rows: list[LessonListeningScore],
    key: Any,
) -> dict[Any, list[LessonListeningScore]]:
    groups: dict[Any, list[LessonListeningScore]] = {}
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


class ListeningDashboardReport(ReportService):
    """Listening dashboard queries."""

    async def build(
        self,
        organization_code: str,
        request: ListeningDashboardRequest,
    ) -> dict[str, Any]:
        """Build the dashboard for the requested grouping or student.

        Args:
            organization_code: Organization the dashboard is scoped to.
            request: Filters, grouping, sorting and limit.

        Returns:
            A ``student_detail`` payload when a student is named,
            otherwise the grouped payload.

        Raises:
            StudentNotInOrganizationError: If the named student is not a
                member of the organization.
        """
        member_ids = await self.organizations.get_member_ids(organization_code)
        if request.student_id:
            if request.student_id not in member_ids:
                raise StudentNotInOrganizationError(
                    f"Student {request.student_id} is not a member of {organization_code}"
                )
            rows = await self._fetch([request.student_id], request)
            return {"type": "student_detail", "data": await self._student_detail(request.student_id, rows)}

        rows = await self._fetch(member_ids, request) if member_ids else []
        logger.info(
            "Built listening dashboard: organization=%s, group_by=%s, attempts=%d",
            organization_code,
            request.group_by,
            len(rows),
        )
        if not rows:
            return {"type": "empty", "data": []}
        if request.group_by == "lesson":
            return self._by_lesson(rows)
        if request.group_by == "date":
            return self._by_date(rows)
        if request.group_by == "score_range":
            return self._by_score_range(rows)
        return await self._by_student(rows, request)

    async def metadata(self) -> dict[str, Any]:
        """Distinct lessons and the date range of recorded attempts."""
        result = await self.db.execute(
            select(LessonListeningScore.lesson_id)
            .distinct()
            .order_by(LessonListeningScore.lesson_id)
        )
        lessons = [lesson for lesson in result.scalars().all() if lesson is not None]

        result = await self.db.execute(
            select(
                func.min(LessonListeningScore.created_at),
                func.max(LessonListeningScore.created_at),
            )
        )
        earliest, latest = result.one()
        now = utc_now()
        return {
            "lessons": lessons,
            "dateRange": {
                "earliest": format_iso(earliest or now),
                "latest": format_iso(latest or now),
            },
        }

    async def _fetch(
        self,
        user_ids: list[str],
        request: ListeningDashboardRequest,
    ) -> list[LessonListeningScore]:
        lesson_ids = list(request.lesson_ids or [])
        if request.lesson_id:
            lesson_ids.append(request.lesson_id)

        query = select(LessonListeningScore).where(LessonListeningScore.user_id.in_(user_ids))
        if request.date_from:
            query = query.where(LessonListeningScore.created_at >= ensure_utc(request.date_from))
        if request.date_to:
            query = query.where(LessonListeningScore.created_at <= ensure_utc(request.date_to))
        if request.min_score is not None:
            query = query.where(LessonListeningScore.score_percentage >= request.min_score)
        if request.max_score is not None:
            query = query.where(LessonListeningScore.score_percentage <= request.max_score)
        if lesson_ids:
            query = query.where(LessonListeningScore.lesson_id.in_(lesson_ids))

        result = await self.db.execute(query.order_by(LessonListeningScore.created_at.desc()))
        return list(result.scalars().all())

    async def _student_detail(
        self,
        student_id: str,
        rows: list[LessonListeningScore],
    ) -> dict[str, Any]:
        profile = await self.directory.find_profile(student_id)
        performance = lesson_performance(rows)
        times = [row.time_spent_seconds or 0 for row in rows]
        return {
            "user_id": student_id,
            "name": identity_fields(student_id, profile)["name"],
            "scores": [row.to_dict() for row in rows],
            "averageScore": rounded_mean(score_of(row) for row in rows),
            "totalAttempts": len(rows),
            "recentScore": rows[0].score_percentage if rows else None,
            "trend": listening_trend(rows),
            "scoreDistribution": score_ranges(rows),
            "lessonPerformance": performance,
            "timeAnalysis": {
                "avgTimeSpent": rounded_mean(times),
                "totalTimeSpent": sum(times),
                "efficiencyScore": efficiency_score(rows),
            },
            "weakAreas": weak_areas(rows, performance),
            "strongAreas": strong_areas(rows, performance),
        }

    async def _by_student(
        self,
        rows: list[LessonListeningScore],
        request: ListeningDashboardRequest,
    ) -> dict[str, Any]:
        groups = _group(rows, lambda row: row.user_id)
        profiles = await self.directory.get_profile_map(list(groups))

        students = []
        for user_id, scores in groups.items():
            performance = lesson_performance(scores)
            students.append({
                "user_id": user_id,
                "name": identity_fields(user_id, profiles.get(user_id))["name"],
                "averageScore": rounded_mean(score_of(row) for row in scores),
                "totalAttempts": len(scores),
                "recentScore": scores[0].score_percentage,
                "trend": listening_trend(scores),
                "lastAttempt": format_iso(scores[0].created_at),
                "scoreDistribution": score_ranges(scores),
                "lessonPerformance": performance[:3],
                "weakAreas": weak_areas(scores, performance)[:2],
                "scores": [row.to_dict() for row in scores[:10]],
            })

        sort_keys = {
            "score": lambda student: student["averageScore"],
            "attempts": lambda student: student["totalAttempts"],
            "date": lambda student: student["lastAttempt"] or "",
            "improvement": lambda student: TREND_ORDER[student["trend"]],
        }
        students.sort(key=sort_keys[request.sort_by], reverse=request.sort_order == "desc")

        return {
            "type": "by_student",
            "students": students[:request.limit],
            "summary": {
                "totalStudents": len(students),
                "averageScore": rounded_mean(score_of(row) for row in rows),
                "totalAttempts": len(rows),
                "improvingStudents": sum(1 for s in students if s["trend"] == "improving"),
                "decliningStudents": sum(1 for s in students if s["trend"] == "declining"),
            },
        }

    @staticmethod
    def _by_lesson(rows: list[LessonListeningScore]) -> dict[str, Any]:
        groups = [
            {
                "lesson": lesson,
                "studentCount": len({row.user_id for row in scores}),
                "avgScore": rounded_mean(score_of(row) for row in scores),
                "totalAttempts": len(scores),
                "scores": [row.to_dict() for row in scores],
            }
            for lesson, scores in _group(rows, lambda row: row.lesson_id).items()
        ]
        groups.sort(key=lambda group: group["avgScore"], reverse=True)
        return {"type": "by_lesson", "groups": groups}

    @staticmethod
    def _by_date(rows: list[LessonListeningScore]) -> dict[str, Any]:
        groups = [
            {
                "date": date,
                "studentCount": len({row.user_id for row in scores}),
                "avgScore": rounded_mean(score_of(row) for row in scores),
                "totalAttempts": len(scores),
                "scores": [row.to_dict() for row in scores],
            }
            for date, scores in _group(rows, lambda row: day_key(row.created_at)).items()
        ]
        groups.sort(key=lambda group: group["date"], reverse=True)
        return {"type": "by_date", "groups": groups}

    @staticmethod
    def _by_score_range(rows: list[LessonListeningScore]) -> dict[str, Any]:
        buckets = _group(rows, lambda row: score_range_label(score_of(row)))
        groups = []
        for label, lower, upper in SCORE_RANGES:
            scores = buckets.get(label, [])
            groups.append({
                "range": label,
                "scoreRange": {"min": lower, "max": upper},
                "studentCount": len(distinct_in_order([row.user_id for row in scores])),
                "attemptCount": len(scores),
                "percentage": round_half_up(len(scores) / len(rows) * 100) if rows else 0,
                "scores": [row.to_dict() for row in scores],
            })
        return {"type": "by_score_range", "groups": groups}
