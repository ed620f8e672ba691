# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Task completion analytics.

Cohort trends (daily and hourly activity, task difficulty) and per
student engagement metrics: streaks, a 90-day activity calendar,
achievements, efficiency and time-of-day patterns.

All calendar and hour-of-day logic uses UTC.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, identity_fields
from linguadash.domains.analytics.metrics import (
    activity_level,
    attempt_bucket,
    calendar_level,
    current_streak,
    efficiency_rating,
    longest_streak,
    mean,
    round_half_up,
)
from linguadash.infrastructure.database.models import TaskCompletion
from linguadash.models.reports import TaskCompletionsRequest
from linguadash.utils.datetime import day_key, days_ago, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

DAILY_ACTIVITY_DAYS = 30
CALENDAR_DAYS = 90
MIN_COMPLETIONS_FOR_DIFFICULTY = 3
TOP_DIFFICULT_TASKS = 10
HISTORY_SIZE = 20
IMPROVEMENT_WINDOW = 10
TASK_MASTER_COMPLETIONS = 50


def attempts_of(completion: TaskCompletion) -> int:
    return completion.attempts or 0


def sunday_weekday(dt: datetime) -> int:
    """Day of week with Sunday as 0."""
    return (dt.weekday() + 1) % 7


def average_attempts(completions: list[TaskCompletion]) -> float:
    """Mean attempts rounded to two decimals."""
    if not completions:
        return 0
    return round_half_up(mean(attempts_of(c) for c in completions), 2)


def daily_activity(completions: list[TaskCompletion]) -> list[dict[str, Any]]:
    """Completions and active users per day, newest day first."""
    days: dict[str, dict[str, set]] = {}
    for completion in completions:
        day = days.setdefault(day_key(completion.completed_at), {"ids": set(), "users": set()})
        day["ids"].add(completion.id)
        day["users"].add(completion.user_id)

    activity = [
        {"date": key, "completions": len(day["ids"]), "users": len(day["users"])}
        for key, day in days.items()
    ]
    activity.sort(key=lambda entry: entry["date"], reverse=True)
    return activity[:DAILY_ACTIVITY_DAYS]


def hourly_patterns(completions: list[TaskCompletion]) -> list[dict[str, Any]]:
    counts = [0] * 24
    users: list[set[str]] = [set() for _ in range(24)]
    for completion in completions:
        hour = ensure_utc(completion.completed_at).hour
        counts[hour] += 1
        users[hour].add(completion.user_id)
    return [
        {"hour": hour, "completions": counts[hour], "users": len(users[hour])}
        for hour in range(24)
    ]


def task_difficulty(completions: list[TaskCompletion]) -> list[dict[str, Any]]:
    """Tasks with enough completions, hardest (most attempts) first."""
    tasks: dict[str, list[int]] = {}
    for completion in completions:
        tasks.setdefault(completion.task_id, []).append(attempts_of(completion))

    ranked = [
        {
            "taskId": task_id,
            "averageAttempts": round_half_up(mean(attempts), 2),
            "completionCount": len(attempts),
        }
        for task_id, attempts in tasks.items()
        if len(attempts) >= MIN_COMPLETIONS_FOR_DIFFICULTY
    ]
    ranked.sort(key=lambda task: task["averageAttempts"], reverse=True)
    return ranked[:TOP_DIFFICULT_TASKS]


def learning_streak(completions: list[TaskCompletion]) -> dict[str, Any]:
    if not completions:
        return {"current": 0, "longest": 0, "lastActive": None}
    timestamps = [c.completed_at for c in completions]
    return {
        "current": current_streak(timestamps),
        "longest": longest_streak(timestamps),
        "lastActive": max(day_key(ts) for ts in timestamps),
    }


def activity_calendar(completions: list[TaskCompletion], now: datetime) -> list[dict[str, Any]]:
    """Daily counts for the last 90 days, oldest first, with heat levels."""
    keys = [day_key(now - timedelta(days=i)) for i in range(CALENDAR_DAYS - 1, -1, -1)]
    counts = dict.fromkeys(keys, 0)
    for completion in completions:
        key = day_key(completion.completed_at)
        if key in counts:
            counts[key] += 1

    max_count = max(counts.values())
    return [
        {"date": key, "count": counts[key], "level": calendar_level(counts[key], max_count)}
        for key in keys
    ]


def achievements(completions: list[TaskCompletion]) -> dict[str, Any]:
    hours = [ensure_utc(c.completed_at).hour for c in completions]
    return {
        "speedRunner": sum(1 for c in completions if attempts_of(c) == 1),
        "persistent": sum(1 for c in completions if attempts_of(c) >= 5),
        "earlyBird": sum(1 for hour in hours if hour < 8),
        "nightOwl": sum(1 for hour in hours if hour >= 22),
        "weekendWarrior": sum(
            1 for c in completions if sunday_weekday(ensure_utc(c.completed_at)) in (0, 6)
        ),
        "taskMaster": len(completions) >= TASK_MASTER_COMPLETIONS,
        "efficient": len(completions) > 10 and mean(attempts_of(c) for c in completions) < 2,
    }


def efficiency_metrics(completions: list[TaskCompletion]) -> dict[str, Any]:
    """Success rate, attempts and improvement of one student.

    Improvement compares the oldest ten completions with the newest ten.
    Completions must be newest first.
    """
    if not completions:
        return {"successRate": 0, "averageAttempts": 0, "improvement": 0}

    success_rate = sum(1 for c in completions if attempts_of(c) <= 2) / len(completions) * 100
    improvement = 0.0
    if len(completions) >= IMPROVEMENT_WINDOW:
        recent = mean(attempts_of(c) for c in completions[:IMPROVEMENT_WINDOW])
        early = mean(attempts_of(c) for c in completions[-IMPROVEMENT_WINDOW:])
        if early:
            improvement = (early - recent) / early * 100

    return {
        "successRate": round_half_up(success_rate),
        "averageAttempts": average_attempts(completions),
        "improvement": round_half_up(improvement),
    }


def time_patterns(completions: list[TaskCompletion]) -> dict[str, Any]:
    hours = [0] * 24
    days = [0] * 7
    for completion in completions:
        completed_at = ensure_utc(completion.completed_at)
        hours[completed_at.hour] += 1
        days[sunday_weekday(completed_at)] += 1
    return {
        "peakHour": hours.index(max(hours)),
        "peakDay": DAY_NAMES[days.index(max(days))],
        "hourlyDistribution": hours,
        "weeklyDistribution": days,
    }


def _history_entry(completion: TaskCompletion) -> dict[str, Any]:
    time_to_complete = None
    if completion.completed_at and completion.created_at:
        delta = ensure_utc(completion.completed_at) - ensure_utc(completion.created_at)
        time_to_complete = int(delta.total_seconds() * 1000)
    return {
        "taskId": completion.task_id,
        "attempts": completion.attempts,
        "completedAt": format_iso(completion.completed_at),
        "createdAt": format_iso(completion.created_at),
        "timeToComplete": time_to_complete,
    }


class TaskCompletionReport(ReportService):
    """Task completion trends and per-student engagement analytics."""

    async def build(self, organization_code: str, request: TaskCompletionsRequest) -> dict[str, Any]:
        """Build the task completion analytics.

        Args:
            organization_code: Organization the report is scoped to.
            request: Optional course and completion date filters.

        Returns:
            Dict with ``generalTrends``, ``studentAnalytics`` and ``summary``.
        """
        user_ids = await self.resolve_scope(organization_code)
        completions = await self._fetch(user_ids, request) if user_ids else []
        now = utc_now()

        by_user: dict[str, list[TaskCompletion]] = {}
        for completion in completions:
            by_user.setdefault(completion.user_id, []).append(completion)

        active_ids = [user_id for user_id in user_ids if by_user.get(user_id)]
        profiles = await self.directory.get_profile_map(active_ids)
        students = [
            self._student_metrics(user_id, profiles.get(user_id), by_user[user_id], now)
            for user_id in active_ids
        ]

        trends = self._general_trends(completions, now)
        logger.info(
            "Built task completion report: organization=%s, completions=%d, students=%d",
            organization_code,
            len(completions),
            len(students),
        )
        return {
            "generalTrends": trends,
            "studentAnalytics": students,
            "summary": {
                "totalStudentsWithCompletions": len(students),
                "totalCompletions": trends["totalCompletions"],
                "totalUniqueTasks": trends["totalUniqueTasks"],
                "averageCompletionsPerStudent": (
                    round_half_up(len(completions) / len(students)) if students else 0
                ),
            },
        }

    async def _fetch(
        self,
        user_ids: list[str],
        request: TaskCompletionsRequest,
    ) -> list[TaskCompletion]:
        query = select(TaskCompletion).where(TaskCompletion.user_id.in_(user_ids))
        if request.course_id:
            query = query.where(TaskCompletion.course_id == request.course_id)
        if request.start_date:
            query = query.where(TaskCompletion.completed_at >= ensure_utc(request.start_date))
        if request.end_date:
            query = query.where(TaskCompletion.completed_at <= ensure_utc(request.end_date))

        result = await self.db.execute(query.order_by(TaskCompletion.completed_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    def _general_trends(completions: list[TaskCompletion], now: datetime) -> dict[str, Any]:
        last_week = days_ago(7, now)
        last_month = days_ago(30, now)
        daily = daily_activity(completions)
        return {
            "totalCompletions": len(completions),
            "totalUniqueTasks": len({c.task_id for c in completions}),
            "totalUniqueUsers": len({c.user_id for c in completions}),
            "recentCompletions": sum(
                1 for c in completions if ensure_utc(c.completed_at) >= last_week
            ),
            "monthlyCompletions": sum(
                1 for c in completions if ensure_utc(c.completed_at) >= last_month
            ),
            "averageAttempts": average_attempts(completions),
            "attemptDistribution": {
                "easy": 0,
                "medium": 0,
                "hard": 0,
                **Counter(attempt_bucket(attempts_of(c)) for c in completions),
            },
            "dailyActivity": daily,
            "hourlyPatterns": hourly_patterns(completions),
            "taskDifficulty": task_difficulty(completions),
            "peakActivity": {
                "date": daily[0]["date"] if daily else None,
                "completions": daily[0]["completions"] if daily else 0,
            },
        }

    @staticmethod
    def _student_metrics(
        user_id: str,
        profile: Any,
        completions: list[TaskCompletion],
        now: datetime,
    ) -> dict[str, Any]:
        recent = sum(1 for c in completions if ensure_utc(c.completed_at) >= now - timedelta(days=7))
        monthly = sum(
            1 for c in completions if ensure_utc(c.completed_at) >= now - timedelta(days=30)
        )
        avg_attempts = average_attempts(completions)
        return {
            **identity_fields(user_id, profile),
            "totalTasksCompleted": len(completions),
            "recentTasksCompleted": recent,
            "monthlyTasksCompleted": monthly,
            "averageAttempts": avg_attempts,
            "uniqueTasksCompleted": len({c.task_id for c in completions}),
            "learningStreak": learning_streak(completions),
            "activityCalendar": activity_calendar(completions, now),
            "achievements": achievements(completions),
            "efficiencyMetrics": efficiency_metrics(completions),
            "timePatterns": time_patterns(completions),
            "firstCompletion": format_iso(completions[-1].completed_at),
            "lastCompletion": format_iso(completions[0].completed_at),
            "activeDays": len({day_key(c.completed_at) for c in completions}),
            "efficiencyRating": efficiency_rating(avg_attempts),
            "activityLevel": activity_level(recent, len(completions)),
            "recentCompletionHistory": [_history_entry(c) for c in completions[:HISTORY_SIZE]],
        }
