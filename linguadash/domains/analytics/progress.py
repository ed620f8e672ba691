# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student progress overview.

One progress card per organization member, combining lesson progress,
activity, skill scores and risk indicators. All source tables are read
once for the whole organization and partitioned in memory.

Usage:
    report = ProgressOverviewReport(db, directory)
    overview = await report.build("ANB")
"""

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, identity_fields
from linguadash.domains.analytics.metrics import (
    compare_windows,
    current_streak,
    first_number,
    longest_streak,
    mean,
    round_half_up,
    rounded_mean,
    to_number,
)
from linguadash.infrastructure.database.models import (
    GrammarError,
    LessonChatbotScore,
    LessonListeningScore,
    LessonReadingScore,
    LessonSpeakingScore,
    LessonWritingScore,
    PronunciationScore,
    TaskCompletion,
    UserLessonProgress,
    UserOrganization,
    UserVocabulary,
)
from linguadash.utils.datetime import day_key, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

TOTAL_LESSONS = 120
EXPECTED_LESSONS_PER_WEEK = 5
MINUTES_PER_TASK = 15

OLDEST = datetime.min.replace(tzinfo=timezone.utc)

TREND_LABELS = {"up": "improving", "down": "declining", "stable": "stable"}

ACHIEVEMENTS = (
    ("Week Streak", "flame"),
    ("Month Streak", "star"),
    ("10 Lessons Complete", "book"),
    ("50 Lessons Complete", "target"),
    ("100 Words Learned", "speech"),
    ("High Performer", "trophy"),
)


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def engagement_score(
    streak: int,
    days_since_active: int,
    average_daily_minutes: float,
    progress: float,
) -> int:
    """Engagement from streak, recency, study time and progress, 0-100."""
    score = 50.0
    score += min(streak * 2, 20)
    score += max(0, 20 - days_since_active * 2)
    score += min(average_daily_minutes / 3, 20)
    score += progress * 0.1
    return min(100, max(0, round_half_up(score)))


def skill_metric(values: list[float]) -> dict[str, Any]:
    """Score, trend and session count of a skill; values newest first."""
    return {
        "score": rounded_mean(values) if values else 0,
        "trend": compare_windows(values[:3], values[3:6]),
        "sessions": len(values),
    }


def grammar_metric(errors: list[GrammarError]) -> dict[str, Any]:
    """High-severity error rate and its trend; errors newest first."""
    high = [error.severity == "HIGH" for error in errors]
    trend = "stable"
    if len(errors) > 10:
        trend = "improving" if sum(high[:5]) < sum(high[5:10]) else "declining"
    return {
        "errorRate": round_half_up(sum(high) / len(errors) * 100) if errors else 0,
        "trend": trend,
        "totalErrors": len(errors),
    }


def vocabulary_metric(entries: list[UserVocabulary], now: datetime) -> dict[str, Any]:
    week_ago = now - timedelta(days=7)
    weekly_new = sum(
        1 for v in entries
        if (v.first_seen or v.created_at) is not None
        and ensure_utc(v.first_seen or v.created_at) >= week_ago
    )
    retained = sum(1 for v in entries if (v.times_correct or 0) > (v.times_seen or 0) * 0.7)
    return {
        "wordsLearned": len(entries),
        "weeklyNew": weekly_new,
        "retentionRate": round_half_up(retained / len(entries) * 100) if entries else 0,
    }


def _newest_first(rows: list[Any], attribute: str = "created_at") -> list[Any]:
    return sorted(
        rows,
        key=lambda row: ensure_utc(getattr(row, attribute)) or OLDEST,
        reverse=True,
    )


class ProgressOverviewReport(ReportService):
    """Progress cards for every member of an organization."""

    async def build(self, organization_code: str) -> dict[str, Any]:
        """Build progress cards sorted by engagement score, highest first.

        Returns:
            Dict with ``students`` and ``summary``.
        """
        members = await self.organizations.get_members(organization_code)
        user_ids = [member.user_id for member in members]
        if not user_ids:
            return {"students": [], "summary": self._summary([])}

        profiles = await self.directory.get_profile_map(user_ids)
        tables = await self._fetch_tables(user_ids)
        now = utc_now()

        cards = [
            self._card(
                member,
                profiles.get(member.user_id),
                {name: rows.get(member.user_id, []) for name, rows in tables.items()},
                organization_code,
                now,
            )
            for member in members
        ]
        cards.sort(key=lambda card: card["engagementScore"], reverse=True)

        logger.info(
            "Built progress overview: organization=%s, students=%d",
            organization_code,
            len(cards),
        )
        return {"students": cards, "summary": self._summary(cards)}

    async def _fetch_tables(self, user_ids: list[str]) -> dict[str, dict[str, list[Any]]]:
        """Load every source table for the members, partitioned by user id."""
        sources = {
            "progress": UserLessonProgress,
            "tasks": TaskCompletion,
            "speaking": LessonSpeakingScore,
            "listening": LessonListeningScore,
            "reading": LessonReadingScore,
            "writing": LessonWritingScore,
            "grammar": GrammarError,
            "pronunciation": PronunciationScore,
            "vocabulary": UserVocabulary,
            "chatbot": LessonChatbotScore,
        }
        tables: dict[str, dict[str, list[Any]]] = {}
        for name, model in sources.items():
            result = await self.db.execute(select(model).where(model.user_id.in_(user_ids)))
            partitioned: dict[str, list[Any]] = defaultdict(list)
            for row in result.scalars().all():
                partitioned[row.user_id].append(row)
            tables[name] = partitioned
        return tables

    def _card(
        self,
        member: UserOrganization,
        profile: Any,
        data: dict[str, list[Any]],
        organization_code: str,
        now: datetime,
    ) -> dict[str, Any]:
        user_id = member.user_id
        progress = data["progress"]
        tasks = _newest_first(data["tasks"], "completed_at")
        speaking = _newest_first(data["speaking"])
        listening = _newest_first(data["listening"])
        reading = _newest_first(data["reading"])
        writing = _newest_first(data["writing"])
        grammar = _newest_first(data["grammar"])
        pronunciation = _newest_first(data["pronunciation"])
        chatbot = _newest_first(data["chatbot"])
        vocabulary = data["vocabulary"]

        # Progress
        completed_lessons = sum(1 for p in progress if (p.completion_percentage or 0) >= 100)
        overall_progress = round_half_up(completed_lessons / TOTAL_LESSONS * 100)
        latest = max(
            progress,
            key=lambda p: ensure_utc(p.last_accessed) or OLDEST,
            default=None,
        )
        current_lesson = (latest.lesson_title if latest else None) or "Not Started"
        current_module = "Module 1"
        if latest is not None and latest.lesson_id:
            current_module = latest.lesson_id.split("_")[0]

        # Activity
        timestamps = [t.completed_at for t in tasks]
        streak = current_streak(timestamps, now.date())
        last_active = ensure_utc(tasks[0].completed_at) if tasks else now
        days_since_active = math.floor((now - last_active) / timedelta(days=1))

        weekly_map = {day_key(now - timedelta(days=i)): 0 for i in range(7)}
        for task in tasks:
            key = day_key(task.completed_at)
            if key in weekly_map:
                weekly_map[key] += 1

        month_tasks = sum(1 for t in tasks if ensure_utc(t.completed_at) >= now - timedelta(days=30))
        average_daily_minutes = round_half_up(month_tasks * MINUTES_PER_TASK / 30)
        hours = Counter(ensure_utc(t.completed_at).hour for t in tasks)
        peak_hour = min(hours, key=lambda hour: (-hours[hour], hour)) if hours else 12

        this_week = sum(1 for t in tasks if ensure_utc(t.completed_at) >= now - timedelta(days=7))
        last_week = sum(
            1 for t in tasks
            if now - timedelta(days=14) <= ensure_utc(t.completed_at) < now - timedelta(days=7)
        )
        if this_week > last_week:
            activity_trend = "increasing"
        elif this_week < last_week:
            activity_trend = "decreasing"
        else:
            activity_trend = "stable"

        # Skills
        speaking_values = [
            first_number(s.percentage_score, s.total_score, s.score) for s in speaking
        ]
        listening_values = [to_number(s.score_percentage) or 0 for s in listening]
        reading_values = [to_number(s.score_percentage) or 0 for s in reading]
        writing_values = [to_number(s.score) or 0 for s in writing]
        pronunciation_values = [to_number(s.pronunciation_score) or 0 for s in pronunciation]

        pronunciation_metric = skill_metric(pronunciation_values)
        skills = {
            "speaking": skill_metric(speaking_values),
            "listening": skill_metric(listening_values),
            "reading": skill_metric(reading_values),
            "writing": skill_metric(writing_values),
            "grammar": grammar_metric(grammar),
            "pronunciation": {
                "accuracy": pronunciation_metric["score"],
                "trend": pronunciation_metric["trend"],
                "sessions": pronunciation_metric["sessions"],
            },
            "vocabulary": vocabulary_metric(vocabulary, now),
        }

        skill_scores = [
            ("Speaking", skills["speaking"]["score"]),
            ("Listening", skills["listening"]["score"]),
            ("Reading", skills["reading"]["score"]),
            ("Writing", skills["writing"]["score"]),
            ("Pronunciation", skills["pronunciation"]["accuracy"]),
            ("Grammar", 100 - skills["grammar"]["errorRate"]),
        ]
        average_score = rounded_mean(score for _, score in skill_scores)
        ranked = sorted(skill_scores, key=lambda item: item[1], reverse=True)
        strongest_skill, weakest_skill = ranked[0][0], ranked[-1][0]

        recent_window = [
            *speaking_values[:5], *listening_values[:5], *reading_values[:5], *writing_values[:5]
        ]
        older_window = [
            *speaking_values[5:10],
            *listening_values[5:10],
            *reading_values[5:10],
            *writing_values[5:10],
        ]
        performance_trend = TREND_LABELS[compare_windows(recent_window, older_window)]

        recent_scores = sorted(
            [
                *({"date": s.created_at, "score": v, "type": "Speaking"}
                  for s, v in zip(speaking[:3], speaking_values)),
                *({"date": s.created_at, "score": v, "type": "Listening"}
                  for s, v in zip(listening[:3], listening_values)),
                *({"date": s.created_at, "score": v, "type": "Reading"}
                  for s, v in zip(reading[:3], reading_values)),
                *({"date": s.created_at, "score": v, "type": "Writing"}
                  for s, v in zip(writing[:3], writing_values)),
            ],
            key=lambda entry: ensure_utc(entry["date"]) or OLDEST,
            reverse=True,
        )[:10]
        for entry in recent_scores:
            entry["date"] = format_iso(entry["date"])

        # Learning insights
        enrolled_at = ensure_utc(member.created_at) or now
        weeks_enrolled = max(1, math.floor((now - enrolled_at) / timedelta(weeks=1)))
        velocity = completed_lessons / weeks_enrolled
        if velocity > EXPECTED_LESSONS_PER_WEEK * 1.2:
            pace = "ahead"
        elif velocity < EXPECTED_LESSONS_PER_WEEK * 0.8:
            pace = "behind"
        else:
            pace = "on-track"
        predicted_weeks = (
            round_half_up((TOTAL_LESSONS - completed_lessons) / velocity) if velocity > 0 else None
        )

        recommended_focus = []
        if skills["grammar"]["errorRate"] > 30:
            recommended_focus.append("Grammar practice needed")
        if skills["pronunciation"]["accuracy"] < 70:
            recommended_focus.append("Pronunciation exercises")
        if skills["vocabulary"]["weeklyNew"] < 10:
            recommended_focus.append("Expand vocabulary")
        if ranked[-1][1] < 60:
            recommended_focus.append(f"Focus on {weakest_skill}")
        if streak == 0:
            recommended_focus.append("Re-establish daily practice")

        earned = (
            streak >= 7,
            streak >= 30,
            completed_lessons >= 10,
            completed_lessons >= 50,
            len(vocabulary) >= 100,
            average_score >= 80,
        )
        achievements = [
            {"name": name, "date": format_iso(now), "icon": icon}
            for (name, icon), unlocked in zip(ACHIEVEMENTS, earned)
            if unlocked
        ]

        activities = [
            *({"type": "Task", "title": t.task_id or "Practice", "timestamp": t.completed_at}
              for t in tasks[:5]),
            *({"type": "Speaking", "title": s.task_id or "Speaking Practice", "score": v,
               "timestamp": s.created_at}
              for s, v in zip(speaking[:2], speaking_values)),
            *({"type": "Listening", "title": s.lesson_id or "Listening Practice",
               "score": to_number(s.score_percentage), "timestamp": s.created_at}
              for s in listening[:2]),
            *({"type": "AI Chat", "title": "Conversation Practice",
               "score": to_number(c.total_score), "timestamp": c.created_at}
              for c in chatbot[:2]),
        ]
        activities.sort(
            key=lambda activity: ensure_utc(activity["timestamp"]) or OLDEST,
            reverse=True,
        )
        recent_activities = activities[:5]
        for activity in recent_activities:
            activity["timestamp"] = format_iso(activity["timestamp"])

        engagement = engagement_score(
            streak, days_since_active, average_daily_minutes, overall_progress
        )
        identity = identity_fields(user_id, profile)

        return {
            "userId": user_id,
            "name": identity["name"],
            "email": identity["email"],
            "firstName": identity["firstName"],
            "lastName": identity["lastName"],
            "organization": organization_code,
            "overallProgress": overall_progress,
            "currentLesson": current_lesson,
            "currentModule": current_module,
            "lessonsCompleted": completed_lessons,
            "totalLessons": TOTAL_LESSONS,
            "expectedCompletion": (
                format_iso(now + timedelta(weeks=predicted_weeks)) if predicted_weeks else None
            ),
            "learningVelocity": round_half_up(velocity, 1),
            "currentStreak": streak,
            "longestStreak": longest_streak(timestamps),
            "lastActiveDate": format_iso(last_active),
            "weeklyActivityMap": weekly_map,
            "averageDailyMinutes": average_daily_minutes,
            "totalStudyHours": round_half_up(len(tasks) * MINUTES_PER_TASK / 60),
            "mostActiveTime": time_of_day(peak_hour),
            "activityTrend": activity_trend,
            "averageScore": average_score,
            "strongestSkill": strongest_skill,
            "weakestSkill": weakest_skill,
            "needsAttention": average_score < 60 or days_since_active > 7,
            "performanceTrend": performance_trend,
            "recentScores": recent_scores,
            "skills": skills,
            "learningPace": pace,
            "predictedCompletionWeeks": predicted_weeks,
            "recommendedFocus": recommended_focus,
            "achievements": achievements,
            "recentActivities": recent_activities,
            "engagementScore": engagement,
            "atRiskOfDropout": days_since_active > 7 or (streak == 0 and days_since_active > 3),
            "inactivityDays": days_since_active,
            "strugglingAreas": [name for name, score in skill_scores if score < 50],
        }

    @staticmethod
    def _summary(cards: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "totalStudents": len(cards),
            "activeStudents": sum(1 for card in cards if card["inactivityDays"] <= 7),
            "atRiskStudents": sum(1 for card in cards if card["atRiskOfDropout"]),
            "averageProgress": round_half_up(mean(card["overallProgress"] for card in cards)),
            "averageEngagement": round_half_up(mean(card["engagementScore"] for card in cards)),
        }
