# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Students overview and per-student detail reports.

Both reports build the same snapshot of a student: vocabulary size,
practice conversations, the daily streak on the streak course, the
seven skill scores and overall progress. The detail report adds weekly
activity, recent lessons, vocabulary growth and guidance.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.domains.analytics.base import (
    ReportService,
    StudentNotInOrganizationError,
    identity_fields,
    numeric,
)
from linguadash.domains.analytics.metrics import (
    current_streak,
    longest_streak,
    round_half_up,
    rounded_mean,
    to_number,
)
from linguadash.domains.organization import DirectoryService
from linguadash.infrastructure.database.models import (
    LessonChatbotScore,
    LessonGrammarScore,
    LessonListeningScore,
    LessonReadingScore,
    LessonSpeakingScore,
    LessonWritingScore,
    PronunciationScore,
    SpeakingScore,
    TaskCompletion,
    UserLessonProgress,
    UserVocabulary,
)
from linguadash.models.reports import StudentDetailsRequest
from linguadash.utils.datetime import day_key, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

SKILL_WINDOW = 10
PRONUNCIATION_WINDOW = 20
STREAK_HISTORY_LIMIT = 365
VOCABULARY_TARGET_WORDS = 500
COURSE_LESSONS = 50
RECENT_ACTIVITY_SIZE = 5
RECENT_LESSONS_SIZE = 20
MINUTES_PER_TASK = 15
VOCABULARY_PROGRESS_DAYS = 30
VOCABULARY_PROGRESS_STEP = 5
SKILL_STRENGTH_THRESHOLD = 60

TIME_RANGE_DAYS = {"week": 7, "month": 30}

SKILL_ORDER = (
    "speaking",
    "listening",
    "reading",
    "writing",
    "grammar",
    "vocabulary",
    "pronunciation",
)
TESTED_SKILLS = (("speaking", "Speaking"), ("listening", "Listening"), ("reading", "Reading"))


def start_of_week(now: datetime) -> datetime:
    """Midnight UTC of the Sunday starting the current week."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=(now.weekday() + 1) % 7)


def overall_progress(completed_lessons: int, total_words: int, total_conversations: int) -> int:
    """Progress from completed lessons, else estimated from activity."""
    progress = round_half_up(completed_lessons / COURSE_LESSONS * 100)
    if progress == 0:
        vocabulary = min(total_words / 200 * 50, 50)
        conversations = min(total_conversations / 40 * 50, 50)
        progress = round_half_up(vocabulary + conversations)
    return progress


def strengths_and_weaknesses(skills: dict[str, int], streak: int) -> dict[str, list[str]]:
    """Top and bottom skills plus practice recommendations."""
    ranked = sorted(skills.items(), key=lambda item: item[1], reverse=True)
    strengths = [
        f"Strong performance in {skill} ({score}%)"
        for skill, score in ranked[:3]
        if score >= SKILL_STRENGTH_THRESHOLD
    ]
    weaknesses = [
        f"Needs improvement in {skill} ({score}%)"
        for skill, score in ranked[-3:]
        if score < SKILL_STRENGTH_THRESHOLD
    ]

    recommendations = []
    if skills["speaking"] < 60:
        recommendations.append("Schedule more speaking practice sessions")
    if skills["vocabulary"] < 50:
        recommendations.append("Focus on daily vocabulary exercises")
    if skills["grammar"] < 60:
        recommendations.append("Review grammar fundamentals")
    if streak < 7:
        recommendations.append("Encourage daily practice to build consistency")

    return {
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": recommendations,
    }


def vocabulary_progress(
    entries: list[tuple[str, datetime | None]],
    total_words: int,
    now: datetime,
) -> list[dict[str, Any]]:
    """Cumulative distinct words every five days over a month, oldest first."""
    points = []
    for offset in range(0, VOCABULARY_PROGRESS_DAYS, VOCABULARY_PROGRESS_STEP):
        cutoff = now - timedelta(days=offset)
        learned = {
            term for term, created_at in entries
            if created_at is not None and ensure_utc(created_at) <= cutoff
        }
        points.append({
            "date": format_iso(cutoff),
            "wordsLearned": len(learned),
            "totalWords": total_words,
        })
    points.reverse()
    return points


class StudentReport(ReportService):
    """Students overview and student detail reports.

    Attributes:
        streak_course_id: Course whose completions drive the daily streak.
    """

    def __init__(
        self,
        db: AsyncSession,
        directory: DirectoryService,
        streak_course_id: str = "telc_a1",
    ) -> None:
        super().__init__(db, directory)
        self.streak_course_id = streak_course_id

    async def overview(self, organization_code: str) -> list[dict[str, Any]]:
        """Build the overview row of every active student.

        Students without words, conversations, streak, progress or
        completions are left out.
        """
        members = await self.organizations.get_members(organization_code)
        if not members:
            return []

        profiles = await self.directory.get_profile_map([m.user_id for m in members])
        now = utc_now()

        students = []
        for member in members:
            snapshot = await self._snapshot(member.user_id, now)
            completions = await self._recent_completions(member.user_id, RECENT_ACTIVITY_SIZE)
            identity = identity_fields(member.user_id, profiles.get(member.user_id))

            row = {
                "id": member.user_id,
                "name": identity["name"],
                "email": identity["email"],
                "enrolledAt": format_iso(member.created_at),
                "lastActive": format_iso(completions[0].completed_at if completions else now),
                "overallProgress": snapshot["overallProgress"],
                "dailyStreak": snapshot["dailyStreak"],
                "weeklyWords": snapshot["weeklyWords"],
                "totalWords": snapshot["totalWords"],
                "totalConversations": snapshot["totalConversations"],
                "speakingConversations": snapshot["speakingConversations"],
                "chatbotConversations": snapshot["chatbotConversations"],
                "skills": snapshot["skills"],
                "recentActivity": [
                    {
                        "date": format_iso(c.completed_at),
                        "type": c.task_type or "lesson",
                        "taskId": c.task_id,
                    }
                    for c in completions
                ],
            }
            if (
                row["overallProgress"] > 0
                or row["totalWords"] > 0
                or row["totalConversations"] > 0
                or row["dailyStreak"] > 0
                or row["recentActivity"]
            ):
                students.append(row)

        logger.info(
            "Built students overview: organization=%s, members=%d, active=%d",
            organization_code,
            len(members),
            len(students),
        )
        return students

    async def details(
        self,
        organization_code: str,
        request: StudentDetailsRequest,
    ) -> dict[str, Any]:
        """Build the detail page of one student.

        Args:
            organization_code: Organization the teacher belongs to.
            request: Request naming the student and the time range of the
                recent lessons list.

        Returns:
            Student detail dict.

        Raises:
            StudentNotInOrganizationError: If the student is not a member.
        """
        student_id = request.student_id
        membership = await self.organizations.is_member(student_id, organization_code)
        if membership is None:
            logger.warning(
                "Student %s not found in organization %s",
                student_id,
                organization_code,
            )
            raise StudentNotInOrganizationError(
                f"Student {student_id} is not a member of {organization_code}"
            )

        now = utc_now()
        profile = await self.directory.find_profile(student_id)
        snapshot = await self._snapshot(student_id, now)
        identity = identity_fields(student_id, profile)

        vocabulary = await self._vocabulary_entries(student_id)
        monthly_words = len({
            term for term, created_at in vocabulary
            if created_at is not None and ensure_utc(created_at) >= now - timedelta(days=30)
        })

        since = None
        if request.time_range in TIME_RANGE_DAYS:
            since = now - timedelta(days=TIME_RANGE_DAYS[request.time_range])
        lessons = await self._course_completions(student_id, since, RECENT_LESSONS_SIZE)
        week = await self._course_completions(student_id, now - timedelta(days=7), None)

        skills = snapshot["skills"]
        test_history = [
            {"date": format_iso(now), "testType": name, "score": skills[key], "improvement": 0}
            for key, name in TESTED_SKILLS
            if snapshot["skillSessions"][key]
        ]

        return {
            "id": student_id,
            "name": identity["name"],
            "email": identity["email"],
            "enrolledAt": format_iso(membership.created_at),
            "lastActive": format_iso(lessons[0].completed_at if lessons else membership.created_at),
            "overallProgress": snapshot["overallProgress"],
            "dailyStreak": snapshot["dailyStreak"],
            "longestStreak": snapshot["longestStreak"],
            "weeklyWords": snapshot["weeklyWords"],
            "monthlyWords": monthly_words,
            "totalWords": snapshot["totalWords"],
            "totalConversations": snapshot["totalConversations"],
            "speakingConversations": snapshot["speakingConversations"],
            "chatbotConversations": snapshot["chatbotConversations"],
            "skills": skills,
            "weeklyActivity": self._weekly_activity(week, now),
            "recentLessons": [
                {
                    "date": format_iso(c.completed_at),
                    "lessonName": c.lesson_id or "Lesson",
                    "type": c.task_type or "exercise",
                    "taskId": c.task_id,
                    "score": 0,
                    "timeSpent": MINUTES_PER_TASK,
                }
                for c in lessons
            ],
            "strengthsAndWeaknesses": strengths_and_weaknesses(skills, snapshot["dailyStreak"]),
            "testHistory": test_history,
            "vocabularyProgress": vocabulary_progress(vocabulary, snapshot["totalWords"], now),
        }

    async def _snapshot(self, user_id: str, now: datetime) -> dict[str, Any]:
        """Metrics shared by the overview and the detail page."""
        vocabulary = await self._vocabulary_entries(user_id)
        week_start = start_of_week(now)
        total_words = len({term for term, _ in vocabulary})
        weekly_words = len({
            term for term, created_at in vocabulary
            if created_at is not None and ensure_utc(created_at) >= week_start
        })

        speaking_conversations = await self._distinct_tasks(LessonSpeakingScore, user_id)
        chatbot_conversations = await self._distinct_tasks(LessonChatbotScore, user_id)
        total_conversations = speaking_conversations + chatbot_conversations

        result = await self.db.execute(
            select(TaskCompletion.completed_at)
            .where(
                TaskCompletion.user_id == user_id,
                TaskCompletion.course_id == self.streak_course_id,
            )
            .order_by(TaskCompletion.completed_at.desc())
            .limit(STREAK_HISTORY_LIMIT)
        )
        completion_times = list(result.scalars().all())

        skill_values = {
            "speaking": await self._recent_values(SpeakingScore, SpeakingScore.score, user_id),
            "listening": await self._recent_values(
                LessonListeningScore, LessonListeningScore.score_percentage, user_id
            ),
            "reading": await self._recent_values(
                LessonReadingScore, LessonReadingScore.score_percentage, user_id
            ),
            "writing": await self._recent_values(
                LessonWritingScore, LessonWritingScore.score, user_id
            ),
            "grammar": await self._recent_values(
                LessonGrammarScore, LessonGrammarScore.percentage_score, user_id
            ),
            "pronunciation": await self._recent_values(
                PronunciationScore,
                PronunciationScore.pronunciation_score,
                user_id,
                PRONUNCIATION_WINDOW,
                numeric(PronunciationScore.pronunciation_score) >= 0,
            ),
        }
        skills = {
            skill: rounded_mean(values) if values else 0
            for skill, values in skill_values.items()
        }
        skills["vocabulary"] = round_half_up(min(100, total_words / VOCABULARY_TARGET_WORDS * 100))
        skills = {
            key: skills[key]
            for key in SKILL_ORDER
        }

        result = await self.db.execute(
            select(func.count())
            .select_from(UserLessonProgress)
            .where(UserLessonProgress.user_id == user_id, UserLessonProgress.completed.is_(True))
        )
        completed_lessons = result.scalar_one()

        return {
            "totalWords": total_words,
            "weeklyWords": weekly_words,
            "speakingConversations": speaking_conversations,
            "chatbotConversations": chatbot_conversations,
            "totalConversations": total_conversations,
            "dailyStreak": current_streak(completion_times, now.date()),
            "longestStreak": longest_streak(completion_times),
            "skills": skills,
            "skillSessions": {skill: len(values) for skill, values in skill_values.items()},
            "overallProgress": overall_progress(
                completed_lessons, total_words, total_conversations
            ),
        }

    async def _vocabulary_entries(self, user_id: str) -> list[tuple[str, datetime | None]]:
        result = await self.db.execute(
            select(UserVocabulary.term, UserVocabulary.created_at).where(
                UserVocabulary.user_id == user_id
            )
        )
        return [(term, created_at) for term, created_at in result.all()]

    async def _distinct_tasks(self, model: Any, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(func.distinct(model.task_id))).where(model.user_id == user_id)
        )
        return result.scalar_one()

    async def _recent_values(
        self,
        model: Any,
        column: Any,
        user_id: str,
        limit: int = SKILL_WINDOW,
        *criteria: Any,
    ) -> list[float]:
        """Numeric values of the most recent score rows of a user.

        Missing or non-numeric values count as 0.
        """
        result = await self.db.execute(
            select(column)
            .where(model.user_id == user_id, *criteria)
            .order_by(model.created_at.desc())
            .limit(limit)
        )
        return [to_number(value) or 0 for value in result.scalars().all()]

    async def _recent_completions(self, user_id: str, limit: int) -> list[TaskCompletion]:
        result = await self.db.execute(
            select(TaskCompletion)
            .where(TaskCompletion.user_id == user_id)
            .order_by(TaskCompletion.completed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _course_completions(
        self,
        user_id: str,
        since: datetime | None,
        limit: int | None,
    ) -> list[TaskCompletion]:
        """Completions on the streak course, newest first."""
        query = select(TaskCompletion).where(
            TaskCompletion.user_id == user_id,
            TaskCompletion.course_id == self.streak_course_id,
        )
        if since is not None:
            query = query.where(TaskCompletion.completed_at >= since)
        query = query.order_by(TaskCompletion.completed_at.desc())
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _weekly_activity(completions: list[TaskCompletion], now: datetime) -> list[dict[str, Any]]:
        """Exercises and estimated minutes for each of the last 7 days, oldest first."""
        counts: dict[str, int] = {}
        for completion in completions:
            key = day_key(completion.completed_at)
            counts[key] = counts.get(key, 0) + 1

        activity = []
        for offset in range(6, -1, -1):
            day = (now - timedelta(days=offset)).replace(hour=0, minute=0, second=0, microsecond=0)
            exercises = counts.get(day_key(day), 0)
            activity.append({
                "date": format_iso(day),
                "minutesSpent": exercises * MINUTES_PER_TASK,
                "exercisesCompleted": exercises,
            })
        return activity
