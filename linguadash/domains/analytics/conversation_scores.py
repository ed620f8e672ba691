# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Speaking and chatbot score reports.

Both reports return one card per student with evaluated sessions. The
transcript of each session is rebuilt from the message logs, which hold
the assistant turns as well; the transcript stored on the score row is
the fallback.

Usage:
    report = SpeakingScoreReport(db, directory)
    cards = await report.build("ANB", ScoreReportRequest())
"""

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import and_, func, or_, select

from linguadash.domains.analytics.base import ReportService, identity_fields
from linguadash.domains.analytics.metrics import (
    first_number,
    parse_json_payload,
    rounded_mean,
    score_distribution,
    to_number,
)
from linguadash.infrastructure.database.models import (
    SPEAKING_LOG_SEPARATOR,
    ConversationLog,
    LessonChatbotScore,
    LessonSpeakingScore,
    SpeakingLog,
)
from linguadash.models.reports import ChatbotScoresQuery, ScoreReportRequest
from linguadash.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

Transcript = list[dict[str, Any]]


def _session_card(
    user_id: str,
    profile: Any,
    sessions: list[dict[str, Any]],
    averages: dict[str, int],
) -> dict[str, Any]:
    """Per-student card shared by the speaking and chatbot reports.

    Sessions are newest first.
    """
    unique_tasks = len({s["task_id"] for s in sessions if s.get("task_id")})
    return {
        **identity_fields(user_id, profile),
        "totalSessions": len(sessions),
        "averageScore": rounded_mean(s["score"] for s in sessions),
        **averages,
        "uniqueLessons": unique_tasks,
        "uniqueTasks": unique_tasks,
        "uniqueCourses": len({s["course_name"] for s in sessions if s.get("course_name")}),
        "latestScore": sessions[0]["score"] if sessions else 0,
        "latestDate": sessions[0]["created_at"] if sessions else None,
        "scoreDistribution": score_distribution(s["score"] for s in sessions),
        "scores": sessions,
    }


def _parse_transcript(value: Any) -> Transcript:
    parsed = parse_json_payload(value)
    return parsed if isinstance(parsed, list) else []


class SpeakingScoreReport(ReportService):
    """Report over evaluated speaking tasks."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> list[dict[str, Any]]:
        """Build per-student speaking cards.

        Args:
            organization_code: Organization the report is scoped to.
            request: Report request with optional user and filters.

        Returns:
            Cards for students with at least one session.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        if not user_ids:
            return []

        rows = await self._fetch_scores(user_ids, request)
        transcripts = await self._fetch_transcripts(rows)

        by_user: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            by_user[row.user_id].append(self._enrich(row, transcripts))

        active_ids = [user_id for user_id in user_ids if by_user.get(user_id)]
        profiles = await self.directory.get_profile_map(active_ids)

        cards = []
        for user_id in active_ids:
            sessions = by_user[user_id]
            cards.append(_session_card(
                user_id,
                profiles.get(user_id),
                sessions,
                {
                    "averageGrammarScore": rounded_mean(s["grammar_score"] for s in sessions),
                    "averageCommunicationScore": rounded_mean(
                        s["communication_score"] for s in sessions
                    ),
                },
            ))

        logger.info(
            "Built speaking report: organization=%s, students=%d, sessions=%d",
            organization_code,
            len(cards),
            len(rows),
        )
        return cards

    async def _fetch_scores(
        self,
        user_ids: list[str],
        request: ScoreReportRequest,
    ) -> list[LessonSpeakingScore]:
        filters = request.filters
        final_score = func.coalesce(
            func.nullif(LessonSpeakingScore.percentage_score, 0),
            func.nullif(LessonSpeakingScore.total_score, 0),
            LessonSpeakingScore.score,
            0,
        )

        query = select(LessonSpeakingScore).where(LessonSpeakingScore.user_id.in_(user_ids))
        if filters.task_id:
            query = query.where(LessonSpeakingScore.task_id == filters.task_id)
        if filters.lesson_id:
            query = query.where(LessonSpeakingScore.lesson_id == filters.lesson_id)
        if filters.course_id:
            query = query.where(LessonSpeakingScore.course_id == filters.course_id)
        if filters.start_date:
            query = query.where(LessonSpeakingScore.created_at >= ensure_utc(filters.start_date))
        if filters.end_date:
            query = query.where(LessonSpeakingScore.created_at <= ensure_utc(filters.end_date))
        if filters.min_score is not None:
            query = query.where(final_score >= filters.min_score)
        if filters.max_score is not None:
            query = query.where(final_score <= filters.max_score)

        result = await self.db.execute(query.order_by(LessonSpeakingScore.created_at.desc()))
        return list(result.scalars().all())

    async def _fetch_transcripts(
        self,
        rows: list[LessonSpeakingScore],
    ) -> dict[tuple[str, str], Transcript]:
        """Load speaking log transcripts keyed by (user id, task id).

        Log rows identify the student either by plain user id plus task
        id, or by a composite ``{user}:::{task}`` user id.
        """
        pairs = {(row.user_id, row.task_id) for row in rows if row.task_id}
        if not pairs:
            return {}

        user_ids = sorted({user_id for user_id, _ in pairs})
        task_ids = sorted({task_id for _, task_id in pairs})
        composite_ids = [f"{user_id}{SPEAKING_LOG_SEPARATOR}{task_id}" for user_id, task_id in pairs]

        result = await self.db.execute(
            select(SpeakingLog)
            .where(
                or_(
                    SpeakingLog.user_id.in_(composite_ids),
                    and_(
                        SpeakingLog.user_id.in_(user_ids),
                        SpeakingLog.task_id.in_(task_ids),
                    ),
                )
            )
            .order_by(SpeakingLog.message_index.asc(), SpeakingLog.created_at.asc())
        )

        transcripts: dict[tuple[str, str], Transcript] = defaultdict(list)
        for message in result.scalars().all():
            if SPEAKING_LOG_SEPARATOR in message.user_id:
                user_id, task_id = message.user_id.split(SPEAKING_LOG_SEPARATOR, 1)
            else:
                user_id, task_id = message.user_id, message.task_id
            if (user_id, task_id) in pairs:
                transcripts[(user_id, task_id)].append({
                    "role": message.role,
                    "content": message.content,
                })
        return transcripts

    @staticmethod
    def _enrich(
        row: LessonSpeakingScore,
        transcripts: dict[tuple[str, str], Transcript],
    ) -> dict[str, Any]:
        evaluation = parse_json_payload(row.evaluation_data)
        if not isinstance(evaluation, dict):
            evaluation = None

        transcript = transcripts.get((row.user_id, row.task_id)) or _parse_transcript(
            row.conversation_history
        )
        feedback = ""
        if evaluation:
            feedback = evaluation.get("overall_feedback") or evaluation.get("feedback") or ""

        return {
            **row.to_dict(),
            "conversation_history": transcript,
            "evaluation_data": evaluation,
            "evaluation": evaluation,
            "score": first_number(row.percentage_score, row.total_score, row.score),
            "feedback": feedback,
            "grammar_score": first_number(row.grammar_vocabulary_score, row.grammar_score),
            "communication_score": to_number(row.communication_score) or 0,
        }


class ChatbotScoreReport(ReportService):
    """Report over evaluated chatbot conversations."""

    async def build(self, organization_code: str, request: ScoreReportRequest) -> list[dict[str, Any]]:
        """Build per-student chatbot cards.

        Returns:
            Cards for students with at least one session.
        """
        user_ids = await self.resolve_scope(organization_code, request.user_id)
        if not user_ids:
            return []

        result = await self.db.execute(
            select(LessonChatbotScore)
            .where(LessonChatbotScore.user_id.in_(user_ids))
            .order_by(LessonChatbotScore.created_at.desc())
        )
        rows = list(result.scalars().all())
        transcripts = await self._fetch_transcripts(rows)

        by_user: dict[str, list[LessonChatbotScore]] = defaultdict(list)
        for row in rows:
            by_user[row.user_id].append(row)

        active_ids = [user_id for user_id in user_ids if by_user.get(user_id)]
        profiles = await self.directory.get_profile_map(active_ids)

        cards = []
        for user_id in active_ids:
            user_rows = by_user[user_id]
            grammar = [to_number(r.grammar_score) for r in user_rows if r.grammar_score is not None]
            vocabulary = [
                to_number(r.vocabulary_score) for r in user_rows if r.vocabulary_score is not None
            ]
            cards.append(_session_card(
                user_id,
                profiles.get(user_id),
                [self._enrich(row, transcripts) for row in user_rows],
                {
                    "averageGrammarScore": rounded_mean(grammar),
                    "averageVocabularyScore": rounded_mean(vocabulary),
                },
            ))

        logger.info(
            "Built chatbot report: organization=%s, students=%d, sessions=%d",
            organization_code,
            len(cards),
            len(rows),
        )
        return cards

    async def list_scores(self, query: ChatbotScoresQuery) -> list[dict[str, Any]]:
        """List raw chatbot score rows, newest first.

        The lesson filter is matched against the task id.
        """
        statement = select(LessonChatbotScore)
        if query.user_id:
            statement = statement.where(LessonChatbotScore.user_id == query.user_id)
        if query.lesson_id:
            statement = statement.where(LessonChatbotScore.task_id == query.lesson_id)
        if query.start_date:
            statement = statement.where(LessonChatbotScore.created_at >= ensure_utc(query.start_date))
        if query.end_date:
            statement = statement.where(LessonChatbotScore.created_at <= ensure_utc(query.end_date))
        if query.min_score is not None:
            statement = statement.where(LessonChatbotScore.total_score >= query.min_score)
        if query.max_score is not None:
            statement = statement.where(LessonChatbotScore.total_score <= query.max_score)

        result = await self.db.execute(statement.order_by(LessonChatbotScore.created_at.desc()))
        return [row.to_dict() for row in result.scalars().all()]

    async def _fetch_transcripts(
        self,
        rows: list[LessonChatbotScore],
    ) -> dict[tuple[str, str], Transcript]:
        """Load the longest logged conversation per (user id, task id)."""
        pairs = {(row.user_id, row.task_id) for row in rows if row.task_id}
        if not pairs:
            return {}

        result = await self.db.execute(
            select(ConversationLog)
            .where(
                ConversationLog.user_id.in_(sorted({user_id for user_id, _ in pairs})),
                ConversationLog.task_id.in_(sorted({task_id for _, task_id in pairs})),
            )
            .order_by(ConversationLog.created_at.asc())
        )

        grouped: dict[tuple[str, str], dict[str | None, Transcript]] = defaultdict(
            lambda: defaultdict(list)
        )
        for message in result.scalars().all():
            key = (message.user_id, message.task_id)
            if key in pairs:
                grouped[key][message.conversation_id].append({
                    "role": message.role,
                    "content": message.message_content,
                })

        return {
            key: max(conversations.values(), key=len)
            for key, conversations in grouped.items()
        }

    @staticmethod
    def _enrich(
        row: LessonChatbotScore,
        transcripts: dict[tuple[str, str], Transcript],
    ) -> dict[str, Any]:
        evaluation = parse_json_payload(row.evaluation_data)
        if not isinstance(evaluation, dict):
            evaluation = None

        transcript = transcripts.get((row.user_id, row.task_id)) or _parse_transcript(
            row.conversation_history
        )
        if not transcript and evaluation and isinstance(evaluation.get("conversation"), list):
            transcript = evaluation["conversation"]

        return {
            **row.to_dict(),
            "conversation_history": transcript,
            "evaluation_data": evaluation,
            "evaluation": evaluation,
            "score": to_number(row.total_score) or 0,
            "feedback": (evaluation or {}).get("overall_feedback") or "",
        }
