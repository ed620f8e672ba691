# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Discourse analysis across speaking and chatbot conversations.

Speaking messages are keyed by task, chatbot messages by conversation.
Both are normalized into ``Message`` records before grouping so the
metrics treat the two sources alike.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, identity_fields
from linguadash.domains.analytics.metrics import mean, round_half_up
from linguadash.infrastructure.database.models import ConversationLog, SpeakingLog
from linguadash.utils.datetime import day_key, days_ago, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

SOURCE_SPEAKING = "speaking"
SOURCE_CHATBOT = "chatbot"

SPEAKING_WINDOW_DAYS = 30
SPEAKING_MESSAGE_LIMIT = 1000
DAILY_ACTIVITY_DAYS = 14
DETAILED_CONVERSATIONS = 10

TURN_TAKING_PATTERNS = ("highly-interactive", "interactive", "moderate", "minimal")

_WHITESPACE = re.compile(r"\s+")


@dataclass
class Message:
    """A conversation message from either source."""

    user_id: str
    conversation_key: str | None
    role: str | None
    content: str
    created_at: datetime
    source: str


def word_count(content: str) -> int:
    return len([word for word in _WHITESPACE.split(content) if word])


def average_message_length(messages: list[Message]) -> int:
    """Rounded mean word count per message."""
    if not messages:
        return 0
    return round_half_up(sum(word_count(m.content) for m in messages) / len(messages))


def turn_taking_pattern(conversation: list[Message]) -> str:
    """Classify how often the speaker alternates between messages.

    Args:
        conversation: Messages ordered by creation time.
    """
    if len(conversation) < 2:
        return "minimal"

    alternations = sum(
        1 for previous, current in zip(conversation, conversation[1:])
        if previous.role != current.role
    )
    rate = alternations / (len(conversation) - 1)
    if rate > 0.8:
        return "highly-interactive"
    if rate > 0.5:
        return "interactive"
    if rate > 0.2:
        return "moderate"
    return "minimal"


def conversation_duration(conversation: list[Message]) -> int:
    """Minutes between the first and last message."""
    if len(conversation) < 2:
        return 0
    elapsed = conversation[-1].created_at - conversation[0].created_at
    return round_half_up(elapsed.total_seconds() / 60)


def length_distribution(lengths: list[int]) -> dict[str, int]:
    distribution = {"short (1-5)": 0, "medium (6-15)": 0, "long (16-30)": 0, "extended (30+)": 0}
    for length in lengths:
        if length <= 5:
            distribution["short (1-5)"] += 1
        elif length <= 15:
            distribution["medium (6-15)"] += 1
        elif length <= 30:
            distribution["long (16-30)"] += 1
        else:
            distribution["extended (30+)"] += 1
    return distribution


def group_conversations(
    messages: list[Message],
    per_user: bool = True,
) -> list[list[Message]]:
    """Group messages into conversations, each ordered oldest first."""
    groups: dict[Any, list[Message]] = {}
    for message in messages:
        key = (message.user_id, message.conversation_key) if per_user else message.conversation_key
        groups.setdefault(key, []).append(message)
    return [sorted(group, key=lambda m: m.created_at) for group in groups.values()]


def engagement_score(conversations: list[dict[str, Any]]) -> int:
    """Blend participation rate and message length into a 0-100 score."""
    if not conversations:
        return 0
    avg_user = mean(c["userMessageCount"] for c in conversations)
    avg_total = mean(c["messageCount"] for c in conversations)
    avg_length = mean(c["averageMessageLength"] for c in conversations)
    participation = avg_user / max(1, avg_total)
    length_score = min(avg_length / 10, 1)
    return round_half_up((participation * 0.7 + length_score * 0.3) * 100)


def _role_count(messages: list[Message], role: str) -> int:
    return sum(1 for m in messages if m.role == role)


def _source_breakdown(messages: list[Message]) -> dict[str, int]:
    return {
        SOURCE_SPEAKING: sum(1 for m in messages if m.source == SOURCE_SPEAKING),
        SOURCE_CHATBOT: sum(1 for m in messages if m.source == SOURCE_CHATBOT),
    }


class DiscourseReport(ReportService):
    """Conversation behaviour of an organization's students."""

    async def build(self, organization_code: str) -> dict[str, Any]:
        """Build the discourse analysis.

        Returns:
            Dict with ``generalTrends``, ``studentAnalysis`` and ``summary``.
        """
        user_ids = await self.resolve_scope(organization_code)
        messages = await self._fetch_messages(user_ids) if user_ids else []
        now = utc_now()

        by_user: dict[str, list[Message]] = {}
        for message in messages:
            by_user.setdefault(message.user_id, []).append(message)

        active_ids = [user_id for user_id in user_ids if by_user.get(user_id)]
        profiles = await self.directory.get_profile_map(active_ids)
        students = [
            self._student_analysis(user_id, profiles.get(user_id), by_user[user_id], now)
            for user_id in active_ids
        ]

        trends = self._general_trends(messages, now)
        logger.info(
            "Built discourse report: organization=%s, messages=%d, students=%d",
            organization_code,
            len(messages),
            len(students),
        )
        return {
            "generalTrends": trends,
            "studentAnalysis": students,
            "summary": {
                "totalStudentsWithActivity": len(students),
                "totalConversations": trends["totalConversations"],
                "totalMessages": trends["totalMessages"],
                "averageMessagesPerStudent": (
                    round_half_up(len(messages) / len(students)) if students else 0
                ),
            },
        }

    async def _fetch_messages(self, user_ids: list[str]) -> list[Message]:
        """Load and normalize messages of both sources, newest first.

        Speaking messages come from a recent window only. Their user id
        may carry a task suffix, so membership is checked on the base id.
        """
        members = set(user_ids)
        speaking_query = (
            select(SpeakingLog)
            .where(SpeakingLog.created_at >= days_ago(SPEAKING_WINDOW_DAYS))
            .order_by(SpeakingLog.created_at.desc())
            .limit(SPEAKING_MESSAGE_LIMIT)
        )
        chatbot_query = (
            select(ConversationLog)
            .where(ConversationLog.user_id.in_(user_ids))
            .order_by(ConversationLog.created_at.desc())
        )
        speaking_result = await self.db.execute(speaking_query)
        chatbot_result = await self.db.execute(chatbot_query)

        messages = [
            Message(
                user_id=row.base_user_id,
                conversation_key=row.task_id,
                role=row.role,
                content=row.content or "",
                created_at=ensure_utc(row.created_at),
                source=SOURCE_SPEAKING,
            )
            for row in speaking_result.scalars().all()
            if row.base_user_id in members
        ]
        messages.extend(
            Message(
                user_id=row.user_id,
                conversation_key=row.conversation_id or row.task_id,
                role=row.role,
                content=row.message_content or "",
                created_at=ensure_utc(row.created_at),
                source=SOURCE_CHATBOT,
            )
            for row in chatbot_result.scalars().all()
        )
        return messages

    @staticmethod
    def _general_trends(messages: list[Message], now: datetime) -> dict[str, Any]:
        conversations = group_conversations(messages)
        patterns = Counter(turn_taking_pattern(c) for c in conversations)
        daily = Counter(day_key(m.created_at) for m in messages)

        return {
            "totalMessages": len(messages),
            "totalConversations": len(conversations),
            "recentMessages": sum(1 for m in messages if m.created_at >= now - timedelta(days=7)),
            "monthlyMessages": sum(1 for m in messages if m.created_at >= now - timedelta(days=30)),
            "averageConversationLength": round_half_up(mean(len(c) for c in conversations)),
            "averageMessageLength": average_message_length(messages),
            "sourceDistribution": _source_breakdown(messages),
            "messagesByRole": {
                "user": _role_count(messages, "user"),
                "assistant": _role_count(messages, "assistant"),
            },
            "conversationLengthDistribution": length_distribution([len(c) for c in conversations]),
            "dailyActivity": [
                {"date": date, "count": daily[date]}
                for date in sorted(daily, reverse=True)[:DAILY_ACTIVITY_DAYS]
            ],
            "turnTakingAnalysis": {pattern: patterns[pattern] for pattern in TURN_TAKING_PATTERNS},
        }

    @staticmethod
    def _student_analysis(
        user_id: str,
        profile: Any,
        messages: list[Message],
        now: datetime,
    ) -> dict[str, Any]:
        metrics = []
        for conversation in group_conversations(messages, per_user=False):
            user_messages = [m for m in conversation if m.role == "user"]
            metrics.append({
                "messageCount": len(conversation),
                "userMessageCount": len(user_messages),
                "assistantMessageCount": _role_count(conversation, "assistant"),
                "averageMessageLength": average_message_length(user_messages),
                "turnTaking": turn_taking_pattern(conversation),
                "durationMinutes": conversation_duration(conversation),
                "createdAt": format_iso(conversation[0].created_at),
                "source": conversation[0].source,
            })

        user_messages = [m for m in messages if m.role == "user"]
        return {
            **identity_fields(user_id, profile),
            "totalMessages": len(messages),
            "totalUserMessages": len(user_messages),
            "totalConversations": len(metrics),
            "recentMessages": sum(1 for m in messages if m.created_at >= now - timedelta(days=7)),
            "monthlyMessages": sum(1 for m in messages if m.created_at >= now - timedelta(days=30)),
            "averageMessageLength": average_message_length(user_messages),
            "averageConversationLength": round_half_up(mean(m["messageCount"] for m in metrics)),
            "conversationFrequency": len({m["createdAt"][:10] for m in metrics}),
            "engagementScore": engagement_score(metrics),
            "conversationMetrics": metrics,
            "sourceBreakdown": _source_breakdown(messages),
            "mostRecentActivity": format_iso(max(m.created_at for m in messages)),
            "detailedConversations": [
                {
                    **conversation,
                    "id": conversation["createdAt"],
                    "messageLength": conversation["averageMessageLength"],
                    "engagement": (
                        conversation["userMessageCount"]
                        / max(1, conversation["assistantMessageCount"])
                    ),
                }
                for conversation in metrics[:DETAILED_CONVERSATIONS]
            ],
        }
