# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the speaking, chatbot, writing and reading score reports."""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from linguadash.domains.analytics import (
    ChatbotScoreReport,
    ReadingScoreReport,
    SpeakingScoreReport,
    WritingScoreReport,
)
from linguadash.domains.analytics.base import NUMERIC_TEXT_PATTERN, numeric
from linguadash.infrastructure.database.models import (
    ConversationLog,
    LessonChatbotScore,
    LessonSpeakingScore,
    LessonWritingScore,
    ReadingResult,
    SpeakingLog,
)
from linguadash.models.reports import ChatbotScoresQuery, ScoreFilters, ScoreReportRequest

NOW = datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)


def rows_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def organizations_result(pairs):
    result = MagicMock()
    result.all.return_value = pairs
    return result


def compiled(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def with_created_at(row, minutes_ago=0):
    row.created_at = NOW - timedelta(minutes=minutes_ago)
    return row


def speaking_log(log_id, user_id, role, content, index, task_id=None):
    return with_created_at(SpeakingLog(
        id=log_id,
        user_id=user_id,
        task_id=task_id,
        role=role,
        content=content,
        message_index=index,
    ))


def conversation_log(log_id, conversation_id, role, content, task_id="chat-1", minutes_ago=0):
    return with_created_at(
        ConversationLog(
            id=log_id,
            conversation_id=conversation_id,
            user_id="user_a",
            task_id=task_id,
            role=role,
            message_content=content,
        ),
        minutes_ago,
    )


class TestNumericGuard:
    """Tests for the guarded text-to-float cast."""

    @pytest.mark.parametrize("value", ["82", "82.5", " 90 ", "-1"])
    def test_pattern_accepts_numbers(self, value):
        """Test numeric text is cast."""
        assert re.match(NUMERIC_TEXT_PATTERN, value)

    @pytest.mark.parametrize("value", ["", "n/a", "82%", "1e3", "."])
    def test_pattern_rejects_other_text(self, value):
        """Test non-numeric text is not cast."""
        assert re.match(NUMERIC_TEXT_PATTERN, value) is None

    def test_cast_only_runs_for_numeric_text(self):
        """Test the cast sits behind a regex match."""
        sql = compiled(numeric(ReadingResult.percentage) >= 50)

        assert sql.startswith("CASE WHEN")
        assert "reading_results.percentage ~" in sql
        assert "THEN CAST(reading_results.percentage AS FLOAT)" in sql

    @pytest.mark.asyncio
    async def test_reading_report_with_text_score(self, mock_db, mock_directory):
        """Test a score that is not a number counts as zero."""
        rows = [
            with_created_at(ReadingResult(id="r1", user_id="user_a", title="Am Bahnhof", percentage="n/a")),
            with_created_at(ReadingResult(id="r2", user_id="user_a", title="Im Café", percentage="80"), 5),
        ]
        mock_db.execute.side_effect = [rows_result(rows), organizations_result([])]
        request = ScoreReportRequest(user_id="user_a", filters=ScoreFilters(min_score=0))

        report = await ReadingScoreReport(mock_db, mock_directory).build("ANB", request)

        assert [r["scorePercentage"] for r in report["results"]] == [0, 80]
        assert report["stats"]["averageScore"] == 40
        statement = mock_db.execute.await_args_list[0].args[0]
        assert "reading_results.percentage ~" in compiled(statement)


class TestSpeakingScoreReport:
    """Tests for SpeakingScoreReport.build."""

    @pytest.mark.asyncio
    async def test_transcripts_from_composite_and_plain_logs(self, mock_db, mock_directory):
        """Test log rows under both id forms build one transcript."""
        rows = [
            with_created_at(LessonSpeakingScore(
                id="s1",
                user_id="user_a",
                task_id="task-1",
                course_name="telc A1",
                percentage_score=0,
                total_score=82,
                score=70,
                grammar_score=60,
                communication_score=75,
                conversation_history='[{"role": "user", "content": "stored"}]',
                evaluation_data='{"overall_feedback": "Gut gemacht"}',
            )),
            with_created_at(LessonSpeakingScore(
                id="s2",
                user_id="user_a",
                task_id=None,
                percentage_score=90,
                conversation_history='[{"role": "user", "content": "Ich heiße Anna"}]',
                evaluation_data="not json",
            ), 60),
        ]
        logs = [
            speaking_log("l1", "user_a:::task-1", "assistant", "Hallo! Wie geht's?", 0),
            speaking_log("l2", "user_a", "user", "Gut, danke", 1, task_id="task-1"),
            speaking_log("l3", "user_b:::task-1", "user", "Andere Person", 0),
        ]
        mock_db.execute.side_effect = [
            rows_result(["user_a", "user_b"]),
            rows_result(rows),
            rows_result(logs),
        ]

        cards = await SpeakingScoreReport(mock_db, mock_directory).build("ANB", ScoreReportRequest())

        assert [card["userId"] for card in cards] == ["user_a"]
        card = cards[0]
        assert card["totalSessions"] == 2
        assert card["averageScore"] == 86
        assert card["latestScore"] == 82
        assert card["averageGrammarScore"] == 30
        assert card["averageCommunicationScore"] == 38
        assert card["uniqueTasks"] == 1
        first, second = card["scores"]
        assert first["conversation_history"] == [
            {"role": "assistant", "content": "Hallo! Wie geht's?"},
            {"role": "user", "content": "Gut, danke"},
        ]
        assert first["feedback"] == "Gut gemacht"
        assert second["conversation_history"] == [{"role": "user", "content": "Ich heiße Anna"}]
        assert second["evaluation"] is None

    @pytest.mark.asyncio
    async def test_rows_without_task_skip_log_lookup(self, mock_db, mock_directory):
        """Test rows without a task id use the stored transcript only."""
        rows = [
            with_created_at(LessonSpeakingScore(
                id="s1",
                user_id="user_a",
                task_id=None,
                score=55,
                conversation_history='[{"role": "user", "content": "Guten Morgen"}]',
            )),
        ]
        mock_db.execute.side_effect = [rows_result(rows)]

        cards = await SpeakingScoreReport(mock_db, mock_directory).build(
            "ANB", ScoreReportRequest(user_id="user_a")
        )

        assert mock_db.execute.await_count == 1
        assert cards[0]["scores"][0]["conversation_history"] == [
            {"role": "user", "content": "Guten Morgen"}
        ]
        assert cards[0]["latestScore"] == 55

    @pytest.mark.asyncio
    async def test_score_filter_uses_first_present_score(self, mock_db, mock_directory):
        """Test score filters skip zero percentage and total scores."""
        mock_db.execute.side_effect = [rows_result([])]
        request = ScoreReportRequest(user_id="user_a", filters=ScoreFilters(min_score=60))

        assert await SpeakingScoreReport(mock_db, mock_directory).build("ANB", request) == []

        sql = compiled(mock_db.execute.await_args_list[0].args[0])
        assert "coalesce(nullif(lesson_speaking_scores.percentage_score" in sql
        assert "nullif(lesson_speaking_scores.total_score" in sql


class TestChatbotScoreReport:
    """Tests for ChatbotScoreReport."""

    @pytest.mark.asyncio
    async def test_longest_conversation_wins(self, mock_db, mock_directory):
        """Test the longest logged conversation becomes the transcript."""
        rows = [
            with_created_at(LessonChatbotScore(
                id="c1",
                user_id="user_a",
                task_id="chat-1",
                total_score=70,
                grammar_score=60,
                evaluation_data='{"overall_feedback": "Sehr gut"}',
            )),
            with_created_at(LessonChatbotScore(
                id="c2",
                user_id="user_a",
                task_id=None,
                total_score=50,
                vocabulary_score=80,
                evaluation_data='{"conversation": [{"role": "user", "content": "Hallo"}]}',
            ), 30),
        ]
        logs = [
            conversation_log("m1", "conv-short", "user", "Hallo", minutes_ago=9),
            conversation_log("m2", "conv-long", "user", "Ich möchte üben", minutes_ago=8),
            conversation_log("m3", "conv-long", "assistant", "Gern!", minutes_ago=7),
            conversation_log("m4", "conv-short", "assistant", "Hallo!", minutes_ago=6),
            conversation_log("m5", "conv-long", "user", "Danke", minutes_ago=5),
            conversation_log("m6", "conv-other", "user", "Anderes Thema", task_id="chat-9"),
        ]
        mock_db.execute.side_effect = [
            rows_result(["user_a"]),
            rows_result(rows),
            rows_result(logs),
        ]

        cards = await ChatbotScoreReport(mock_db, mock_directory).build("ANB", ScoreReportRequest())

        card = cards[0]
        assert card["averageScore"] == 60
        assert card["averageGrammarScore"] == 60
        assert card["averageVocabularyScore"] == 80
        first, second = card["scores"]
        assert [m["content"] for m in first["conversation_history"]] == [
            "Ich möchte üben",
            "Gern!",
            "Danke",
        ]
        assert first["feedback"] == "Sehr gut"
        assert second["conversation_history"] == [{"role": "user", "content": "Hallo"}]

    @pytest.mark.asyncio
    async def test_empty_organization(self, mock_db, mock_directory):
        """Test no members yields no cards."""
        mock_db.execute.side_effect = [rows_result([])]

        assert await ChatbotScoreReport(mock_db, mock_directory).build("EMPTY", ScoreReportRequest()) == []

    @pytest.mark.asyncio
    async def test_list_scores(self, mock_db, mock_directory):
        """Test raw listing filters on task id and total score."""
        row = with_created_at(LessonChatbotScore(id="c1", user_id="user_a", task_id="chat-1", total_score=70))
        mock_db.execute.return_value = rows_result([row])
        query = ChatbotScoresQuery(user_id="user_a", lesson_id="chat-1", min_score=50)

        scores = await ChatbotScoreReport(mock_db, mock_directory).list_scores(query)

        assert scores[0]["total_score"] == 70
        assert scores[0]["created_at"] == NOW.isoformat()
        sql = compiled(mock_db.execute.await_args.args[0])
        assert "lesson_chatbot_scores.task_id =" in sql
        assert "lesson_chatbot_scores.total_score >=" in sql


class TestWritingScoreReport:
    """Tests for WritingScoreReport.build."""

    @pytest.mark.asyncio
    async def test_stats_and_users(self, mock_db, mock_directory):
        """Test stats, task types and user enrichment."""
        rows = [
            with_created_at(LessonWritingScore(id="w1", user_id="user_a", score=80, task_type="essay")),
            with_created_at(LessonWritingScore(id="w2", user_id="user_b", score=None, task_type=None), 10),
        ]
        mock_db.execute.side_effect = [
            rows_result(["user_a", "user_b"]),
            rows_result(rows),
            organizations_result([("user_a", "Anbieter")]),
        ]

        report = await WritingScoreReport(mock_db, mock_directory).build("ANB", ScoreReportRequest())

        stats = report["stats"]
        assert stats["totalEntries"] == 2
        assert stats["averageScore"] == 40
        assert stats["uniqueLearners"] == 2
        assert stats["taskTypes"] == {"essay": 1, "unknown": 1}
        assert report["scores"][0]["userName"] == "Anna user_a"
        assert report["scores"][0]["organization"] == "Anbieter"
        assert [user["organization"] for user in report["users"]] == ["Anbieter", "Unknown"]
