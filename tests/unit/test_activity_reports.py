# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the grammar, task completion and discourse reports."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from linguadash.domains.analytics import GrammarErrorReport
from linguadash.domains.analytics.discourse import (
    Message,
    conversation_duration,
    engagement_score,
    group_conversations,
    length_distribution,
    turn_taking_pattern,
    word_count,
)
from linguadash.domains.analytics.grammar import (
    category_for,
    error_trend,
    grammar_insights,
    improvement_score,
    problematic_areas,
    severity_distribution,
    weekly_trend,
)
from linguadash.domains.analytics.task_completions import (
    achievements,
    activity_calendar,
    daily_activity,
    efficiency_metrics,
    sunday_weekday,
    task_difficulty,
    time_patterns,
)

NOW = datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)


def grammar_error(error_type="ARTICLES", severity="HIGH", days_ago=1, user_id="user_a"):
    return SimpleNamespace(
        id=f"err-{error_type}-{days_ago}",
        user_id=user_id,
        error_type=error_type,
        grammar_category=None,
        severity=severity,
        source_type="speaking",
        error_text="der Frau",
        correction="die Frau",
        explanation="Frau is feminine",
        context=None,
        task_id="task-1",
        created_at=NOW - timedelta(days=days_ago),
    )


def completion(task_id="task-1", attempts=1, completed_at=NOW, user_id="user_a", index=0):
    return SimpleNamespace(
        id=f"{user_id}-{task_id}-{index}",
        user_id=user_id,
        task_id=task_id,
        attempts=attempts,
        completed_at=completed_at,
        created_at=completed_at - timedelta(minutes=5),
    )


def message(role, content="Ich gehe heute ins Kino", minutes=0, user_id="user_a", key="conv-1"):
    return Message(
        user_id=user_id,
        conversation_key=key,
        role=role,
        content=content,
        created_at=NOW + timedelta(minutes=minutes),
        source="speaking",
    )


class TestGrammarHelpers:
    """Tests for grammar error aggregation."""

    def test_category_mapping(self):
        """Test error types fold into German grammar categories."""
        assert category_for("ARTICLES") == "Case System"
        assert category_for("SEPARABLE_VERBS") == "Verb System"
        assert category_for("CAPITALIZATION") == "Word Formation"
        assert category_for("WORD_ORDER") == "Sentence Structure"
        assert category_for("IDIOMS") == "Other"

    def test_severity_distribution_counts_unknown(self):
        """Test missing severities are counted as unknown."""
        errors = [grammar_error(severity="LOW"), grammar_error(severity=None)]

        assert severity_distribution(errors) == {"LOW": 1, "MEDIUM": 0, "HIGH": 0, "UNKNOWN": 1}

    def test_weekly_trend_oldest_first(self):
        """Test four weekly buckets ending now."""
        errors = [grammar_error(days_ago=d) for d in (1, 2, 9, 25)]

        weeks = weekly_trend(errors, NOW)

        assert [week["week"] for week in weeks] == ["Week 1", "Week 2", "Week 3", "Week 4"]
        assert [week["errors"] for week in weeks] == [1, 0, 1, 2]

    def test_problematic_areas_weighted_by_severity(self):
        """Test severity weights rank error types."""
        errors = [
            grammar_error("SPELLING", "LOW"),
            grammar_error("SPELLING", "LOW"),
            grammar_error("ARTICLES", "HIGH"),
        ]

        areas = problematic_areas(errors)

        assert areas[0] == {"type": "ARTICLES", "score": 3, "count": 1, "averageImpact": 3.0}
        assert areas[1]["type"] == "SPELLING"

    def test_grammar_insights(self):
        """Test the most challenging area and recommendations."""
        errors = [grammar_error("ARTICLES")] * 3 + [grammar_error("SPELLING")]

        insights = grammar_insights(errors)

        assert insights["mostChallengingArea"] == "Case System"
        assert insights["caseSystemPercentage"] == 75
        assert insights["difficultyScore"] == 30
        assert insights["recommendations"] == [
            "Focus on German case system (der/die/das, accusative/dative)"
        ]

    def test_grammar_insights_without_errors(self):
        """Test empty input gives neutral insights."""
        insights = grammar_insights([])

        assert insights["mostChallengingArea"] == ""
        assert insights["recommendations"] == []

    def test_error_trend(self):
        """Test fewer recent errors read as improving."""
        errors = [grammar_error(days_ago=d) for d in (3, 16, 17, 18, 20)]

        assert error_trend(errors, NOW) == "improving"
        assert error_trend([grammar_error(days_ago=1)], NOW) == "stable"

    def test_improvement_score_requires_history(self):
        """Test short histories score zero."""
        assert improvement_score([grammar_error(days_ago=d) for d in (1, 2, 3)], NOW) == 0

    def test_improvement_score_is_clamped(self):
        """Test many recent errors cannot go below -100."""
        errors = [grammar_error(days_ago=1)] * 40 + [grammar_error(days_ago=60)]

        assert improvement_score(errors, NOW) == -100

    @pytest.mark.asyncio
    async def test_report_only_cards_students_with_errors(self, mock_db, mock_directory):
        """Test members without errors get no card."""
        members = MagicMock()
        members.scalars.return_value.all.return_value = ["user_a", "user_b"]
        errors = MagicMock()
        errors.scalars.return_value.all.return_value = [
            grammar_error(days_ago=1),
            grammar_error("SPELLING", "LOW", days_ago=3),
        ]
        mock_db.execute.side_effect = [members, errors]

        report = await GrammarErrorReport(mock_db, mock_directory).build("ANB")

        assert [card["userId"] for card in report["studentCards"]] == ["user_a"]
        assert report["summary"] == {
            "totalStudentsWithErrors": 1,
            "totalErrors": 2,
            "averageErrorsPerStudent": 2.0,
        }
        assert report["generalTrends"]["totalErrors"] == 2


class TestTaskCompletionHelpers:
    """Tests for task completion aggregation."""

    def test_sunday_weekday(self):
        """Test Sunday is day zero."""
        assert sunday_weekday(datetime(2025, 3, 9, tzinfo=timezone.utc)) == 0
        assert sunday_weekday(datetime(2025, 3, 15, tzinfo=timezone.utc)) == 6

    def test_daily_activity_newest_first(self):
        """Test completions and distinct users per day."""
        completions = [
            completion(completed_at=NOW, index=0),
            completion(completed_at=NOW, user_id="user_b", index=1),
            completion(completed_at=NOW - timedelta(days=1), index=2),
        ]

        assert daily_activity(completions) == [
            {"date": "2025-03-12", "completions": 2, "users": 2},
            {"date": "2025-03-11", "completions": 1, "users": 1},
        ]

    def test_task_difficulty_requires_three_completions(self):
        """Test tasks with few completions are not ranked."""
        completions = (
            [completion("hard", attempts=5, index=i) for i in range(3)]
            + [completion("easy", attempts=1, index=i) for i in range(3)]
            + [completion("rare", attempts=9)]
        )

        ranked = task_difficulty(completions)

        assert [task["taskId"] for task in ranked] == ["hard", "easy"]
        assert ranked[0]["averageAttempts"] == 5

    def test_activity_calendar_covers_ninety_days(self):
        """Test the calendar is dense and oldest first."""
        calendar = activity_calendar([completion(completed_at=NOW)], NOW)

        assert len(calendar) == 90
        assert calendar[-1] == {"date": "2025-03-12", "count": 1, "level": 1}
        assert calendar[0]["count"] == 0

    def test_achievements(self):
        """Test achievement counters."""
        completions = [
            completion(attempts=1, completed_at=datetime(2025, 3, 15, 7, tzinfo=timezone.utc)),
            completion(attempts=6, completed_at=datetime(2025, 3, 12, 23, tzinfo=timezone.utc)),
        ]

        result = achievements(completions)

        assert result["speedRunner"] == 1
        assert result["persistent"] == 1
        assert result["earlyBird"] == 1
        assert result["nightOwl"] == 1
        assert result["weekendWarrior"] == 1
        assert result["taskMaster"] is False

    def test_efficiency_metrics(self):
        """Test success rate and improvement over ten completions."""
        newest = [completion(attempts=1, index=i) for i in range(10)]
        oldest = [completion(attempts=4, index=10 + i) for i in range(10)]

        metrics = efficiency_metrics(newest + oldest)

        assert metrics["successRate"] == 50
        assert metrics["averageAttempts"] == 2.5
        assert metrics["improvement"] == 75

    def test_time_patterns(self):
        """Test peak hour and day."""
        completions = [
            completion(completed_at=datetime(2025, 3, 10, 18, tzinfo=timezone.utc)),
            completion(completed_at=datetime(2025, 3, 17, 18, tzinfo=timezone.utc)),
            completion(completed_at=datetime(2025, 3, 12, 9, tzinfo=timezone.utc)),
        ]

        patterns = time_patterns(completions)

        assert patterns["peakHour"] == 18
        assert patterns["peakDay"] == "Monday"
        assert sum(patterns["weeklyDistribution"]) == 3


class TestDiscourseHelpers:
    """Tests for conversation analysis."""

    def test_word_count(self):
        """Test whitespace runs separate words."""
        assert word_count("  Ich   lerne\nDeutsch ") == 3
        assert word_count("") == 0

    def test_turn_taking(self):
        """Test alternation rates map to patterns."""
        alternating = [message("user" if i % 2 else "assistant", minutes=i) for i in range(6)]
        monologue = [message("user", minutes=i) for i in range(6)]

        assert turn_taking_pattern(alternating) == "highly-interactive"
        assert turn_taking_pattern(monologue) == "minimal"
        assert turn_taking_pattern(alternating[:1]) == "minimal"

    def test_conversation_duration(self):
        """Test minutes between first and last message."""
        conversation = [message("user", minutes=0), message("assistant", minutes=12)]

        assert conversation_duration(conversation) == 12

    def test_group_conversations_orders_messages(self):
        """Test messages are grouped per user and conversation."""
        messages = [
            message("user", minutes=5, key="a"),
            message("assistant", minutes=1, key="a"),
            message("user", minutes=2, key="b"),
        ]

        groups = group_conversations(messages)

        assert len(groups) == 2
        assert [m.created_at.minute for m in groups[0]] == [31, 35]

    def test_length_distribution(self):
        """Test word count buckets."""
        assert length_distribution([1, 5, 6, 15, 16, 30, 31]) == {
            "short (1-5)": 2,
            "medium (6-15)": 2,
            "long (16-30)": 2,
            "extended (30+)": 1,
        }

    def test_engagement_score(self):
        """Test participation and length blend into a percentage."""
        conversations = [
            {"userMessageCount": 5, "messageCount": 10, "averageMessageLength": 10},
        ]

        assert engagement_score(conversations) == 65
        assert engagement_score([]) == 0
