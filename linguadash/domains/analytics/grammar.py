# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grammar error analytics.

Produces cohort-wide trends and one card per student with errors. Error
types are folded into the German grammar categories used by the
dashboard (case system, verb system, word formation, sentence
structure).
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select

from linguadash.domains.analytics.base import ReportService, identity_fields
from linguadash.domains.analytics.metrics import (
    TREND_DECLINING,
    TREND_IMPROVING,
    TREND_STABLE,
    round_half_up,
)
from linguadash.infrastructure.database.models import GrammarError
from linguadash.utils.datetime import day_key, days_ago, ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"
OTHER_CATEGORY = "Other"

GERMAN_GRAMMAR_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Case System": (
        "ARTICLES",
        "NOUN_CASES",
        "PRONOUN_CASES",
        "ADJECTIVE_ENDINGS",
        "GENDER_AGREEMENT",
    ),
    "Verb System": ("VERB_CONJUGATION", "VERB_POSITION", "SEPARABLE_VERBS", "MODAL_VERBS"),
    "Word Formation": ("SPELLING", "CAPITALIZATION", "PLURAL_FORMS"),
    "Sentence Structure": ("WORD_ORDER", "SENTENCE_STRUCTURE", "PREPOSITIONS", "PUNCTUATION"),
}

CATEGORY_DIFFICULTY = {
    "Case System": 4,
    "Verb System": 3,
    "Sentence Structure": 2,
    "Word Formation": 1,
}

# (category, share of all errors above which it is flagged, recommendation, learning path step)
CATEGORY_GUIDANCE = (
    (
        "Case System",
        0.3,
        "Focus on German case system (der/die/das, accusative/dative)",
        "Practice article declensions with common prepositions",
    ),
    (
        "Verb System",
        0.25,
        "Work on verb conjugations and modal verbs",
        "Review present tense conjugations and separable verbs",
    ),
    (
        "Word Formation",
        0.4,
        "Focus on spelling and capitalization rules",
        "Practice German capitalization rules for nouns",
    ),
    (
        "Sentence Structure",
        0.3,
        "Study German word order patterns",
        "Practice main clause vs. subordinate clause word order",
    ),
)

SEVERITY_WEIGHTS = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}

TREND_WEEKS = 4
TOP_GENERAL_TYPES = 5
TOP_STUDENT_TYPES = 3
RECENT_ERRORS_DETAIL = 10
MIN_ERRORS_FOR_IMPROVEMENT = 4


def error_type(error: GrammarError) -> str:
    return error.error_type or error.grammar_category or UNKNOWN


def category_for(error_type_name: str) -> str:
    """Map an error type onto its German grammar category."""
    for category, types in GERMAN_GRAMMAR_CATEGORIES.items():
        if error_type_name in types:
            return category
    return OTHER_CATEGORY


def error_type_distribution(errors: list[GrammarError]) -> dict[str, int]:
    return dict(Counter(error_type(error) for error in errors))


def severity_distribution(errors: list[GrammarError]) -> dict[str, int]:
    distribution = {"LOW": 0, "MEDIUM": 0, "HIGH": 0, UNKNOWN: 0}
    for error in errors:
        severity = error.severity or UNKNOWN
        distribution[severity] = distribution.get(severity, 0) + 1
    return distribution


def source_type_distribution(errors: list[GrammarError]) -> dict[str, int]:
    return dict(Counter(error.source_type or UNKNOWN for error in errors))


def category_distribution(errors: list[GrammarError]) -> dict[str, int]:
    distribution = {category: 0 for category in GERMAN_GRAMMAR_CATEGORIES}
    distribution[OTHER_CATEGORY] = 0
    for error in errors:
        distribution[category_for(error_type(error))] += 1
    return distribution


def top_error_types(errors: list[GrammarError], limit: int) -> list[tuple[str, int]]:
    """Most frequent error types, ties kept in first-seen order."""
    counts = error_type_distribution(errors)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]


def weekly_trend(errors: list[GrammarError], now: datetime) -> list[dict[str, Any]]:
    """Error counts for each of the last four weeks, oldest first."""
    weeks = []
    for i in range(TREND_WEEKS):
        week_start = now - timedelta(days=7 * (i + 1))
        week_end = now - timedelta(days=7 * i)
        count = sum(1 for error in errors if week_start <= ensure_utc(error.created_at) < week_end)
        weeks.insert(0, {
            "week": f"Week {TREND_WEEKS - i}",
            "errors": count,
            "startDate": day_key(week_start),
        })
    return weeks


def problematic_areas(errors: list[GrammarError]) -> list[dict[str, Any]]:
    """Error types ranked by severity-weighted score."""
    areas: dict[str, dict[str, int]] = {}
    for error in errors:
        area = areas.setdefault(error_type(error), {"score": 0, "count": 0})
        area["score"] += SEVERITY_WEIGHTS.get(error.severity or "", 1)
        area["count"] += 1

    ranked = [
        {
            "type": kind,
            "score": area["score"],
            "count": area["count"],
            "averageImpact": round_half_up(area["score"] / area["count"], 2),
        }
        for kind, area in areas.items()
    ]
    ranked.sort(key=lambda area: area["score"], reverse=True)
    return ranked[:TOP_GENERAL_TYPES]


def grammar_insights(errors: list[GrammarError]) -> dict[str, Any]:
    """Derive German-specific guidance from the category distribution.

    The most challenging area is the category with the highest
    difficulty-weighted error count; earlier categories win ties.
    """
    distribution = category_distribution(errors)
    total = len(errors)

    insights: dict[str, Any] = {
        "mostChallengingArea": "",
        "difficultyScore": 0,
        "caseSystemPercentage": (
            round_half_up(distribution["Case System"] / total * 100) if total else 0
        ),
        "verbSystemPercentage": (
            round_half_up(distribution["Verb System"] / total * 100) if total else 0
        ),
        "recommendations": [],
        "learningPath": [],
    }

    best = 0
    for category, count in distribution.items():
        weight = CATEGORY_DIFFICULTY.get(category)
        if weight is None:
            continue
        weighted = count * weight
        if weighted > best:
            best = weighted
            insights["mostChallengingArea"] = category
            insights["difficultyScore"] = round_half_up(weighted / total * 10)

    for category, share, recommendation, step in CATEGORY_GUIDANCE:
        if distribution[category] > total * share:
            insights["recommendations"].append(recommendation)
            insights["learningPath"].append(step)
    return insights


def improvement_score(errors: list[GrammarError], now: datetime) -> int:
    """Compare the daily error rate of the last 14 days with the rate before.

    Positive values mean fewer errors recently. Errors must be newest
    first. The result is clamped to -100..100.
    """
    if len(errors) < MIN_ERRORS_FOR_IMPROVEMENT:
        return 0

    midpoint = now - timedelta(days=14)
    recent = [error for error in errors if ensure_utc(error.created_at) >= midpoint]
    older = [error for error in errors if ensure_utc(error.created_at) < midpoint]
    if not older:
        return 0

    oldest = ensure_utc(errors[-1].created_at)
    recent_rate = len(recent) / 14
    older_rate = len(older) / max(1, (midpoint - oldest) / timedelta(days=1))
    improvement = (older_rate - recent_rate) / older_rate * 100
    return round_half_up(max(-100, min(100, improvement)))


def error_trend(errors: list[GrammarError], now: datetime) -> str:
    """Last two weeks against the two weeks before."""
    two_weeks_ago = now - timedelta(days=14)
    four_weeks_ago = now - timedelta(days=28)
    current = sum(1 for e in errors if two_weeks_ago <= ensure_utc(e.created_at) < now)
    previous = sum(1 for e in errors if four_weeks_ago <= ensure_utc(e.created_at) < two_weeks_ago)
    if current < previous - 1:
        return TREND_IMPROVING
    if current > previous + 1:
        return TREND_DECLINING
    return TREND_STABLE


def average_errors_per_week(errors: list[GrammarError], now: datetime) -> float:
    if not errors:
        return 0
    oldest = ensure_utc(errors[-1].created_at)
    weeks = max(1, math.ceil((now - oldest) / timedelta(days=7)))
    return round_half_up(len(errors) / weeks, 1)


def _error_detail(error: GrammarError) -> dict[str, Any]:
    return {
        "id": error.id,
        "error_text": error.error_text,
        "correction": error.correction,
        "explanation": error.explanation,
        "error_type": error.error_type,
        "severity": error.severity,
        "source_type": error.source_type,
        "context": error.context,
        "created_at": format_iso(error.created_at),
        "task_id": error.task_id,
    }


class GrammarErrorReport(ReportService):
    """Grammar error trends and per-student cards."""

    async def build(self, organization_code: str) -> dict[str, Any]:
        """Build the grammar error analytics.

        Args:
            organization_code: Organization the report is scoped to.

        Returns:
            Dict with ``generalTrends``, ``studentCards`` and ``summary``.
        """
        user_ids = await self.resolve_scope(organization_code)
        errors = await self._fetch(user_ids) if user_ids else []
        now = utc_now()

        by_user: dict[str, list[GrammarError]] = {}
        for error in errors:
            by_user.setdefault(error.user_id, []).append(error)

        active_ids = [user_id for user_id in user_ids if by_user.get(user_id)]
        profiles = await self.directory.get_profile_map(active_ids)
        cards = [
            self._student_card(user_id, profiles.get(user_id), by_user[user_id], now)
            for user_id in active_ids
        ]

        logger.info(
            "Built grammar error report: organization=%s, errors=%d, students=%d",
            organization_code,
            len(errors),
            len(cards),
        )
        return {
            "generalTrends": self._general_trends(errors, now),
            "studentCards": cards,
            "summary": {
                "totalStudentsWithErrors": len(cards),
                "totalErrors": len(errors),
                "averageErrorsPerStudent": (
                    round_half_up(len(errors) / len(cards), 1) if cards else 0
                ),
            },
        }

    async def _fetch(self, user_ids: list[str]) -> list[GrammarError]:
        result = await self.db.execute(
            select(GrammarError)
            .where(GrammarError.user_id.in_(user_ids))
            .order_by(GrammarError.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _general_trends(errors: list[GrammarError], now: datetime) -> dict[str, Any]:
        last_week = days_ago(7, now)
        last_month = days_ago(30, now)
        total = len(errors)
        return {
            "totalErrors": total,
            "recentErrors": sum(1 for e in errors if ensure_utc(e.created_at) >= last_week),
            "monthlyErrors": sum(1 for e in errors if ensure_utc(e.created_at) >= last_month),
            "errorTypeDistribution": error_type_distribution(errors),
            "grammarCategoryDistribution": category_distribution(errors),
            "severityDistribution": severity_distribution(errors),
            "sourceTypeDistribution": source_type_distribution(errors),
            "topErrorTypes": [
                {"type": kind, "count": count, "percentage": round_half_up(count / total * 100)}
                for kind, count in top_error_types(errors, TOP_GENERAL_TYPES)
            ],
            "weeklyTrend": weekly_trend(errors, now),
            "problematicAreas": problematic_areas(errors),
            "germanGrammarInsights": grammar_insights(errors),
        }

    @staticmethod
    def _student_card(
        user_id: str,
        profile: Any,
        errors: list[GrammarError],
        now: datetime,
    ) -> dict[str, Any]:
        last_week = days_ago(7, now)
        last_month = days_ago(30, now)
        return {
            **identity_fields(user_id, profile),
            "totalErrors": len(errors),
            "recentErrors": sum(1 for e in errors if ensure_utc(e.created_at) >= last_week),
            "monthlyErrors": sum(1 for e in errors if ensure_utc(e.created_at) >= last_month),
            "trend": error_trend(errors, now),
            "topErrorTypes": [
                {"type": kind, "count": count}
                for kind, count in top_error_types(errors, TOP_STUDENT_TYPES)
            ],
            "severityDistribution": severity_distribution(errors),
            "errorTypeDistribution": error_type_distribution(errors),
            "averageErrorsPerWeek": average_errors_per_week(errors, now),
            "mostRecentError": format_iso(errors[0].created_at) if errors else None,
            "recentErrorsDetail": [_error_detail(error) for error in errors[:RECENT_ERRORS_DETAIL]],
            "improvementScore": improvement_score(errors, now),
            "grammarCategoryDistribution": category_distribution(errors),
            "grammarInsights": grammar_insights(errors),
        }
