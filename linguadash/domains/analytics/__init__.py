# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain: teacher dashboard reports over learner activity."""

from linguadash.domains.analytics.base import (
    ReportError,
    ReportService,
    StudentNotInOrganizationError,
)
from linguadash.domains.analytics.conversation_scores import (
    ChatbotScoreReport,
    SpeakingScoreReport,
)
from linguadash.domains.analytics.discourse import DiscourseReport
from linguadash.domains.analytics.grammar import GrammarErrorReport
from linguadash.domains.analytics.listening import ListeningScoreReport
from linguadash.domains.analytics.listening_dashboard import ListeningDashboardReport
from linguadash.domains.analytics.progress import ProgressOverviewReport
from linguadash.domains.analytics.pronunciation import PronunciationScoreReport
from linguadash.domains.analytics.reading import ReadingScoreReport
from linguadash.domains.analytics.students import StudentReport
from linguadash.domains.analytics.task_completions import TaskCompletionReport
from linguadash.domains.analytics.writing import WritingScoreReport

__all__ = [
    "ChatbotScoreReport",
    "DiscourseReport",
    "GrammarErrorReport",
    "ListeningDashboardReport",
    "ListeningScoreReport",
    "ProgressOverviewReport",
    "PronunciationScoreReport",
    "ReadingScoreReport",
    "ReportError",
    "ReportService",
    "SpeakingScoreReport",
    "StudentNotInOrganizationError",
    "StudentReport",
    "TaskCompletionReport",
    "WritingScoreReport",
]
