# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the learning platform database.

Models are grouped by concern:
- organization: Organization membership
- scores: Per-skill lesson scores
- conversation: Speaking and chatbot message logs
- activity: Grammar errors, task completions, vocabulary, lesson progress
- enrollment: Student enrollment lifecycle
- classes: Teacher classes
"""

from linguadash.infrastructure.database.models.activity import (
    GrammarError,
    TaskCompletion,
    UserLessonProgress,
    UserVocabulary,
)
from linguadash.infrastructure.database.models.base import Base, CreatedAtMixin, utc_now
from linguadash.infrastructure.database.models.classes import TeacherClass, TeacherStudent
from linguadash.infrastructure.database.models.conversation import (
    SPEAKING_LOG_SEPARATOR,
    ConversationLog,
    SpeakingLog,
)
from linguadash.infrastructure.database.models.enrollment import StudentEnrollment
from linguadash.infrastructure.database.models.organization import UserOrganization
from linguadash.infrastructure.database.models.scores import (
    LessonChatbotScore,
    LessonGrammarScore,
    LessonListeningScore,
    LessonReadingScore,
    LessonSpeakingScore,
    LessonWritingScore,
    ListeningResult,
    PronunciationScore,
    ReadingResult,
    SpeakingScore,
)

__all__ = [
    "Base",
    "CreatedAtMixin",
    "utc_now",
    "UserOrganization",
    "LessonSpeakingScore",
    "LessonChatbotScore",
    "ReadingResult",
    "ListeningResult",
    "LessonWritingScore",
    "PronunciationScore",
    "LessonListeningScore",
    "LessonReadingScore",
    "LessonGrammarScore",
    "SpeakingScore",
    "SPEAKING_LOG_SEPARATOR",
    "SpeakingLog",
    "ConversationLog",
    "GrammarError",
    "TaskCompletion",
    "UserVocabulary",
    "UserLessonProgress",
    "StudentEnrollment",
    "TeacherClass",
    "TeacherStudent",
]
