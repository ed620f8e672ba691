# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    students: Students overview, student details and progress overview.
    scores: Speaking, reading, listening, writing and pronunciation scores.
    chatbot: Chatbot score cards and raw score listing.
    insights: Grammar errors, discourse analysis and task completions.
    listening_dashboard: Grouped listening analysis and metadata.
    users: Members with emails and identity lookups.
    enrollment: Invitations, manual enrollment and activation.
    webhooks: Clerk webhook deliveries.
    classes: Teacher classes.
"""

from fastapi import APIRouter

from linguadash.api.routes import health
from linguadash.api.v1 import (
    chatbot,
    classes,
    enrollment,
    insights,
    listening_dashboard,
    scores,
    students,
    users,
    webhooks,
)

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(health.router, tags=["Health"])

# Teacher dashboard reports
router.include_router(students.router, prefix="/teacher-dashboard", tags=["Students"])
router.include_router(scores.router, prefix="/teacher-dashboard", tags=["Scores"])
router.include_router(insights.router, prefix="/teacher-dashboard", tags=["Insights"])
router.include_router(chatbot.router, prefix="/chatbot-scores", tags=["Scores"])
router.include_router(
    listening_dashboard.router,
    prefix="/listening-dashboard",
    tags=["Listening Dashboard"],
)

# Identity lookups
router.include_router(users.members_router, prefix="/teacher-dashboard", tags=["Users"])
router.include_router(users.lookup_router, prefix="/users", tags=["Users"])

# Enrollment
router.include_router(enrollment.teacher_router, prefix="/teacher-dashboard", tags=["Enrollment"])
router.include_router(enrollment.student_router, prefix="/student", tags=["Enrollment"])
router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
router.include_router(classes.router, prefix="/teacher-dashboard", tags=["Classes"])

__all__ = ["router"]
