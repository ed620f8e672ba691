# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the student enrollment lifecycle:
- Course catalog and platform URLs
- Enrollment by Clerk invitation or manual entry
- Activation by the student or by Clerk webhooks
"""

from linguadash.domains.enrollment.courses import COURSES, Course, get_course, is_valid_course
from linguadash.domains.enrollment.service import (
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    InvalidCourseError,
    InvalidEmailsError,
    InvitationsNotConfiguredError,
    MissingFieldError,
    parse_emails,
)
from linguadash.domains.enrollment.webhook import (
    ClerkWebhookHandler,
    InvalidWebhookSignatureError,
    MissingWebhookHeadersError,
    WebhookError,
    WebhookNotConfiguredError,
    WebhookProcessingError,
)

__all__ = [
    "COURSES",
    "ClerkWebhookHandler",
    "Course",
    "EnrollmentNotFoundError",
    "EnrollmentService",
    "EnrollmentServiceError",
    "InvalidCourseError",
    "InvalidEmailsError",
    "InvalidWebhookSignatureError",
    "InvitationsNotConfiguredError",
    "MissingFieldError",
    "MissingWebhookHeadersError",
    "WebhookError",
    "WebhookNotConfiguredError",
    "WebhookProcessingError",
    "get_course",
    "is_valid_course",
    "parse_emails",
]
