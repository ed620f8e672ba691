# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request models for the enrollment workflow."""

from pydantic import Field

from linguadash.models.common import CamelModel


class EnrollStudentsRequest(CamelModel):
    """Request to enroll students in a course.

    Emails are either one string separated by commas, semicolons or
    newlines, or a list of addresses.
    """

    emails: str | list[str] = Field(default_factory=list)
    course_id: str | None = None
    organization_code: str | None = None
    class_id: str | None = None


class DeleteEnrollmentRequest(CamelModel):
    """Request to delete an enrollment."""

    enrollment_id: str | None = None


class ActivateEnrollmentRequest(CamelModel):
    """Request from a signed-in student to activate an enrollment."""

    email: str | None = None
    course_id: str | None = None
    class_id: str | None = None
    organization_code: str | None = None
