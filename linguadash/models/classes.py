# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request models for teacher classes."""

from linguadash.models.common import CamelModel


class TeacherClassesRequest(CamelModel):
    teacher_id: str | None = None
