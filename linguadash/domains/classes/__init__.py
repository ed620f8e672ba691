# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classes domain: teacher classes and their rosters."""

from linguadash.domains.classes.service import ClassService, ClassServiceError, MissingTeacherError

__all__ = [
    "ClassService",
    "ClassServiceError",
    "MissingTeacherError",
]
