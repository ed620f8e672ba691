# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization domain: membership resolution and identity enrichment."""

from linguadash.domains.organization.directory import (
    DirectoryService,
    StudentProfile,
    placeholder_name,
)
from linguadash.domains.organization.members import MemberDirectory
from linguadash.domains.organization.service import UNKNOWN_ORGANIZATION, OrganizationService

__all__ = [
    "DirectoryService",
    "MemberDirectory",
    "OrganizationService",
    "StudentProfile",
    "UNKNOWN_ORGANIZATION",
    "placeholder_name",
]
