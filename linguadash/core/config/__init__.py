# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for LinguaDash.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from linguadash.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from linguadash.core.config.settings import (
    APISettings,
    ClerkSettings,
    CORSSettings,
    DashboardSettings,
    DatabaseSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "ClerkSettings",
    "DashboardSettings",
    "CORSSettings",
    "APISettings",
]
