# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for LinguaDash.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations and day keys
"""

from linguadash.utils.datetime import (
    day_key,
    days_ago,
    ensure_utc,
    format_iso,
    parse_day_key,
    utc_now,
)
from linguadash.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "days_ago",
    "day_key",
    "parse_day_key",
    "format_iso",
]
