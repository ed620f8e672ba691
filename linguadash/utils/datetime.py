# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for LinguaDash.

All timestamps coming out of the store are TIMESTAMPTZ and all Python
datetimes handled here are timezone-aware UTC. Calendar-day logic
(streaks, activity calendars) works on UTC ``YYYY-MM-DD`` keys.

Usage:
    from linguadash.utils.datetime import utc_now, day_key

    today = day_key(utc_now())
"""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Get the UTC datetime a number of days before now."""
    return (now or utc_now()) - timedelta(days=days)


def day_key(dt: datetime) -> str:
    """Convert a datetime to its UTC calendar-day key (YYYY-MM-DD)."""
    return ensure_utc(dt).date().isoformat()


def parse_day_key(key: str) -> date:
    """Parse a YYYY-MM-DD key back into a date."""
    return date.fromisoformat(key)


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO 8601 string, or None."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
