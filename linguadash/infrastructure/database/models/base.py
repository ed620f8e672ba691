# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base model classes for the learning platform tables.

The schema is owned by the learning platform. These declarative models
mirror the columns LinguaDash reads and writes; no migrations are
generated from them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all platform models."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize the mapped columns to JSON-safe values.

        UUIDs and decimals become strings and floats, datetimes become
        ISO 8601 strings. Keys keep the column names.
        """
        data: dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, UUID):
                value = str(value)
            elif isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[column.key] = value
        return data


class CreatedAtMixin:
    """Mixin adding the server-populated created_at column."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
