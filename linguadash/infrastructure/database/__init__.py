# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the learning platform PostgreSQL store.

Example:
    from linguadash.infrastructure.database import get_session, init_database

    await init_database(settings)
    async with get_session() as session:
        result = await session.execute(select(TaskCompletion))
"""

from linguadash.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
