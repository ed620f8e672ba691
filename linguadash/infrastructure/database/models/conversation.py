# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conversation message logs for speaking and chatbot practice."""

from sqlalchemy import Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from linguadash.infrastructure.database.models.base import Base, CreatedAtMixin

# Speaking log user ids may embed the task as "{user}:::{task}"
SPEAKING_LOG_SEPARATOR = ":::"


class SpeakingLog(Base, CreatedAtMixin):
    """One message of a speaking practice conversation."""

    __tablename__ = "speaking_log"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[str] = mapped_column(String(511), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(50))
    content: Mapped[str | None] = mapped_column(Text)
    message_index: Mapped[int | None] = mapped_column(Integer)

    @property
    def base_user_id(self) -> str:
        """User id with any embedded task suffix removed."""
        return self.user_id.split(SPEAKING_LOG_SEPARATOR)[0]


class ConversationLog(Base, CreatedAtMixin):
    """One message of a chatbot conversation."""

    __tablename__ = "conversation_log"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    conversation_id: Mapped[str | None] = mapped_column(String(255), index=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    task_id: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(50))
    message_content: Mapped[str | None] = mapped_column(Text)
