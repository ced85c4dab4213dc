# src/welo_stage/models/message.py
"""Models describing messages exchanged inside a chat."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo_stage.db.session import Base
from welo_stage.db.time import utcnow
from welo_stage.models.user import User


class Message(Base):
    """Text message belonging to exactly one chat.

    ``id`` grows with insertion order and breaks ties between messages that
    share a timestamp.
    """

    __tablename__ = "message"
    __table_args__ = (Index("ix_message_chat_timestamp", "chat_id", "timestamp", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chat.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    sender: Mapped[User] = relationship("User", lazy="joined")
