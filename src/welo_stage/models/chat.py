# src/welo_stage/models/chat.py
"""Models describing two-party chats."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo_stage.db.session import Base
from welo_stage.db.time import utcnow
from welo_stage.models.user import User


def canonical_pair(user_a: int, user_b: int) -> tuple[int, int]:
    """Return the participant ids ordered lowest first."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class Chat(Base):
    """Private conversation keyed by an unordered pair of users.

    The pair is stored canonically (lower id first) so the unique constraint
    covers both creation orders.
    """

    __tablename__ = "chat"
    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_chat_participants"),
        CheckConstraint("user_low_id < user_high_id", name="ck_chat_pair_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_low_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    user_high_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    # Denormalised cache of the newest message, maintained by the store.
    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_time: Mapped[datetime | None] = mapped_column(nullable=True)

    user_low: Mapped[User] = relationship("User", foreign_keys=[user_low_id], lazy="joined")
    user_high: Mapped[User] = relationship("User", foreign_keys=[user_high_id], lazy="joined")

    @property
    def participant_ids(self) -> tuple[int, int]:
        """Return both participant ids."""
        return (self.user_low_id, self.user_high_id)

    def has_participant(self, user_id: int) -> bool:
        """Return True if ``user_id`` is one of the two participants."""
        return user_id in self.participant_ids

    def other_participant_id(self, user_id: int) -> int:
        """Return the participant that is not ``user_id``."""
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id

    def other_participant(self, user_id: int) -> User:
        """Return the participant row that is not ``user_id``."""
        return self.user_high if user_id == self.user_low_id else self.user_low
