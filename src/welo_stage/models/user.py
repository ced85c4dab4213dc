# src/welo_stage/models/user.py
"""SQLAlchemy models for user accounts and their preferences."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo_stage.db.session import Base
from welo_stage.db.time import utcnow

DISCOVERABILITY_EVERYONE = "everyone"
DISCOVERABILITY_CONTACTS = "contacts"
DISCOVERABILITY_NOBODY = "nobody"

MESSAGE_PRIVACY_EVERYONE = "everyone"
MESSAGE_PRIVACY_CONTACTS = "contacts"


class User(Base):
    """Registered account; the integer id is the user's opaque identity."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    avatar: Mapped[str] = mapped_column(String(64), nullable=False, default="user")
    registered_at: Mapped[datetime] = mapped_column(default=utcnow)

    settings: Mapped[UserSettings] = relationship(
        "UserSettings",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="joined",
    )


class UserSettings(Base):
    """Per-user preferences kept separate from identity metadata."""

    __tablename__ = "user_settings"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    theme: Mapped[str] = mapped_column(String(16), nullable=False, default="light")
    text_size: Mapped[int] = mapped_column(Integer, nullable=False, default=16)
    compact_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discoverability: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DISCOVERABILITY_EVERYONE
    )
    message_privacy: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MESSAGE_PRIVACY_EVERYONE
    )
    read_receipts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    online_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped[User] = relationship("User", back_populates="settings")
