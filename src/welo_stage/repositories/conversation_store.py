"""Durable storage for users, chats and messages.

``ConversationStore`` is the only component that talks to the database. Every
public method opens its own short-lived session, commits on success and
converts SQLAlchemy failures into :class:`StorageFailureError`. Methods are
synchronous; async callers run them in a worker thread.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from welo_stage.db.time import to_naive_utc
from welo_stage.models import Chat, Message, User, UserSettings
from welo_stage.models.chat import canonical_pair
from welo_stage.services.errors import ConflictError, StorageFailureError

__all__ = ["ConversationStore"]

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = frozenset(
    {
        "theme",
        "text_size",
        "compact_mode",
        "discoverability",
        "message_privacy",
        "read_receipts",
        "online_status",
    }
)


class ConversationStore:
    """Create/read/update access to persisted conversations."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize the store with a factory producing SQLAlchemy sessions."""
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as err:
            db.rollback()
            raise StorageFailureError("Conversation store operation failed") from err
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    # --- Users -------------------------------------------------------------------

    def get_user(self, user_id: int) -> User | None:
        """Return a single user by primary key."""
        with self._session() as db:
            return db.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        """Return the user registered under ``username``."""
        with self._session() as db:
            return db.execute(
                select(User).where(User.username == username)
            ).scalars().first()

    def create_user(
        self,
        *,
        username: str,
        nickname: str,
        password_hash: str,
        avatar: str = "user",
    ) -> User:
        """Persist a new user together with default settings.

        Raises:
            ConflictError: If the username is already registered.
        """
        with self._session() as db:
            user = User(
                username=username,
                nickname=nickname,
                password_hash=password_hash,
                avatar=avatar,
            )
            user.settings = UserSettings()
            db.add(user)
            try:
                db.flush()
            except IntegrityError as err:
                db.rollback()
                raise ConflictError("Username is already taken") from err
            db.refresh(user)
            return user

    def update_user(
        self,
        user_id: int,
        *,
        nickname: str | None = None,
        avatar: str | None = None,
        settings: Mapping[str, Any] | None = None,
        password_hash: str | None = None,
    ) -> User | None:
        """Apply a partial profile update; settings are merged key by key."""
        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            if nickname:
                user.nickname = nickname
            if avatar:
                user.avatar = avatar
            if password_hash:
                user.password_hash = password_hash
            if settings:
                if user.settings is None:
                    user.settings = UserSettings()
                for key, value in settings.items():
                    if key in SETTINGS_FIELDS and value is not None:
                        setattr(user.settings, key, value)
            db.flush()
            db.refresh(user)
            return user

    def search_users(self, query: str, *, exclude_user_id: int, limit: int = 50) -> list[User]:
        """Return users whose username or nickname contains ``query``."""
        with self._session() as db:
            stmt = (
                select(User)
                .where(
                    User.id != exclude_user_id,
                    or_(
                        User.username.icontains(query, autoescape=True),
                        User.nickname.icontains(query, autoescape=True),
                    ),
                )
                .order_by(User.username)
                .limit(limit)
            )
            return list(db.execute(stmt).scalars())

    def contact_ids(self, user_id: int) -> set[int]:
        """Return ids of every user that already shares a chat with ``user_id``."""
        with self._session() as db:
            rows = db.execute(
                select(Chat.user_low_id, Chat.user_high_id).where(
                    or_(Chat.user_low_id == user_id, Chat.user_high_id == user_id)
                )
            ).all()
        return {high if low == user_id else low for low, high in rows}

    # --- Chats -------------------------------------------------------------------

    def get_chat(self, chat_id: int) -> Chat | None:
        """Return a chat by identifier."""
        with self._session() as db:
            return db.get(Chat, chat_id)

    def find_chat_by_participants(self, user_a: int, user_b: int) -> Chat | None:
        """Return the chat between two users regardless of argument order."""
        low, high = canonical_pair(user_a, user_b)
        with self._session() as db:
            return self._find_pair(db, low, high)

    def create_chat(self, user_a: int, user_b: int) -> tuple[Chat, bool]:
        """Create the chat for a pair, or return the one that already exists.

        Returns:
            ``(chat, created)`` where ``created`` is False when a concurrent
            creator won the unique constraint.
        """
        low, high = canonical_pair(user_a, user_b)
        with self._session() as db:
            existing = self._find_pair(db, low, high)
            if existing is not None:
                return existing, False

            chat = Chat(user_low_id=low, user_high_id=high)
            db.add(chat)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                existing = self._find_pair(db, low, high)
                if existing is None:
                    raise
                return existing, False
            db.refresh(chat)
            return chat, True

    def list_chats_for_user(self, user_id: int) -> list[Chat]:
        """Return the user's chats, most recent activity first."""
        with self._session() as db:
            stmt = (
                select(Chat)
                .where(or_(Chat.user_low_id == user_id, Chat.user_high_id == user_id))
                .order_by(
                    Chat.last_message_time.desc().nulls_last(),
                    Chat.created_at.desc(),
                    Chat.id.desc(),
                )
            )
            return list(db.execute(stmt).scalars())

    def update_chat_last_message(self, chat_id: int, text: str, timestamp: datetime) -> bool:
        """Move the chat's last-message cache forward to ``timestamp``.

        The update only applies when ``timestamp`` is not older than the cached
        value, so a slow writer cannot replace a newer message with an older one.

        Returns:
            True if the cache now reflects this message.
        """
        with self._session() as db:
            return self._advance_last_message(db, chat_id, text, timestamp)

    # --- Messages ----------------------------------------------------------------

    def get_message(self, message_id: int) -> Message | None:
        """Return a message by identifier."""
        with self._session() as db:
            return db.get(Message, message_id)

    def create_message(
        self,
        chat_id: int,
        sender_id: int,
        text: str,
        timestamp: datetime,
    ) -> Message:
        """Insert a new unread message."""
        with self._session() as db:
            message = self._insert_message(db, chat_id, sender_id, text, timestamp)
            db.refresh(message)
            return message

    def append_message(
        self,
        chat_id: int,
        sender_id: int,
        text: str,
        timestamp: datetime,
    ) -> Message:
        """Insert a message and advance the chat cache in one transaction."""
        with self._session() as db:
            message = self._insert_message(db, chat_id, sender_id, text, timestamp)
            self._advance_last_message(db, chat_id, text, timestamp)
            db.refresh(message)
            return message

    def mark_messages_read(self, message_ids: Sequence[int]) -> list[int]:
        """Flip ``read`` to true for every listed message that is still unread.

        This is a single conditional UPDATE; rows already read are untouched.

        Returns:
            The ids that actually transitioned from unread to read.
        """
        if not message_ids:
            return []
        with self._session() as db:
            stmt = (
                update(Message)
                .where(Message.id.in_(list(message_ids)), Message.read.is_(False))
                .values(read=True)
                .returning(Message.id)
                .execution_options(synchronize_session=False)
            )
            return list(db.execute(stmt).scalars())

    def list_messages(
        self,
        chat_id: int,
        *,
        limit: int,
        before: datetime | None = None,
    ) -> list[Message]:
        """Return up to ``limit`` messages of a chat, newest first.

        ``before`` is a strict timestamp bound; aware values are converted to
        UTC first and naive values are taken as UTC. Equal timestamps fall back
        to insertion order.
        """
        with self._session() as db:
            stmt = select(Message).where(Message.chat_id == chat_id)
            if before is not None:
                stmt = stmt.where(Message.timestamp < to_naive_utc(before))
            stmt = stmt.order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit)
            return list(db.execute(stmt).scalars())

    # --- Internal helpers --------------------------------------------------------

    @staticmethod
    def _find_pair(db: Session, low: int, high: int) -> Chat | None:
        return db.execute(
            select(Chat).where(Chat.user_low_id == low, Chat.user_high_id == high)
        ).scalars().first()

    @staticmethod
    def _insert_message(
        db: Session,
        chat_id: int,
        sender_id: int,
        text: str,
        timestamp: datetime,
    ) -> Message:
        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            text=text,
            timestamp=to_naive_utc(timestamp),
            read=False,
        )
        db.add(message)
        db.flush()
        return message

    @staticmethod
    def _advance_last_message(db: Session, chat_id: int, text: str, timestamp: datetime) -> bool:
        stamp = to_naive_utc(timestamp)
        stmt = (
            update(Chat)
            .where(
                Chat.id == chat_id,
                or_(Chat.last_message_time.is_(None), Chat.last_message_time <= stamp),
            )
            .values(last_message=text, last_message_time=stamp)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        applied = bool(result.rowcount)
        if not applied:
            logger.debug("Skipped stale last-message update for chat %s", chat_id)
        return applied
