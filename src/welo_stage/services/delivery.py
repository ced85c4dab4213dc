"""Real-time message delivery on top of the conversation store.

``DeliveryEngine`` owns the message pipeline shared by the WebSocket gateway
and the REST endpoints:

- connection lifecycle (online/offline presence),
- sending a message (persist, then push to the receiver and acknowledge),
- read receipts (explicit mark-read and implicit marking on history fetch).

Persistence always happens before any notification. Notifications are best
effort: an unreachable connection never rolls back or fails a write, and the
message stays retrievable through history.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from welo_stage.core.settings import settings
from welo_stage.db.time import utcnow
from welo_stage.models import Chat, Message
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.schemas.events import MessagePayload, MessageRead, MessageSent, NewMessage
from welo_stage.services.errors import (
    AccessDeniedError,
    InvalidInputError,
    NotFoundError,
    StorageFailureError,
)
from welo_stage.services.presence import Connection, PresenceTable, deliver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeliveryEngine:
    """Coordinates presence, persistence and live notifications."""

    def __init__(
        self,
        presence: PresenceTable,
        store: ConversationStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the engine.

        Args:
            presence: Live connection table owned by the application instance.
            store: Durable conversation store.
            clock: Source of message timestamps.
        """
        self.presence = presence
        self.store = store
        self._clock = clock
        self._disconnects: set[asyncio.Future[int | None]] = set()

    # --- Connection lifecycle ------------------------------------------------------

    async def connect(self, user_id: int, connection: Connection) -> None:
        """Register ``connection`` as the user's live connection.

        The caller must already have authenticated ``user_id``.
        """
        await self.presence.set_online(user_id, connection)
        logger.info("User %s is online", user_id)

    async def disconnect(self, connection: Connection) -> int | None:
        """Forget a closed connection and announce its user as offline.

        Runs from the gateway's cleanup path, often while the connection task is
        being cancelled. The removal and its broadcast are shielded so they
        still complete; a cancelled caller just does not see the result.
        """
        task = asyncio.ensure_future(self.presence.remove_by_connection(connection))
        # Strong reference until done; the loop only keeps weak ones.
        self._disconnects.add(task)
        task.add_done_callback(self._disconnects.discard)
        user_id = await asyncio.shield(task)
        if user_id is not None:
            logger.info("User %s disconnected", user_id)
        return user_id

    async def go_offline(self, user_id: int) -> bool:
        """Explicitly mark a user offline while keeping the socket open."""
        removed = await self.presence.set_offline(user_id)
        if removed:
            logger.info("User %s went offline", user_id)
        return removed

    # --- Messages --------------------------------------------------------------------

    async def send(
        self,
        chat_id: int,
        sender_id: int,
        text: str,
        *,
        origin: Connection | None = None,
    ) -> MessagePayload:
        """Persist a message and push it to both participants.

        Args:
            chat_id: Target chat.
            sender_id: Authenticated sender; must participate in the chat.
            text: Message body; blank text is rejected.
            origin: Connection that issued the request, if any. The
                ``message-sent`` acknowledgement goes there; without one it
                goes to the sender's live connection when online.

        Returns:
            The persisted message.

        Raises:
            InvalidInputError: Blank or oversized text.
            NotFoundError: Unknown chat.
            AccessDeniedError: Sender is not a participant.
            StorageFailureError: The store could not persist the message.
        """
        if not text or not text.strip():
            raise InvalidInputError("Message text cannot be empty")
        if len(text) > settings.message_max_length:
            raise InvalidInputError(
                f"Message text exceeds {settings.message_max_length} characters"
            )

        chat = await self._load_chat(chat_id, sender_id)
        message = await self._call_store(
            self.store.append_message, chat_id, sender_id, text, self._clock()
        )
        payload = MessagePayload.model_validate(message)

        receiver_id = chat.other_participant_id(sender_id)
        receiver = self.presence.lookup(receiver_id)
        if receiver is not None:
            await deliver(receiver, NewMessage(chat_id=chat_id, message=payload))

        ack_target = origin if origin is not None else self.presence.lookup(sender_id)
        if ack_target is not None:
            await deliver(ack_target, MessageSent(chat_id=chat_id, message=payload))

        return payload

    async def mark_read(
        self,
        message_id: int,
        chat_id: int | None,
        acting_user_id: int,
    ) -> bool:
        """Mark a received message as read and notify its sender.

        Marking one's own message, or a message that is already read, is a
        no-op without notification.

        Returns:
            True if this call flipped the flag.

        Raises:
            NotFoundError: Unknown message, or the message is not in ``chat_id``.
            AccessDeniedError: The acting user is not a participant.
        """
        message = await self._call_store(self.store.get_message, message_id)
        if message is None or (chat_id is not None and message.chat_id != chat_id):
            raise NotFoundError("Message not found")

        await self._load_chat(message.chat_id, acting_user_id)

        if message.sender_id == acting_user_id:
            return False

        flipped = await self._call_store(self.store.mark_messages_read, [message.id])
        if not flipped:
            return False

        await self._notify_read(message.sender_id, message.id, message.chat_id)
        return True

    async def fetch_history(
        self,
        chat_id: int,
        user_id: int,
        *,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        """Return a window of chat history and mark the received part as read.

        This read has a side effect: every returned message sent by the other
        participant that is still unread is flipped to read in one batched
        update, and its sender receives a ``message-read`` receipt.

        Args:
            chat_id: Chat to read.
            user_id: Participant performing the read.
            limit: Window size, defaults to ``HISTORY_DEFAULT_LIMIT``.
            before: Strict upper timestamp bound for pagination.

        Returns:
            Messages in chronological order with ``read`` reflecting this call.
        """
        if limit is None:
            limit = settings.history_default_limit
        if limit < 1 or limit > settings.history_max_limit:
            raise InvalidInputError(
                f"limit must be between 1 and {settings.history_max_limit}"
            )

        await self._load_chat(chat_id, user_id)
        messages = await self._call_store(
            self.store.list_messages, chat_id, limit=limit, before=before
        )

        unread_ids = [
            msg.id for msg in messages if msg.sender_id != user_id and not msg.read
        ]
        flipped = set(await self._call_store(self.store.mark_messages_read, unread_ids))

        for msg in messages:
            if msg.id in flipped:
                msg.read = True

        receipts = [
            self._notify_read(msg.sender_id, msg.id, msg.chat_id)
            for msg in messages
            if msg.id in flipped
        ]
        if receipts:
            await asyncio.gather(*receipts)

        messages.reverse()
        return messages

    # --- Internal helpers ------------------------------------------------------------

    async def _load_chat(self, chat_id: int, user_id: int) -> Chat:
        chat = await self._call_store(self.store.get_chat, chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        if not chat.has_participant(user_id):
            raise AccessDeniedError("Access denied")
        return chat

    async def _notify_read(self, sender_id: int, message_id: int, chat_id: int) -> None:
        connection = self.presence.lookup(sender_id)
        if connection is not None:
            await deliver(connection, MessageRead(message_id=message_id, chat_id=chat_id))

    async def _call_store(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except StorageFailureError:
            logger.error("Store call %s failed", getattr(func, "__name__", func), exc_info=True)
            raise
