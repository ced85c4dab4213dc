"""Chat lookup and creation rules."""
from __future__ import annotations

import logging

from welo_stage.models import Chat
from welo_stage.models.user import MESSAGE_PRIVACY_CONTACTS
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.services.errors import (
    AccessDeniedError,
    InvalidInputError,
    NotFoundError,
    PrivacyRestrictedError,
)

logger = logging.getLogger(__name__)


def start_chat(store: ConversationStore, current_user_id: int, other_user_id: int) -> Chat:
    """Return the chat between two users, creating it if allowed.

    An existing chat is always returned. A new one is refused when the target
    only accepts messages from contacts, since without a chat the two users
    are not contacts yet.

    Raises:
        InvalidInputError: A user tried to start a chat with themselves.
        NotFoundError: The other user does not exist.
        PrivacyRestrictedError: The other user's settings block new chats.
    """
    if current_user_id == other_user_id:
        raise InvalidInputError("Cannot start a chat with yourself")

    chat = store.find_chat_by_participants(current_user_id, other_user_id)
    if chat is not None:
        return chat

    other_user = store.get_user(other_user_id)
    if other_user is None:
        raise NotFoundError("User not found")

    if other_user.settings and other_user.settings.message_privacy == MESSAGE_PRIVACY_CONTACTS:
        raise PrivacyRestrictedError("This user only accepts messages from contacts")

    chat, created = store.create_chat(current_user_id, other_user_id)
    if created:
        logger.info(
            "Created chat %s between users %s and %s",
            chat.id,
            current_user_id,
            other_user_id,
        )
    return chat


def get_chat_for_user(store: ConversationStore, chat_id: int, user_id: int) -> Chat:
    """Return a chat the user participates in."""
    chat = store.get_chat(chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    if not chat.has_participant(user_id):
        raise AccessDeniedError("Access denied")
    return chat
