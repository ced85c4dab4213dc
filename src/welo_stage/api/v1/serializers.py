"""Conversion of ORM rows into API payloads."""

from __future__ import annotations

from welo_stage.models import Chat, Message, User
from welo_stage.schemas.chat import ChatResponse
from welo_stage.schemas.message import MessageResponse
from welo_stage.schemas.user import PublicUserResponse, UserResponse, UserSettingsSchema
from welo_stage.services.presence import PresenceTable


def visible_online_status(user: User, presence: PresenceTable) -> bool:
    """Return the online flag other users may see.

    Users who disabled ``online_status`` always appear offline.
    """
    if user.settings is not None and not user.settings.online_status:
        return False
    return presence.is_online(user.id)


def serialize_user(user: User, presence: PresenceTable) -> UserResponse:
    """Serialize the authenticated user's own profile."""
    return UserResponse(
        id=user.id,
        username=user.username,
        nickname=user.nickname,
        avatar=user.avatar,
        registered_at=user.registered_at,
        is_online=presence.is_online(user.id),
        settings=(
            UserSettingsSchema.model_validate(user.settings) if user.settings else None
        ),
    )


def serialize_public_user(user: User, presence: PresenceTable) -> PublicUserResponse:
    """Serialize the profile fields other users are allowed to see."""
    return PublicUserResponse(
        id=user.id,
        username=user.username,
        nickname=user.nickname,
        avatar=user.avatar,
        is_online=visible_online_status(user, presence),
    )


def serialize_chat(chat: Chat, viewer_id: int, presence: PresenceTable) -> ChatResponse:
    """Serialize a chat from the point of view of ``viewer_id``."""
    return ChatResponse(
        id=chat.id,
        other_user=serialize_public_user(chat.other_participant(viewer_id), presence),
        last_message=chat.last_message,
        last_message_time=chat.last_message_time,
        created_at=chat.created_at,
    )


def serialize_message(message: Message, viewer_id: int) -> MessageResponse:
    """Serialize a message for ``viewer_id``.

    The viewer's own messages are always reported as read.
    """
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id,
        sender_name=message.sender.nickname,
        sender_avatar=message.sender.avatar,
        text=message.text,
        timestamp=message.timestamp,
        read=message.read or message.sender_id == viewer_id,
    )
