"""Chat endpoints for the Welo API."""

from __future__ import annotations

from fastapi import APIRouter

from welo_stage.api.v1.dependencies import CurrentUserDep, PresenceDep, StoreDep
from welo_stage.api.v1.serializers import serialize_chat
from welo_stage.schemas.chat import ChatResponse
from welo_stage.services.chat_service import get_chat_for_user, start_chat

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get("/", response_model=list[ChatResponse])
def list_chats(
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
) -> list[ChatResponse]:
    """List the caller's chats, most recent activity first."""
    chats = store.list_chats_for_user(current_user.id)
    return [serialize_chat(chat, current_user.id, presence) for chat in chats]


@router.post("/start/{user_id}", response_model=ChatResponse)
def start_chat_with_user(
    user_id: int,
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
) -> ChatResponse:
    """Return the chat with ``user_id``, creating it when allowed."""
    chat = start_chat(store, current_user.id, user_id)
    return serialize_chat(chat, current_user.id, presence)


@router.get("/{chat_id}", response_model=ChatResponse)
def get_chat(
    chat_id: int,
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
) -> ChatResponse:
    """Return a single chat the caller participates in."""
    chat = get_chat_for_user(store, chat_id, current_user.id)
    return serialize_chat(chat, current_user.id, presence)
