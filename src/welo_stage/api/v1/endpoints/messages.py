# src/welo_stage/api/v1/endpoints/messages.py
"""Message endpoints for the Welo API.

These share the delivery engine with the WebSocket gateway, so a message sent
here still reaches a connected receiver and reading history here still sends
read receipts.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, status

from welo_stage.api.v1.dependencies import CurrentUserDep, EngineDep
from welo_stage.api.v1.serializers import serialize_message
from welo_stage.core.settings import settings
from welo_stage.schemas.message import MessageCreate, MessageResponse

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/chat/{chat_id}", response_model=list[MessageResponse])
async def get_chat_messages(
    chat_id: int,
    current_user: CurrentUserDep,
    engine: EngineDep,
    limit: int = Query(
        settings.history_default_limit, ge=1, le=settings.history_max_limit
    ),
    before: datetime | None = Query(None, description="Return messages strictly older than this"),
) -> list[MessageResponse]:
    """Return chat history in chronological order.

    Received messages in the window are marked as read as part of this call.
    """
    messages = await engine.fetch_history(
        chat_id, current_user.id, limit=limit, before=before
    )
    return [serialize_message(message, current_user.id) for message in messages]


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageCreate,
    current_user: CurrentUserDep,
    engine: EngineDep,
) -> MessageResponse:
    """Send a message without a live connection."""
    message = await engine.send(payload.chat_id, current_user.id, payload.text)
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id,
        sender_name=current_user.nickname,
        sender_avatar=current_user.avatar,
        text=message.text,
        timestamp=message.timestamp,
        read=message.read or message.sender_id == current_user.id,
    )


@router.put("/{message_id}/read")
async def mark_message_read(
    message_id: int,
    current_user: CurrentUserDep,
    engine: EngineDep,
) -> dict[str, str]:
    """Mark a received message as read."""
    await engine.mark_read(message_id, None, current_user.id)
    return {"status": "marked_as_read"}
