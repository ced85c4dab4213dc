"""Typed real-time events exchanged with connected clients.

Inbound events are decoded from client frames by the WebSocket gateway;
outbound events are produced by the delivery engine and pushed onto a
connection, which is responsible for framing them.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .common import UTCDateTime


class MessagePayload(BaseModel):
    """Message body carried by ``new-message`` and ``message-sent``."""

    id: int
    chat_id: int
    sender_id: int
    text: str
    timestamp: UTCDateTime
    read: bool

    model_config = ConfigDict(from_attributes=True)


# --- Outbound ------------------------------------------------------------------


class PresenceChanged(BaseModel):
    """Broadcast when a user comes online or goes offline."""

    type: Literal["presence-changed"] = "presence-changed"
    user_id: int
    is_online: bool


class NewMessage(BaseModel):
    """Pushed to the receiver of a freshly persisted message."""

    type: Literal["new-message"] = "new-message"
    chat_id: int
    message: MessagePayload


class MessageSent(BaseModel):
    """Acknowledges to the sender that a message was persisted."""

    type: Literal["message-sent"] = "message-sent"
    chat_id: int
    message: MessagePayload


class MessageRead(BaseModel):
    """Read receipt delivered to the original sender."""

    type: Literal["message-read"] = "message-read"
    message_id: int
    chat_id: int


class MessageError(BaseModel):
    """Structured rejection sent to the connection that issued the request."""

    type: Literal["message-error"] = "message-error"
    reason: str
    code: str


OutboundEvent = PresenceChanged | NewMessage | MessageSent | MessageRead | MessageError


# --- Inbound -------------------------------------------------------------------


class SendMessageEvent(BaseModel):
    """Client request to send text into a chat."""

    type: Literal["send-message"]
    chat_id: int
    text: str
    sender_id: int | None = Field(
        None, description="Optional; must match the authenticated user when present"
    )


class MarkReadEvent(BaseModel):
    """Client acknowledgement that a received message was read."""

    type: Literal["mark-read"]
    message_id: int
    chat_id: int


class UserOnlineEvent(BaseModel):
    """Client re-declares this connection as its live connection."""

    type: Literal["user-online"]


class UserOfflineEvent(BaseModel):
    """Client asks to be shown offline without closing the socket."""

    type: Literal["user-offline"]


InboundEvent = Annotated[
    SendMessageEvent | MarkReadEvent | UserOnlineEvent | UserOfflineEvent,
    Field(discriminator="type"),
]

inbound_event_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)
