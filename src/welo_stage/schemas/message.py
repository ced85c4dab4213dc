"""Message-related Pydantic schemas."""

from pydantic import BaseModel, Field

from .common import UTCDateTime


class MessageCreate(BaseModel):
    """Schema for sending a message through the REST path."""

    chat_id: int = Field(..., description="Target chat")
    text: str = Field(..., description="Message body")


class MessageResponse(BaseModel):
    """Message as returned by history and send endpoints."""

    id: int
    chat_id: int
    sender_id: int
    sender_name: str
    sender_avatar: str
    text: str
    timestamp: UTCDateTime
    read: bool
