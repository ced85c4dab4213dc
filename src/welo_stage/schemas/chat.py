"""Chat-related Pydantic schemas."""

from pydantic import BaseModel

from .common import UTCDateTime
from .user import PublicUserResponse


class ChatResponse(BaseModel):
    """A chat as seen by one of its participants."""

    id: int
    other_user: PublicUserResponse
    last_message: str | None
    last_message_time: UTCDateTime | None
    created_at: UTCDateTime
