# src/welo_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models and real-time events.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import ChatResponse
from .events import (
    MessageError,
    MessagePayload,
    MessageRead,
    MessageSent,
    NewMessage,
    PresenceChanged,
)
from .message import MessageCreate, MessageResponse
from .user import (
    LoginRequest,
    LoginResponse,
    PublicUserResponse,
    RegisterRequest,
    UserResponse,
)

__all__ = [
    "ChatResponse",
    "MessageCreate", "MessageResponse",
    "MessagePayload", "NewMessage", "MessageSent", "MessageRead", "MessageError",
    "PresenceChanged",
    "LoginRequest", "LoginResponse", "RegisterRequest",
    "PublicUserResponse", "UserResponse",
]
