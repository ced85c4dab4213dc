# src/welo_stage/models/__init__.py
"""SQLAlchemy models for the Welo application."""

from .chat import Chat
from .message import Message
from .user import User, UserSettings

__all__ = [
    "Chat",
    "Message",
    "User", "UserSettings",
]
