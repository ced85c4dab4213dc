"""Exception types raised by the messaging services.

Every expected rejection is a subclass of :class:`ChatServiceError`. The REST
layer maps them to HTTP responses and the WebSocket gateway turns them into
``message-error`` frames; neither path lets them close the connection.
"""

from __future__ import annotations


class ChatServiceError(RuntimeError):
    """Base exception for rejected messaging operations."""

    code = "error"
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ChatServiceError):
    """Raised when a chat, message or user does not exist."""

    code = "not_found"
    status_code = 404


class AccessDeniedError(ChatServiceError):
    """Raised when the actor is not a participant of the chat."""

    code = "access_denied"
    status_code = 403


class InvalidInputError(ChatServiceError):
    """Raised for empty text or malformed identifiers."""

    code = "invalid_input"
    status_code = 400


class PrivacyRestrictedError(ChatServiceError):
    """Raised when the target user's settings block a new chat."""

    code = "privacy_restricted"
    status_code = 403


class ConflictError(ChatServiceError):
    """Raised when a unique value such as a username is already taken."""

    code = "conflict"
    status_code = 409


class StorageFailureError(ChatServiceError):
    """Raised when the conversation store cannot complete an operation.

    These are reported like any other rejection but are logged by the caller;
    they are never retried automatically.
    """

    code = "storage_failure"
    status_code = 500
