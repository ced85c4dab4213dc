"""Shared API dependencies for authentication and application services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from welo_stage.core.security import InvalidTokenError, verify_access_token
from welo_stage.models import User
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.services.delivery import DeliveryEngine
from welo_stage.services.presence import PresenceTable

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()


def get_store(request: Request) -> ConversationStore:
    """Return the application's conversation store."""
    return request.app.state.store


def get_presence(request: Request) -> PresenceTable:
    """Return the application's presence table."""
    return request.app.state.presence


def get_delivery_engine(request: Request) -> DeliveryEngine:
    """Return the application's delivery engine."""
    return request.app.state.delivery


StoreDep = Annotated[ConversationStore, Depends(get_store)]
PresenceDep = Annotated[PresenceTable, Depends(get_presence)]
EngineDep = Annotated[DeliveryEngine, Depends(get_delivery_engine)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    store: StoreDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        store: Conversation store

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        user_id = verify_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    user = store.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
