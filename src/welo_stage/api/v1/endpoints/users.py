"""User discovery and profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from welo_stage.api.v1.dependencies import CurrentUserDep, PresenceDep, StoreDep
from welo_stage.api.v1.serializers import serialize_public_user, serialize_user
from welo_stage.schemas.user import (
    PasswordUpdateRequest,
    ProfileUpdateRequest,
    PublicUserResponse,
    UserResponse,
)
from welo_stage.services.user_service import (
    change_password,
    get_user_or_404,
    search_visible_users,
    update_profile,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[PublicUserResponse])
def search_users(
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
    query: str = Query("", description="Substring of a username or nickname"),
) -> list[PublicUserResponse]:
    """Search users, skipping those whose privacy settings hide them."""
    users = search_visible_users(store, current_user.id, query)
    return [serialize_public_user(user, presence) for user in users]


@router.put("/profile", response_model=UserResponse)
def update_current_profile(
    payload: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
) -> UserResponse:
    """Update nickname, avatar and settings of the authenticated user."""
    user = update_profile(
        store,
        current_user.id,
        nickname=payload.nickname,
        avatar=payload.avatar,
        settings=(
            payload.settings.model_dump(exclude_none=True) if payload.settings else None
        ),
    )
    return serialize_user(user, presence)


@router.put("/password")
def update_password(
    payload: PasswordUpdateRequest,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> dict[str, str]:
    """Change the authenticated user's password."""
    change_password(store, current_user, payload.current_password, payload.new_password)
    return {"status": "password_updated"}


@router.get("/{user_id}", response_model=PublicUserResponse)
def get_user(
    user_id: int,
    current_user: CurrentUserDep,
    store: StoreDep,
    presence: PresenceDep,
) -> PublicUserResponse:
    """Return another user's public profile."""
    return serialize_public_user(get_user_or_404(store, user_id), presence)
