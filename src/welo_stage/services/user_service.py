"""Account helpers: registration, credential checks, search and profile edits."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from welo_stage.core import security
from welo_stage.models.user import (
    DISCOVERABILITY_CONTACTS,
    DISCOVERABILITY_NOBODY,
    User,
)
from welo_stage.repositories.conversation_store import ConversationStore
from welo_stage.services.errors import InvalidInputError, NotFoundError

__all__ = [
    "normalize_username",
    "register_user",
    "authenticate_user",
    "get_user_or_404",
    "search_visible_users",
    "update_profile",
    "change_password",
]


def normalize_username(username: str) -> str:
    """Return the canonical (trimmed, lower-case) form of a username."""
    return username.strip().lower()


def register_user(
    store: ConversationStore,
    *,
    username: str,
    nickname: str,
    password: str,
    avatar: str | None = None,
) -> User:
    """Create an account with a bcrypt-hashed password."""
    canonical = normalize_username(username)
    if not canonical:
        raise InvalidInputError("Username is required")
    nickname = nickname.strip()
    if not nickname:
        raise InvalidInputError("Nickname is required")
    return store.create_user(
        username=canonical,
        nickname=nickname,
        password_hash=security.hash_password(password),
        avatar=avatar or "user",
    )


def authenticate_user(store: ConversationStore, username: str, password: str) -> User | None:
    """Return the user when the credentials match, otherwise None."""
    user = store.get_user_by_username(normalize_username(username))
    if user is None or not security.verify_password(password, user.password_hash):
        return None
    return user


def get_user_or_404(store: ConversationStore, user_id: int) -> User:
    """Return a user or raise NotFoundError."""
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def search_visible_users(store: ConversationStore, current_user_id: int, query: str) -> list[User]:
    """Search by username or nickname, honouring each match's discoverability.

    ``nobody`` users are never returned; ``contacts`` users only when they
    already share a chat with the searcher.
    """
    query = query.strip()
    if not query:
        raise InvalidInputError("Search query required")

    matches = store.search_users(query, exclude_user_id=current_user_id)
    contacts: set[int] | None = None
    visible: list[User] = []
    for user in matches:
        discoverability = user.settings.discoverability if user.settings else None
        if discoverability == DISCOVERABILITY_NOBODY:
            continue
        if discoverability == DISCOVERABILITY_CONTACTS:
            if contacts is None:
                contacts = store.contact_ids(current_user_id)
            if user.id not in contacts:
                continue
        visible.append(user)
    return visible


def update_profile(
    store: ConversationStore,
    user_id: int,
    *,
    nickname: str | None = None,
    avatar: str | None = None,
    settings: Mapping[str, Any] | None = None,
) -> User:
    """Apply a partial profile update and return the refreshed user."""
    user = store.update_user(
        user_id,
        nickname=nickname.strip() if nickname else None,
        avatar=avatar,
        settings=settings,
    )
    if user is None:
        raise NotFoundError("User not found")
    return user


def change_password(
    store: ConversationStore,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """Replace the password after re-checking the current one."""
    if not security.verify_password(current_password, user.password_hash):
        raise InvalidInputError("Current password is incorrect")
    store.update_user(user.id, password_hash=security.hash_password(new_password))
