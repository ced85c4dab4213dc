# src/welo_stage/api/v1/endpoints/auth.py
"""Authentication endpoints for the Welo API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from welo_stage.api.v1.dependencies import CurrentUserDep, PresenceDep, StoreDep
from welo_stage.api.v1.serializers import serialize_user
from welo_stage.core.security import create_access_token
from welo_stage.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from welo_stage.services.user_service import authenticate_user, register_user

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, store: StoreDep, presence: PresenceDep) -> LoginResponse:
    """Create an account and return an access token for it."""
    user = register_user(
        store,
        username=payload.username,
        nickname=payload.nickname,
        password=payload.password,
        avatar=payload.avatar,
    )
    return LoginResponse(
        access_token=create_access_token(user.id),
        token_type="bearer",
        user=serialize_user(user, presence),
    )


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, store: StoreDep, presence: PresenceDep) -> LoginResponse:
    """Exchange username and password for an access token."""
    user = authenticate_user(store, payload.username, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    return LoginResponse(
        access_token=create_access_token(user.id),
        token_type="bearer",
        user=serialize_user(user, presence),
    )


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: CurrentUserDep, presence: PresenceDep) -> UserResponse:
    """Return the authenticated user's profile."""
    return serialize_user(current_user, presence)
