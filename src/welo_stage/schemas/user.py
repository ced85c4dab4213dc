"""User-related Pydantic schemas."""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import UTCDateTime

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]+$")


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., min_length=3, max_length=64, description="Unique login name")
    nickname: str = Field(..., min_length=1, max_length=100, description="Display name")
    password: str = Field(..., min_length=6, max_length=128)
    avatar: str | None = Field(None, max_length=64, description="Avatar identifier")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Allow letters, digits, underscores and dots only."""
        v = v.strip()
        if not _USERNAME_PATTERN.match(v):
            raise ValueError("Username may only contain letters, digits, '_' and '.'")
        return v


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    username: str
    password: str


class UserSettingsSchema(BaseModel):
    """Per-user preferences."""

    theme: str = "light"
    text_size: int = 16
    compact_mode: bool = False
    discoverability: Literal["everyone", "contacts", "nobody"] = "everyone"
    message_privacy: Literal["everyone", "contacts"] = "everyone"
    read_receipts: bool = True
    online_status: bool = True

    model_config = ConfigDict(from_attributes=True)


class UserSettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their current value."""

    theme: Literal["light", "dark"] | None = None
    text_size: int | None = Field(None, ge=10, le=32)
    compact_mode: bool | None = None
    discoverability: Literal["everyone", "contacts", "nobody"] | None = None
    message_privacy: Literal["everyone", "contacts"] | None = None
    read_receipts: bool | None = None
    online_status: bool | None = None


class UserResponse(BaseModel):
    """Full profile of the authenticated user."""

    id: int
    username: str
    nickname: str
    avatar: str
    registered_at: UTCDateTime
    is_online: bool = False
    settings: UserSettingsSchema | None = None

    model_config = ConfigDict(from_attributes=True)


class PublicUserResponse(BaseModel):
    """Profile fields visible to other users."""

    id: int
    username: str
    nickname: str
    avatar: str
    is_online: bool = False

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    """Response returned after successful login or registration."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    user: UserResponse


class ProfileUpdateRequest(BaseModel):
    """Schema for updating user profile information."""

    nickname: str | None = Field(None, min_length=1, max_length=100)
    avatar: str | None = Field(None, min_length=1, max_length=64)
    settings: UserSettingsUpdate | None = None


class PasswordUpdateRequest(BaseModel):
    """Schema for changing the account password."""

    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)
