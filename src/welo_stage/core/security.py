"""Password hashing and access-token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from welo_stage.core.settings import settings


class InvalidTokenError(ValueError):
    """Raised when an access token cannot be verified."""


def hash_password(password: str) -> str:
    """Return a bcrypt hash of the provided password."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def verify_access_token(token: str) -> int:
    """Verify a JWT access token and return the user id it was issued for.

    Args:
        token: Encoded JWT as presented by the client.

    Returns:
        The integer user id stored in the ``sub`` claim.

    Raises:
        InvalidTokenError: If the signature, expiry or subject is invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise InvalidTokenError("Could not validate credentials") from err

    subject = payload.get("sub")
    if subject is None:
        raise InvalidTokenError("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise InvalidTokenError("Could not validate credentials") from err
