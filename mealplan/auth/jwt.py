"""
JWT token generation and validation.

Identity is issued elsewhere; the API only needs the owner ID carried in
the token subject.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from uuid import UUID

from mealplan.config import settings


@dataclass
class TokenPayload:
    """Decoded token payload."""
    owner_id: UUID


def create_access_token(owner_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for an owner.

    Args:
        owner_id: Owner's UUID
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode = {
        "sub": str(owner_id),
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT token.

    Returns:
        TokenPayload if token is valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        subject = payload.get("sub")
        if subject is None:
            return None
        return TokenPayload(owner_id=UUID(subject))
    except (JWTError, ValueError):
        return None
