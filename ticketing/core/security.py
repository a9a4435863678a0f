# ticketing/core/security.py
"""
Credential helpers: bcrypt password hashing and signed bearer tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import SecretStr

from ticketing.core.config import settings
from ticketing.core.exceptions import UnauthorizedError
from ticketing.schemas.token import TokenPayload
from ticketing.schemas.user import MAX_PASSWORD_BYTES


def hash_password(*, plain_password: SecretStr) -> str:
    """Hash password using bcrypt"""
    password_bytes = plain_password.get_secret_value().encode("utf-8")
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(*, plain_password: SecretStr, hashed_password: str) -> bool:
    password_bytes = plain_password.get_secret_value().encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def create_access_token(
    *, user_id: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Issue a signed token carrying the user id (`sub`) and role."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = TokenPayload(sub=user_id, role=role, exp=int(expire.timestamp()))
    return jwt.encode(
        payload.model_dump(), settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
        return TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise UnauthorizedError("Invalid or expired token")
