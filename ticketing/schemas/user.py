# ticketing/schemas/user.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, EmailStr, Field, SecretStr, field_validator

from ticketing.schemas.common import CamelModel

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def _check_password(
    v: SecretStr, min_length: int = MIN_PASSWORD_LENGTH, limit_bytes: bool = True
) -> SecretStr:
    password = v.get_secret_value()
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if limit_bytes and len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class UserRole(str, Enum):
    user = "user"
    organizer = "organizer"


class UserCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=50, json_schema_extra={"example": "Ada Lovelace"})
    email: EmailStr
    password: SecretStr
    role: UserRole = UserRole.user
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be 2-50 characters")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: SecretStr) -> SecretStr:
        return _check_password(v)


class UserLogin(CamelModel):
    email: EmailStr
    password: SecretStr
    # When present, the stored role must match; it is never changed by login.
    role: Optional[UserRole] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: SecretStr) -> SecretStr:
        return _check_password(v, min_length=1, limit_bytes=False)


class UserProfileUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    profile_picture: Optional[str] = Field(None, max_length=500)


class PasswordChange(CamelModel):
    current_password: SecretStr
    new_password: SecretStr

    @field_validator("current_password")
    @classmethod
    def check_current(cls, v: SecretStr) -> SecretStr:
        return _check_password(v, min_length=1, limit_bytes=False)

    @field_validator("new_password")
    @classmethod
    def check_new(cls, v: SecretStr) -> SecretStr:
        return _check_password(v)


class User(CamelModel):
    id: str = Field(..., json_schema_extra={"example": "usr_1a2b3c4d5e6f"})
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool
    created_at: datetime


class AuthResponse(CamelModel):
    user: User
    access_token: str
    token_type: str = "bearer"
