# app/schemas/user.py
import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
PHONE_RE = re.compile(r"^\+?[0-9]{10,15}$")
MAX_PASSWORD_BYTES = 72


def _check_username(v: str) -> str:
    v = v.strip()
    if not USERNAME_RE.match(v):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return v


def _check_phone(v: str) -> str:
    v = v.strip()
    if not PHONE_RE.match(v):
        raise ValueError("Please provide a valid phone number")
    return v


def _check_password(v: str) -> str:
    # bcrypt only hashes the first 72 bytes and rejects longer input
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return v


class RegisterRequest(SQLModel):
    """
    Payload for account registration.

    Validation rules:
      - full_name: 1-50 chars, not blank
      - username: 3-20 chars, letters/digits/underscore
      - email: valid, stored lower-cased
      - phone: optional '+', then 10-15 digits
      - password: at least 5 chars, at most 72 bytes (UTF-8)
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str = Field(max_length=50)
    username: str = Field(min_length=3, max_length=20)
    email: EmailStr
    phone: str
    password: str = Field(min_length=5)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _check_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(SQLModel):
    """Login with username, email or phone number."""

    model_config = ConfigDict(extra="forbid")

    identifier: str
    password: str

    @field_validator("identifier", "password")
    @classmethod
    def required(cls, v: str) -> str:
        return not_blank(v)


class UserRead(SQLModel):
    """Response schema returned to clients (never includes the password hash)."""

    id: uuid.UUID
    full_name: str
    username: str
    email: str
    phone: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserRead


class ProfileUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    Editable: full_name, email, phone.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    phone: str | None = None

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return not_blank(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v) if v is not None else v


class AdminUserUpdate(ProfileUpdate):
    """
    Admin-only update: profile fields plus username, role and active flag.
    """

    username: str | None = Field(default=None, min_length=3, max_length=20)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        return _check_username(v) if v is not None else v


class UserFilters(PageParams):
    limit: int = Field(default=50, ge=1, le=100)
    active_only: bool = False
    role: Role | None = None
    search: str | None = None


class UserStats(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    admin_users: int
    regular_users: int


class UserListData(BaseModel):
    users: list[UserRead]
    stats: UserStats
