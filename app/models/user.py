# app/models/user.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.core.helpers import utcnow


class User(SQLModel, table=True):
    """
    Account of a community member.

    Role:
      - "user" | "admin"
      - "guest" is represented by a missing token.

    Accounts are soft-deactivated (is_active=False) by default; hard
    deletion is an explicit admin action.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    full_name: str = Field(
        max_length=50,
        description="Display name",
    )

    username: str = Field(
        max_length=20,
        unique=True,
        index=True,
        description="Login handle: letters, digits, underscore",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Lower-cased email address",
    )

    phone: str = Field(
        max_length=16,
        unique=True,
        index=True,
        description="Phone number, optional leading +",
    )

    password_hash: str = Field(
        description="bcrypt hash; never serialized",
    )

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Inactive accounts cannot log in",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )
