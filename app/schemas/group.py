# app/schemas/group.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank

ApprovalStatus = Literal["pending", "approved", "rejected"]
MemberStatus = Literal["pending", "approved", "rejected"]
MemberRole = Literal["member", "admin"]


def _check_link(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if not (v.startswith("http://") or v.startswith("https://")):
        raise ValueError("Link must be a valid URL starting with http:// or https://")
    return v


class GroupCreate(SQLModel):
    """
    Payload for creating a group (multipart form; group_icon is a separate file field).

    Any authenticated user may create a group; it starts pending approval.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    description: str = Field(max_length=1000)
    service_id: uuid.UUID
    is_private: bool = False
    link: str | None = None

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str | None) -> str | None:
        return _check_link(v)


class GroupUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    is_private: bool | None = None
    link: str | None = None

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return not_blank(v)

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str | None) -> str | None:
        return _check_link(v)


class GroupMemberRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    status: MemberStatus
    role: MemberRole
    joined_at: datetime


class GroupRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str
    group_icon: str
    link: str | None = None
    is_active: bool
    is_private: bool
    service_id: uuid.UUID
    created_by: uuid.UUID
    group_admin: uuid.UUID
    members_count: int
    formatted_members: str
    approval_status: ApprovalStatus
    slug: str
    created_at: datetime
    updated_at: datetime


class GroupDetail(GroupRead):
    members: list[GroupMemberRead] = []


class MyGroupRead(GroupRead):
    my_status: MemberStatus


class GroupFilters(PageParams):
    """
    Listing filters.

    - pending / approved: admin-only views of the approval queue
    - owner: groups the caller created or administers
    """

    service_id: uuid.UUID | None = None
    is_private: bool | None = None
    pending: bool = False
    approved: bool = False
    owner: bool = False


class JoinRequestFilters(SQLModel):
    status: MemberStatus = "pending"
