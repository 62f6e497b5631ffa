# app/schemas/service.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank
from app.schemas.group import GroupRead


class ServiceCreate(SQLModel):
    """
    Payload for creating a service (multipart form; icon is a separate file field).
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200)
    subtitle: str = Field(max_length=300)
    description: str = Field(max_length=2000)
    is_active: bool = True

    @field_validator("title", "subtitle", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class ServiceUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)
    subtitle: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=2000)
    is_active: bool | None = None

    @field_validator("title", "subtitle", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return not_blank(v)


class ServiceRead(SQLModel):
    id: uuid.UUID
    title: str
    subtitle: str
    description: str
    icon: str
    slug: str
    total_groups: int
    total_members: int
    formatted_groups: str
    formatted_members: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ServiceFilters(PageParams):
    active_only: bool = True


class ServiceStats(BaseModel):
    service: ServiceRead
    total_groups: int
    active_groups: int
    pending_groups: int
    total_members: int
    private_groups: int
    public_groups: int


class ServiceDetail(ServiceRead):
    """Service with its active, approved groups."""

    groups: list[GroupRead] = []
