# app/schemas/blog.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank

BlogSort = Literal["recent", "popular", "views", "likes"]


class BlogCreate(SQLModel):
    """
    Payload for creating a blog post (multipart form).

    thumbnail and gallery are file fields; at least one gallery image
    is required (checked by BlogService).
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200)
    description: str = Field(max_length=5000)
    is_active: bool = True

    @field_validator("title", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class BlogUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    is_active: bool | None = None

    @field_validator("title", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return not_blank(v)


class GalleryImage(BaseModel):
    url: str
    public_id: str | None = None


class BlogRead(SQLModel):
    id: uuid.UUID
    title: str
    description: str
    thumbnail: str
    gallery: list[GalleryImage]
    service_id: uuid.UUID
    is_active: bool
    slug: str
    views: int
    likes: int
    formatted_views: str
    formatted_likes: str
    gallery_count: int
    estimated_reading_time: str
    created_at: datetime
    updated_at: datetime


class BlogFilters(PageParams):
    active_only: bool = True
    sort: BlogSort = "recent"


class BlogStats(BaseModel):
    id: uuid.UUID
    title: str
    views: int
    likes: int
    gallery_count: int
    estimated_reading_time: str
    is_active: bool
    service_id: uuid.UUID
    service_title: str | None = None
    created_at: datetime
    updated_at: datetime
