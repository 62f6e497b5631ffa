# app/schemas/category.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank

CategorySort = Literal["name", "-name", "created_at", "-created_at", "counts", "-counts"]


class CategoryCreate(SQLModel):
    """
    Payload for creating a category (multipart form; logo is a separate file field).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    is_active: bool = True

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class CategoryUpdate(SQLModel):
    """
    Partial update payload for categories.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    is_active: bool | None = None

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return not_blank(v)


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str
    logo_url: str | None = None
    counts: int
    is_active: bool
    formatted_date: str | None = None
    created_at: datetime
    updated_at: datetime


class CategoryFilters(PageParams):
    search: str | None = None
    is_active: bool | None = None
    sort: CategorySort = "name"


class CategoryStats(BaseModel):
    total_categories: int
    active_categories: int
    inactive_categories: int
    total_products: int
    top_categories: list[CategoryRead]
