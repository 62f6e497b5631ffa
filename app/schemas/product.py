# app/schemas/product.py
import re
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams, not_blank
from app.schemas.group import GroupRead

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")

ProductSort = Literal[
    "name", "-name",
    "price", "-price",
    "quantity", "-quantity",
    "created_at", "-created_at",
    "expiration_date", "-expiration_date",
]


def _check_phone(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if not PHONE_RE.match(v):
        raise ValueError("Please provide a valid phone number")
    return v


def _check_future(v: date | None) -> date | None:
    if v is not None and v <= date.today():
        raise ValueError("Expiration date must be in the future")
    return v


class ProductCreate(SQLModel):
    """
    Payload for creating a product (multipart form; images are file fields).

    - expiration_date must be after today
    - first uploaded image becomes the primary image
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=200)
    category_id: uuid.UUID
    group_id: uuid.UUID
    color: str = Field(min_length=2, max_length=50)
    phone: str | None = Field(default=None, max_length=20)
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    is_active: bool = True
    expiration_date: date

    @field_validator("name", "color")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @field_validator("expiration_date")
    @classmethod
    def in_future(cls, v: date) -> date:
        return _check_future(v)


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=200)
    category_id: uuid.UUID | None = None
    group_id: uuid.UUID | None = None
    color: str | None = Field(default=None, min_length=2, max_length=50)
    phone: str | None = Field(default=None, max_length=20)
    price: float | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    expiration_date: date | None = None

    @field_validator("name", "color")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return not_blank(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @field_validator("expiration_date")
    @classmethod
    def in_future(cls, v: date | None) -> date | None:
        return _check_future(v)


class ProductImageRead(SQLModel):
    """
    Read model for gallery images.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    image_url: str
    is_active: bool
    is_primary: bool
    order: int
    created_at: datetime


class ProductImageUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool | None = None
    is_primary: bool | None = None
    order: int | None = Field(default=None, ge=0)


class ProductRead(SQLModel):
    """
    Product representation for clients, including derived values.
    """

    id: uuid.UUID
    name: str
    slug: str
    category_id: uuid.UUID
    group_id: uuid.UUID
    color: str
    phone: str | None = None
    price: float
    quantity: int
    is_active: bool
    expiration_date: date
    is_expired: bool
    formatted_price: str
    formatted_expiration_date: str
    primary_image_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ProductDetail(ProductRead):
    images: list[ProductImageRead] = []


class ProductFilters(PageParams):
    search: str | None = None
    category_id: uuid.UUID | None = None
    group_id: uuid.UUID | None = None
    is_active: bool | None = None
    in_stock: bool | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    color: str | None = None
    include_expired: bool = False
    sort: ProductSort = "-created_at"


class GroupProducts(BaseModel):
    group_info: GroupRead
    products: list[ProductRead]


# ---- statistics ----


class ProductBucket(BaseModel):
    """Product count and inventory value for one category or group."""

    id: uuid.UUID
    name: str
    count: int
    total_value: float


class PriceStats(BaseModel):
    min_price: float
    max_price: float
    avg_price: float
    total_inventory_value: float


class TopProduct(BaseModel):
    id: uuid.UUID
    name: str
    quantity: int
    price: float


class ProductStats(BaseModel):
    total_products: int
    active_products: int
    inactive_products: int
    out_of_stock: int
    expired_products: int
    low_stock: int
    by_category: list[ProductBucket]
    by_group: list[ProductBucket]
    top_by_quantity: list[TopProduct]
    price_stats: PriceStats
