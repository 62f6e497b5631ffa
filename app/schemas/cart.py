# app/schemas/cart.py
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.common import PageParams

CartStatus = Literal["active", "pending", "approved", "rejected", "cancelled"]

CartSort = Literal[
    "created_at", "-created_at",
    "total_amount", "-total_amount",
    "submitted_at", "-submitted_at",
]


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=1000)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    0 removes the item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(ge=0, le=1000)


class CartSubmit(SQLModel):
    model_config = ConfigDict(extra="forbid")

    notes: str | None = Field(default=None, max_length=500)


class CartDecision(SQLModel):
    """Admin approve/reject payload."""

    model_config = ConfigDict(extra="forbid")

    admin_notes: str | None = Field(default=None, max_length=500)


class CartProduct(SQLModel):
    """Current state of the product behind a cart line."""

    id: uuid.UUID
    name: str
    slug: str
    price: float
    quantity: int
    is_active: bool
    expiration_date: date
    is_expired: bool
    primary_image_url: str | None = None


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price_at_time: float
    line_total: float
    added_at: datetime
    product: CartProduct | None = None


class CartRead(SQLModel):
    """
    Full cart response model with totals.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    status: CartStatus
    items: list[CartItemRead]
    total_amount: float
    total_items: int
    formatted_total_amount: str
    cart_age: int
    notes: str | None = None
    admin_notes: str | None = None
    submitted_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CartHistoryFilters(PageParams):
    status: CartStatus | None = None


class AdminCartFilters(PageParams):
    status: CartStatus | None = None
    user_id: uuid.UUID | None = None
    sort: CartSort = "-created_at"


class PendingCartFilters(SQLModel):
    limit: int = Field(default=50, ge=1, le=100)
