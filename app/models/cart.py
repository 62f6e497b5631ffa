# app/models/cart.py
import uuid
from datetime import datetime

from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field, Relationship

from app.core.helpers import as_utc, format_money, utcnow


class Cart(SQLModel, table=True):
    """
    Shopping cart of a user, and its approval state.

    Status lifecycle:
      active -> pending            (user submits)
      pending -> approved|rejected (admin decides)
      active|pending|rejected -> cancelled (owner cancels)

    A user has at most one "active" cart (partial unique index).
    total_amount / total_items are derived from items by CartService
    before every save.
    """

    __tablename__ = "carts"
    __table_args__ = (
        Index(
            "uq_carts_one_active_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
        description="Owner of the cart",
    )

    status: str = Field(
        default="active",
        index=True,
        description="active | pending | approved | rejected | cancelled",
    )

    total_amount: float = Field(default=0, ge=0)
    total_items: int = Field(default=0, ge=0)

    notes: str | None = Field(
        default=None,
        max_length=500,
        description="Notes from the user at submit time",
    )

    admin_notes: str | None = Field(
        default=None,
        max_length=500,
        description="Notes from the admin decision",
    )

    submitted_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )

    items: list["CartItem"] = Relationship(
        back_populates="cart",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "CartItem.added_at",
        },
    )

    @property
    def formatted_total_amount(self) -> str:
        return format_money(self.total_amount)

    @property
    def cart_age(self) -> int:
        """Age in whole days."""
        if not self.created_at:
            return 0
        return (utcnow() - as_utc(self.created_at)).days

    def find_item(self, product_id: uuid.UUID) -> "CartItem | None":
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None


class CartItem(SQLModel, table=True):
    """
    Line of a cart.

    price_at_time is captured when the product is first added and is
    never re-read from the product afterwards.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        ondelete="CASCADE",
        index=True,
    )

    # Plain reference: the product may be deleted later, the cart then drops the line
    product_id: uuid.UUID = Field(index=True)

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    price_at_time: float = Field(
        ge=0,
        description="Unit price when added to cart",
    )

    added_at: datetime = Field(
        default_factory=utcnow,
    )

    cart: Cart | None = Relationship(back_populates="items")

    @property
    def line_total(self) -> float:
        return self.price_at_time * self.quantity
