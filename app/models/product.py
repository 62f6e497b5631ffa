# app/models/product.py
import uuid
from datetime import date, datetime

from sqlmodel import SQLModel, Field, Relationship

from app.core.helpers import format_money, utcnow


class Product(SQLModel, table=True):
    """
    Product listed by a group, filed under a category.

    Derived (read-only) values:
      - is_expired: expiration_date is today or earlier
      - formatted_price / formatted_expiration_date
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        min_length=2,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    category_id: uuid.UUID = Field(
        index=True,
        description="Category this product is filed under",
    )

    group_id: uuid.UUID = Field(
        index=True,
        description="Group selling this product",
    )

    color: str = Field(
        max_length=50,
        index=True,
    )

    phone: str | None = Field(
        default=None,
        max_length=20,
        index=True,
        description="Optional seller contact",
    )

    price: float = Field(
        ge=0,
        index=True,
        description="Unit price",
    )

    quantity: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible and purchasable",
    )

    expiration_date: date = Field(
        index=True,
        description="Last day the product is on offer (date only)",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )

    images: list["ProductImage"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "ProductImage.order",
        },
    )

    @property
    def is_expired(self) -> bool:
        return self.expiration_date <= date.today()

    @property
    def formatted_price(self) -> str:
        return format_money(self.price)

    @property
    def formatted_expiration_date(self) -> str:
        return self.expiration_date.isoformat()

    @property
    def is_purchasable(self) -> bool:
        return self.is_active and not self.is_expired and self.quantity > 0

    @property
    def primary_image_url(self) -> str | None:
        for image in self.images:
            if image.is_primary and image.is_active:
                return image.image_url
        return None


class ProductImage(SQLModel, table=True):
    """
    Gallery image of a product.

    At most one image per product has is_primary=True;
    ProductService clears the flag on siblings whenever it sets one.
    """

    __tablename__ = "product_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        ondelete="CASCADE",
        index=True,
        description="FK to products.id",
    )

    image_url: str = Field(
        description="Public URL in storage",
    )

    image_public_id: str = Field(
        description="Storage path (used for deletion)",
    )

    is_active: bool = Field(default=True)
    is_primary: bool = Field(default=False)

    order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )

    product: Product | None = Relationship(back_populates="images")
