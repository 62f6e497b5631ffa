# app/repositories/product_repo.py
import uuid
from datetime import date

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.category import Category
from app.models.group import Group
from app.models.product import Product, ProductImage
from app.repositories.pagination import fetch_page, order_by_sort_key
from app.schemas.product import ProductFilters


class ProductRepository:
    """
    Data access layer for Product & ProductImage.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def search(
        self,
        session: Session,
        filters: ProductFilters,
    ) -> tuple[list[Product], int]:
        stmt = select(Product)

        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Product.name).like(pattern),
                    func.lower(Product.color).like(pattern),
                    Product.phone.like(pattern),
                )
            )
        if filters.category_id is not None:
            stmt = stmt.where(Product.category_id == filters.category_id)
        if filters.group_id is not None:
            stmt = stmt.where(Product.group_id == filters.group_id)
        if filters.is_active is not None:
            stmt = stmt.where(Product.is_active == filters.is_active)
        if filters.in_stock is True:
            stmt = stmt.where(Product.quantity > 0)
        elif filters.in_stock is False:
            stmt = stmt.where(Product.quantity == 0)
        if filters.min_price is not None:
            stmt = stmt.where(Product.price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Product.price <= filters.max_price)
        if filters.color:
            stmt = stmt.where(func.lower(Product.color).like(f"%{filters.color.lower()}%"))
        if not filters.include_expired:
            stmt = stmt.where(Product.expiration_date > date.today())

        stmt = stmt.order_by(order_by_sort_key(Product, filters.sort))
        return fetch_page(session, stmt, filters.offset, filters.limit)

    def list_available(
        self,
        session: Session,
        limit: int,
        group_id: uuid.UUID | None = None,
    ) -> list[Product]:
        """Active, unexpired products, newest first."""
        stmt = select(Product).where(
            Product.is_active == True,  # noqa: E712
            Product.expiration_date > date.today(),
        )
        if group_id is not None:
            stmt = stmt.where(Product.group_id == group_id)
        stmt = stmt.order_by(Product.created_at.desc()).limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        product.updated_at = utcnow()
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()

    # ----- Statistics -----

    def count(self, session: Session, *conditions) -> int:
        stmt = select(func.count()).select_from(Product)
        for condition in conditions:
            stmt = stmt.where(condition)
        return int(session.exec(stmt).one() or 0)

    def breakdown_by_category(self, session: Session) -> list[tuple]:
        stmt = (
            select(
                Category.id,
                Category.name,
                func.count(Product.id),
                func.coalesce(func.sum(Product.price * Product.quantity), 0.0),
            )
            .join(Category, Category.id == Product.category_id)
            .group_by(Category.id, Category.name)
            .order_by(func.count(Product.id).desc())
        )
        return list(session.exec(stmt).all())

    def breakdown_by_group(self, session: Session) -> list[tuple]:
        stmt = (
            select(
                Group.id,
                Group.name,
                func.count(Product.id),
                func.coalesce(func.sum(Product.price * Product.quantity), 0.0),
            )
            .join(Group, Group.id == Product.group_id)
            .group_by(Group.id, Group.name)
            .order_by(func.count(Product.id).desc())
        )
        return list(session.exec(stmt).all())

    def top_by_quantity(self, session: Session, limit: int = 5) -> list[Product]:
        stmt = select(Product).order_by(Product.quantity.desc()).limit(limit)
        return list(session.exec(stmt).all())

    def price_summary(self, session: Session) -> tuple:
        """(min, max, avg, total inventory value)"""
        stmt = select(
            func.coalesce(func.min(Product.price), 0.0),
            func.coalesce(func.max(Product.price), 0.0),
            func.coalesce(func.avg(Product.price), 0.0),
            func.coalesce(func.sum(Product.price * Product.quantity), 0.0),
        )
        return session.exec(stmt).one()

    # ----- Product images -----

    def list_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        active_only: bool = False,
    ) -> list[ProductImage]:
        """Primary image first, then by order."""
        stmt = select(ProductImage).where(ProductImage.product_id == product_id)
        if active_only:
            stmt = stmt.where(ProductImage.is_active == True)  # noqa: E712
        stmt = stmt.order_by(
            ProductImage.is_primary.desc(),
            ProductImage.order,
            ProductImage.created_at,
        )
        return list(session.exec(stmt).all())

    def get_image_by_id(
        self,
        session: Session,
        image_id: uuid.UUID,
    ) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def next_sort_order(self, session: Session, product_id: uuid.UUID) -> int:
        stmt = select(func.max(ProductImage.order)).where(
            ProductImage.product_id == product_id
        )
        current = session.exec(stmt).one()
        return 0 if current is None else int(current) + 1

    def has_primary(self, session: Session, product_id: uuid.UUID) -> bool:
        stmt = select(ProductImage.id).where(
            ProductImage.product_id == product_id,
            ProductImage.is_primary == True,  # noqa: E712
        )
        return session.exec(stmt).first() is not None

    def clear_primary(
        self,
        session: Session,
        product_id: uuid.UUID,
        except_id: uuid.UUID | None = None,
    ) -> None:
        """Unset is_primary on every image of the product (no commit)."""
        stmt = select(ProductImage).where(
            ProductImage.product_id == product_id,
            ProductImage.is_primary == True,  # noqa: E712
        )
        for image in session.exec(stmt).all():
            if image.id != except_id:
                image.is_primary = False
                session.add(image)

    def first_active_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        exclude_id: uuid.UUID | None = None,
    ) -> ProductImage | None:
        stmt = select(ProductImage).where(
            ProductImage.product_id == product_id,
            ProductImage.is_active == True,  # noqa: E712
        )
        if exclude_id is not None:
            stmt = stmt.where(ProductImage.id != exclude_id)
        stmt = stmt.order_by(ProductImage.order, ProductImage.created_at)
        return session.exec(stmt).first()

    def save_image(self, session: Session, image: ProductImage) -> ProductImage:
        session.add(image)
        session.commit()
        session.refresh(image)
        return image

    def delete_image(self, session: Session, image: ProductImage) -> None:
        session.delete(image)
        session.commit()
