# app/repositories/category_repo.py
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.category import Category
from app.repositories.pagination import fetch_page, order_by_sort_key
from app.schemas.category import CategoryFilters


class CategoryRepository:
    """
    Data access layer for Category.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, category_id: uuid.UUID) -> Category | None:
        return session.get(Category, category_id)

    def get_by_slug(self, session: Session, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return session.exec(stmt).first()

    def get_by_name(
        self,
        session: Session,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Category | None:
        """Case-insensitive name lookup."""
        stmt = select(Category).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        return session.exec(stmt).first()

    def search(
        self,
        session: Session,
        filters: CategoryFilters,
    ) -> tuple[list[Category], int]:
        stmt = select(Category)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Category.name).like(pattern),
                    func.lower(Category.description).like(pattern),
                )
            )
        if filters.is_active is not None:
            stmt = stmt.where(Category.is_active == filters.is_active)
        stmt = stmt.order_by(order_by_sort_key(Category, filters.sort))
        return fetch_page(session, stmt, filters.offset, filters.limit)

    def list_active(self, session: Session) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.is_active == True)  # noqa: E712
            .order_by(Category.name)
        )
        return list(session.exec(stmt).all())

    def top_by_counts(self, session: Session, limit: int = 5) -> list[Category]:
        stmt = select(Category).order_by(Category.counts.desc()).limit(limit)
        return list(session.exec(stmt).all())

    def count(self, session: Session, is_active: bool | None = None) -> int:
        stmt = select(func.count()).select_from(Category)
        if is_active is not None:
            stmt = stmt.where(Category.is_active == is_active)
        return int(session.exec(stmt).one() or 0)

    def total_products(self, session: Session) -> int:
        stmt = select(func.coalesce(func.sum(Category.counts), 0))
        return int(session.exec(stmt).one() or 0)

    def create(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def update(self, session: Session, category: Category) -> Category:
        category.updated_at = utcnow()
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def delete(self, session: Session, category: Category) -> None:
        session.delete(category)
        session.commit()
