# app/services/category_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.media import (
    ImageFile,
    MediaStore,
    discard_image,
    discard_on_error,
    store_image,
)
from app.core.slug import unique_slug
from app.models.category import Category
from app.repositories.category_repo import CategoryRepository
from app.schemas.category import (
    CategoryCreate,
    CategoryFilters,
    CategoryRead,
    CategoryStats,
    CategoryUpdate,
)

LOGO_FOLDER = "categories/logos"


class CategoryService:
    """
    Business logic for Category.

    Responsibilities:
      - case-insensitive name uniqueness, slug generation
      - logo upload / replacement / cleanup
      - product count maintenance (called by ProductService)
      - deletion guard while products are filed under the category
    """

    def __init__(self, repo: CategoryRepository, media: MediaStore):
        self.repo = repo
        self.media = media

    # ---- internal helpers ----

    def _ensure_name_free(
        self,
        session: Session,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if self.repo.get_by_name(session, name, exclude_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Category with this name already exists",
            )

    # ---- public operations ----

    def create_category(
        self,
        session: Session,
        payload: CategoryCreate,
        logo: ImageFile | None = None,
    ) -> Category:
        self._ensure_name_free(session, payload.name)

        category = Category(
            name=payload.name,
            description=payload.description,
            is_active=payload.is_active,
            slug=unique_slug(session, Category, payload.name, fallback="category"),
        )

        if logo is not None:
            asset = store_image(self.media, logo, LOGO_FOLDER)
            category.logo_url = asset.url
            category.logo_public_id = asset.public_id

        with discard_on_error(self.media, [category.logo_public_id]):
            return self.repo.create(session, category)

    def list_categories(
        self,
        session: Session,
        filters: CategoryFilters,
    ) -> tuple[list[Category], int]:
        return self.repo.search(session, filters)

    def list_active(self, session: Session) -> list[Category]:
        return self.repo.list_active(session)

    def get_category(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def get_by_slug(self, session: Session, slug: str) -> Category:
        """Public lookup: inactive categories are hidden."""
        category = self.repo.get_by_slug(session, slug)
        if not category or not category.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        payload: CategoryUpdate,
        logo: ImageFile | None = None,
    ) -> Category:
        """
        Partial update.

        - Renaming re-checks uniqueness and regenerates the slug.
        - A new logo replaces the old one (old asset deleted first).
        """
        category = self.get_category(session, category_id)

        if payload.name is not None and payload.name != category.name:
            self._ensure_name_free(session, payload.name, exclude_id=category.id)
            category.name = payload.name
            category.slug = unique_slug(
                session, Category, payload.name, fallback="category", exclude_id=category.id
            )

        if payload.description is not None:
            category.description = payload.description

        if payload.is_active is not None:
            category.is_active = payload.is_active

        if logo is not None:
            discard_image(self.media, category.logo_public_id)
            asset = store_image(self.media, logo, LOGO_FOLDER)
            category.logo_url = asset.url
            category.logo_public_id = asset.public_id

        return self.repo.update(session, category)

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        """
        Delete a category and its logo.

        Blocked while products are still filed under it.
        """
        category = self.get_category(session, category_id)
        if category.counts > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Cannot delete category with existing products. "
                    "Please move or delete products first."
                ),
            )

        discard_image(self.media, category.logo_public_id)
        self.repo.delete(session, category)

    def toggle_status(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.get_category(session, category_id)
        category.is_active = not category.is_active
        return self.repo.update(session, category)

    def get_stats(self, session: Session) -> CategoryStats:
        total = self.repo.count(session)
        active = self.repo.count(session, is_active=True)
        return CategoryStats(
            total_categories=total,
            active_categories=active,
            inactive_categories=total - active,
            total_products=self.repo.total_products(session),
            top_categories=[
                CategoryRead.model_validate(c) for c in self.repo.top_by_counts(session)
            ],
        )

    # ----- Count maintenance -----

    def adjust_count(self, session: Session, category_id: uuid.UUID, delta: int) -> None:
        """
        Add `delta` to the product count, never going below zero.
        Missing categories are ignored (the product may outlive them).
        """
        category = self.repo.get_by_id(session, category_id)
        if category is None:
            return
        category.counts = max(0, category.counts + delta)
        self.repo.update(session, category)
