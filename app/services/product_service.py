# app/services/product_service.py
import logging
import uuid
from datetime import date

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.media import (
    ImageFile,
    MediaStore,
    UploadedAsset,
    discard_image,
    discard_on_error,
    store_image,
    validate_image,
)
from app.core.slug import unique_slug
from app.models.group import Group
from app.models.product import Product, ProductImage
from app.repositories.category_repo import CategoryRepository
from app.repositories.group_repo import GroupRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    PriceStats,
    ProductBucket,
    ProductCreate,
    ProductFilters,
    ProductImageUpdate,
    ProductStats,
    ProductUpdate,
    TopProduct,
)
from app.services.category_service import CategoryService

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for Product & ProductImage.

    Responsibilities:
      - category / group validation, slug generation
      - category product counts (create / delete / move)
      - image upload orchestration, with cleanup when a batch fails
      - exactly one primary image per product
      - inventory statistics
    """

    def __init__(
        self,
        repo: ProductRepository,
        category_repo: CategoryRepository,
        group_repo: GroupRepository,
        category_service: CategoryService,
        media: MediaStore,
    ):
        self.repo = repo
        self.category_repo = category_repo
        self.group_repo = group_repo
        self.category_service = category_service
        self.media = media

    # ----- Helpers -----

    def _check_category(self, session: Session, category_id: uuid.UUID) -> None:
        category = self.category_repo.get_by_id(session, category_id)
        if not category:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Category not found",
            )
        if not category.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot create product in inactive category",
            )

    def _check_group(self, session: Session, group_id: uuid.UUID) -> None:
        group = self.group_repo.get_by_id(session, group_id)
        if not group:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Group not found",
            )
        if not group.is_active or group.approval_status != "approved":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot create product in inactive group",
            )

    def _upload_batch(
        self,
        product_id: uuid.UUID,
        images: list[ImageFile],
    ) -> list[UploadedAsset]:
        """
        Upload all images or none: every file is validated first, and if
        an upload fails the ones already stored are deleted again.
        """
        for image in images:
            validate_image(image)

        folder = f"products/{product_id}"
        uploaded: list[UploadedAsset] = []
        try:
            for image in images:
                uploaded.append(store_image(self.media, image, folder))
        except HTTPException:
            for asset in uploaded:
                discard_image(self.media, asset.public_id)
            raise
        return uploaded

    def _get_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> ProductImage:
        image = self.repo.get_image_by_id(session, image_id)
        if not image or image.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )
        return image

    def _promote_next_primary(
        self,
        session: Session,
        product_id: uuid.UUID,
        exclude_id: uuid.UUID,
    ) -> None:
        """Give the primary flag to the first remaining active image (no commit)."""
        successor = self.repo.first_active_image(session, product_id, exclude_id=exclude_id)
        if successor is not None:
            successor.is_primary = True
            session.add(successor)

    def _get_visible_group(self, session: Session, group_id: uuid.UUID) -> Group:
        group = self.group_repo.get_by_id(session, group_id)
        if not group:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Group not found",
            )
        if not group.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Group is not active",
            )
        return group

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        filters: ProductFilters,
    ) -> tuple[list[Product], int]:
        return self.repo.search(session, filters)

    def list_available(self, session: Session, limit: int = 20) -> list[Product]:
        return self.repo.list_available(session, limit)

    def list_by_group(
        self,
        session: Session,
        group_id: uuid.UUID,
        filters: ProductFilters,
        active_only: bool = False,
    ) -> tuple[Group, list[Product], int]:
        """
        Products of a group. The group must exist (404) and be active (403).
        """
        group = self._get_visible_group(session, group_id)
        update = {"group_id": group.id}
        if active_only:
            update["is_active"] = True
        products, total = self.repo.search(session, filters.model_copy(update=update))
        return group, products, total

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_by_slug(self, session: Session, slug: str) -> Product:
        """Public lookup: inactive products are hidden."""
        product = self.repo.get_by_slug(session, slug)
        if not product or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
        images: list[ImageFile] | None = None,
    ) -> Product:
        """
        Create a product with optional images.

        - category and group must exist and be active
        - first image becomes primary, order follows upload order
        - the category's product count is incremented
        """
        self._check_category(session, payload.category_id)
        self._check_group(session, payload.group_id)

        product = Product(
            **payload.model_dump(),
            slug=unique_slug(session, Product, payload.name, fallback="product"),
        )

        for index, asset in enumerate(self._upload_batch(product.id, images or [])):
            product.images.append(
                ProductImage(
                    image_url=asset.url,
                    image_public_id=asset.public_id,
                    is_primary=index == 0,
                    order=index,
                )
            )

        with discard_on_error(self.media, [i.image_public_id for i in product.images]):
            product = self.repo.create(session, product)
        self.category_service.adjust_count(session, product.category_id, +1)
        session.refresh(product)
        return product

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update.

        - moving to another category adjusts both categories' counts
        - renaming regenerates the slug
        """
        product = self.get_product(session, product_id)
        changes = payload.model_dump(exclude_unset=True)
        old_category_id = product.category_id

        new_category_id = changes.get("category_id")
        if new_category_id is not None and new_category_id != old_category_id:
            self._check_category(session, new_category_id)

        new_group_id = changes.get("group_id")
        if new_group_id is not None and new_group_id != product.group_id:
            self._check_group(session, new_group_id)

        name = changes.get("name")
        if name is not None and name != product.name:
            product.slug = unique_slug(
                session, Product, name, fallback="product", exclude_id=product.id
            )

        # phone is the only nullable column; other explicit nulls are ignored
        for field, value in changes.items():
            if value is not None or field == "phone":
                setattr(product, field, value)

        product = self.repo.update(session, product)

        if product.category_id != old_category_id:
            self.category_service.adjust_count(session, old_category_id, -1)
            self.category_service.adjust_count(session, product.category_id, +1)
            session.refresh(product)

        return product

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product, its images (rows and stored files), and
        decrement its category's count.
        """
        product = self.get_product(session, product_id)
        category_id = product.category_id

        for image in product.images:
            discard_image(self.media, image.image_public_id)

        self.repo.delete(session, product)
        self.category_service.adjust_count(session, category_id, -1)

    def toggle_status(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.get_product(session, product_id)
        product.is_active = not product.is_active
        return self.repo.update(session, product)

    # ----- Gallery images -----

    def list_images(self, session: Session, product_id: uuid.UUID) -> list[ProductImage]:
        """Active images, primary first, then by order."""
        self.get_product(session, product_id)
        return self.repo.list_images(session, product_id, active_only=True)

    def add_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        images: list[ImageFile],
    ) -> list[ProductImage]:
        """
        Append images to a product's gallery.
        The first one becomes primary if the product has none.
        """
        product = self.get_product(session, product_id)
        if not images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No images provided",
            )

        needs_primary = not self.repo.has_primary(session, product.id)
        next_order = self.repo.next_sort_order(session, product.id)

        created: list[ProductImage] = []
        for index, asset in enumerate(self._upload_batch(product.id, images)):
            image = ProductImage(
                product_id=product.id,
                image_url=asset.url,
                image_public_id=asset.public_id,
                is_primary=needs_primary and index == 0,
                order=next_order + index,
            )
            session.add(image)
            created.append(image)

        session.commit()
        for image in created:
            session.refresh(image)
        return created

    def update_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
        payload: ProductImageUpdate,
    ) -> ProductImage:
        image = self._get_image(session, product_id, image_id)

        if payload.is_active is not None:
            image.is_active = payload.is_active
        if payload.order is not None:
            image.order = payload.order

        if payload.is_primary is True:
            if not image.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot set inactive image as primary",
                )
            self.repo.clear_primary(session, product_id, except_id=image.id)
            image.is_primary = True
        elif payload.is_primary is False:
            image.is_primary = False

        # A deactivated primary hands the flag over
        if image.is_primary and not image.is_active:
            image.is_primary = False
            self._promote_next_primary(session, product_id, image.id)

        return self.repo.save_image(session, image)

    def set_primary_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> ProductImage:
        image = self._get_image(session, product_id, image_id)
        if not image.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot set inactive image as primary",
            )
        self.repo.clear_primary(session, product_id, except_id=image.id)
        image.is_primary = True
        return self.repo.save_image(session, image)

    def delete_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> None:
        """
        Delete one image and its stored file.
        Removing the primary promotes the next active image.
        """
        image = self._get_image(session, product_id, image_id)
        discard_image(self.media, image.image_public_id)

        if image.is_primary:
            self._promote_next_primary(session, product_id, image.id)

        self.repo.delete_image(session, image)

    # ----- Statistics -----

    def get_stats(self, session: Session) -> ProductStats:
        today = date.today()
        low_stock_threshold = get_settings().LOW_STOCK_THRESHOLD
        count = self.repo.count

        total = count(session)
        active = count(session, Product.is_active == True)  # noqa: E712

        min_price, max_price, avg_price, inventory_value = self.repo.price_summary(session)

        return ProductStats(
            total_products=total,
            active_products=active,
            inactive_products=total - active,
            out_of_stock=count(session, Product.quantity == 0),
            expired_products=count(session, Product.expiration_date <= today),
            low_stock=count(
                session,
                Product.quantity > 0,
                Product.quantity <= low_stock_threshold,
            ),
            by_category=[
                ProductBucket(id=row[0], name=row[1], count=row[2], total_value=row[3])
                for row in self.repo.breakdown_by_category(session)
            ],
            by_group=[
                ProductBucket(id=row[0], name=row[1], count=row[2], total_value=row[3])
                for row in self.repo.breakdown_by_group(session)
            ],
            top_by_quantity=[
                TopProduct(id=p.id, name=p.name, quantity=p.quantity, price=p.price)
                for p in self.repo.top_by_quantity(session)
            ],
            price_stats=PriceStats(
                min_price=float(min_price),
                max_price=float(max_price),
                avg_price=round(float(avg_price), 2),
                total_inventory_value=float(inventory_value),
            ),
        )
