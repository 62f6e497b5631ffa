# app/routers/products.py
import uuid
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.media import MediaStore, get_media_store, read_uploads
from app.database import get_session
from app.repositories.category_repo import CategoryRepository
from app.repositories.group_repo import GroupRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.common import Envelope, Pagination, form_model
from app.schemas.group import GroupRead
from app.schemas.product import (
    GroupProducts,
    ProductCreate,
    ProductDetail,
    ProductFilters,
    ProductImageRead,
    ProductImageUpdate,
    ProductRead,
    ProductStats,
    ProductUpdate,
)
from app.services.category_service import CategoryService
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
category_repo = CategoryRepository()
group_repo = GroupRepository()


def get_product_service(media: MediaStore = Depends(get_media_store)) -> ProductService:
    return ProductService(
        repo,
        category_repo,
        group_repo,
        CategoryService(category_repo, media),
        media,
    )


def _group_products_response(group, products, total: int, filters: ProductFilters) -> dict:
    return {
        "success": True,
        "data": GroupProducts(
            group_info=GroupRead.model_validate(group),
            products=[ProductRead.model_validate(p) for p in products],
        ),
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


# -------- Public endpoints --------


@router.get("", response_model=Envelope[list[ProductRead]])
def list_products(
    filters: Annotated[ProductFilters, Query()],
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    List products.

    - Expired products are hidden unless `include_expired=true`.
    - Search matches name, color and phone.
    """
    products, total = service.list_products(session, filters)
    return {
        "success": True,
        "data": [ProductRead.model_validate(p) for p in products],
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get("/active", response_model=Envelope[list[ProductRead]])
def list_available_products(
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """Active, unexpired products, newest first."""
    products = service.list_available(session, limit)
    return {"success": True, "data": [ProductRead.model_validate(p) for p in products]}


@router.get("/slug/{slug}", response_model=Envelope[ProductDetail])
def get_product_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    product = service.get_by_slug(session, slug)
    return {"success": True, "data": ProductDetail.model_validate(product)}


@router.get("/group/{group_id}", response_model=Envelope[GroupProducts])
def list_group_products(
    group_id: uuid.UUID,
    filters: Annotated[ProductFilters, Query()],
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    group, products, total = service.list_by_group(session, group_id, filters)
    return _group_products_response(group, products, total, filters)


@router.get("/group/{group_id}/active", response_model=Envelope[GroupProducts])
def list_active_group_products(
    group_id: uuid.UUID,
    filters: Annotated[ProductFilters, Query()],
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    group, products, total = service.list_by_group(
        session, group_id, filters, active_only=True
    )
    return _group_products_response(group, products, total, filters)


@router.get(
    "/admin/stats",
    response_model=Envelope[ProductStats],
    dependencies=[Depends(require_admin)],
)
def get_product_stats(
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return {"success": True, "data": service.get_stats(session)}


@router.get("/{product_id}", response_model=Envelope[ProductDetail])
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    product = service.get_product(session, product_id)
    return {"success": True, "data": ProductDetail.model_validate(product)}


@router.get(
    "/{product_id}/images",
    response_model=Envelope[list[ProductImageRead]],
)
def list_product_images(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    List active gallery images for a product, primary first.
    """
    images = service.list_images(session, product_id)
    return {"success": True, "data": [ProductImageRead.model_validate(i) for i in images]}


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[ProductDetail],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    name: str | None = Form(None),
    category_id: str | None = Form(None),
    group_id: str | None = Form(None),
    color: str | None = Form(None),
    phone: str | None = Form(None),
    price: str | None = Form(None),
    quantity: str | None = Form(None),
    is_active: str | None = Form(None),
    expiration_date: str | None = Form(None),
    images: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Create a product (admin only).

    Multipart form with up to 10 `images`; the first one is primary.
    """
    payload = form_model(
        ProductCreate,
        name=name,
        category_id=category_id,
        group_id=group_id,
        color=color,
        phone=phone,
        price=price,
        quantity=quantity,
        is_active=is_active,
        expiration_date=expiration_date,
    )
    product = service.create_product(session, payload, read_uploads(images))
    return {
        "success": True,
        "message": "Product created successfully",
        "data": ProductDetail.model_validate(product),
    }


@router.put(
    "/{product_id}",
    response_model=Envelope[ProductRead],
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Update an existing product (admin only).
    """
    product = service.update_product(session, product_id, payload)
    return {
        "success": True,
        "message": "Product updated successfully",
        "data": ProductRead.model_validate(product),
    }


@router.patch(
    "/{product_id}/toggle-status",
    response_model=Envelope[ProductRead],
    dependencies=[Depends(require_admin)],
)
def toggle_product_status(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    product = service.toggle_status(session, product_id)
    state = "activated" if product.is_active else "deactivated"
    return {
        "success": True,
        "message": f"Product {state} successfully",
        "data": ProductRead.model_validate(product),
    }


@router.delete(
    "/{product_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Delete a product and all of its images (admin only).
    """
    service.delete_product(session, product_id)
    return {"success": True, "message": "Product deleted successfully"}


@router.post(
    "/{product_id}/images",
    response_model=Envelope[list[ProductImageRead]],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def add_product_images(
    product_id: uuid.UUID,
    images: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    created = service.add_images(session, product_id, read_uploads(images))
    return {
        "success": True,
        "message": "Images added successfully",
        "data": [ProductImageRead.model_validate(i) for i in created],
    }


@router.put(
    "/{product_id}/images/{image_id}",
    response_model=Envelope[ProductImageRead],
    dependencies=[Depends(require_admin)],
)
def update_product_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    payload: ProductImageUpdate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    image = service.update_image(session, product_id, image_id, payload)
    return {
        "success": True,
        "message": "Image updated successfully",
        "data": ProductImageRead.model_validate(image),
    }


@router.patch(
    "/{product_id}/images/{image_id}/set-primary",
    response_model=Envelope[ProductImageRead],
    dependencies=[Depends(require_admin)],
)
def set_primary_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    image = service.set_primary_image(session, product_id, image_id)
    return {
        "success": True,
        "message": "Primary image set successfully",
        "data": ProductImageRead.model_validate(image),
    }


@router.delete(
    "/{product_id}/images/{image_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_product_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    service.delete_image(session, product_id, image_id)
    return {"success": True, "message": "Image deleted successfully"}
