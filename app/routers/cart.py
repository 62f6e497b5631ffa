# app/routers/cart.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    AdminCartFilters,
    CartDecision,
    CartHistoryFilters,
    CartItemCreate,
    CartItemUpdate,
    CartRead,
    CartSubmit,
    PendingCartFilters,
)
from app.schemas.common import Envelope, PageParams, Pagination
from app.services.cart_service import CART_UPDATED_MESSAGE, CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


# -------- User endpoints --------


@router.get("", response_model=Envelope[CartRead])
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get (or create) the current user's active cart.

    Lines that are no longer purchasable are dropped or clamped to stock;
    when that happens the response carries a notice.
    """
    cart, changed = service.get_active_cart(session, current_user)
    return {
        "success": True,
        "message": CART_UPDATED_MESSAGE if changed else None,
        "data": service.serialize(session, cart),
    }


@router.post("/add", response_model=Envelope[CartRead])
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    cart = service.add_item(session, current_user, payload)
    return {
        "success": True,
        "message": "Item added to cart successfully",
        "data": service.serialize(session, cart),
    }


@router.put("/items/{product_id}", response_model=Envelope[CartRead])
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Set the quantity of a cart line. Quantity 0 removes the line.
    """
    cart, message = service.update_item(session, current_user, product_id, payload)
    return {
        "success": True,
        "message": message,
        "data": service.serialize(session, cart),
    }


@router.delete("/items/{product_id}", response_model=Envelope[CartRead])
def remove_cart_item(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    cart = service.remove_item(session, current_user, product_id)
    return {
        "success": True,
        "message": "Item removed from cart successfully",
        "data": service.serialize(session, cart),
    }


@router.delete("/clear", response_model=Envelope[CartRead])
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    cart = service.clear(session, current_user)
    return {
        "success": True,
        "message": "Cart cleared successfully",
        "data": service.serialize(session, cart),
    }


@router.post("/submit", response_model=Envelope[CartRead])
def submit_cart(
    payload: Annotated[CartSubmit, Body()] = CartSubmit(),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Submit the active cart for admin approval.

    Every line is checked against current availability and stock first.
    """
    cart = service.submit(session, current_user, payload)
    return {
        "success": True,
        "message": "Cart submitted for approval successfully",
        "data": service.serialize(session, cart),
    }


@router.get("/history", response_model=Envelope[list[CartRead]])
def get_cart_history(
    filters: Annotated[CartHistoryFilters, Query()],
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    carts, total = service.history(session, current_user, filters)
    return {
        "success": True,
        "data": service.serialize_many(session, carts),
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


# -------- Admin endpoints --------


@router.get(
    "/admin/all",
    response_model=Envelope[list[CartRead]],
    dependencies=[Depends(require_admin)],
)
def list_all_carts(
    filters: Annotated[AdminCartFilters, Query()],
    session: Session = Depends(get_session),
):
    carts, total = service.list_all(session, filters)
    return {
        "success": True,
        "data": service.serialize_many(session, carts),
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get(
    "/admin/pending",
    response_model=Envelope[list[CartRead]],
    dependencies=[Depends(require_admin)],
)
def list_pending_carts(
    filters: Annotated[PendingCartFilters, Query()],
    session: Session = Depends(get_session),
):
    """
    Pending carts awaiting a decision, most recently submitted first.
    """
    carts, _ = service.list_by_status(session, "pending", 0, filters.limit)
    return {"success": True, "data": service.serialize_many(session, carts)}


@router.get(
    "/admin/approved",
    response_model=Envelope[list[CartRead]],
    dependencies=[Depends(require_admin)],
)
def list_approved_carts(
    params: Annotated[PageParams, Query()],
    session: Session = Depends(get_session),
):
    carts, total = service.list_by_status(session, "approved", params.offset, params.limit)
    return {
        "success": True,
        "data": service.serialize_many(session, carts),
        "pagination": Pagination.build(params.page, params.limit, total),
    }


@router.get(
    "/admin/rejected",
    response_model=Envelope[list[CartRead]],
    dependencies=[Depends(require_admin)],
)
def list_rejected_carts(
    params: Annotated[PageParams, Query()],
    session: Session = Depends(get_session),
):
    carts, total = service.list_by_status(session, "rejected", params.offset, params.limit)
    return {
        "success": True,
        "data": service.serialize_many(session, carts),
        "pagination": Pagination.build(params.page, params.limit, total),
    }


@router.patch("/admin/{cart_id}/approve", response_model=Envelope[CartRead])
def approve_cart(
    cart_id: uuid.UUID,
    payload: Annotated[CartDecision, Body()] = CartDecision(),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Approve a pending cart (admin only).

    Availability and stock are checked one last time.
    """
    cart = service.approve(session, admin, cart_id, payload)
    return {
        "success": True,
        "message": "Cart approved successfully",
        "data": service.serialize(session, cart),
    }


@router.patch("/admin/{cart_id}/reject", response_model=Envelope[CartRead])
def reject_cart(
    cart_id: uuid.UUID,
    payload: Annotated[CartDecision, Body()] = CartDecision(),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    cart = service.reject(session, admin, cart_id, payload)
    return {
        "success": True,
        "message": "Cart rejected successfully",
        "data": service.serialize(session, cart),
    }


# -------- Owner cancel (dynamic segment last) --------


@router.patch("/{cart_id}/cancel", response_model=Envelope[CartRead])
def cancel_cart(
    cart_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    cart = service.cancel(session, current_user, cart_id)
    return {
        "success": True,
        "message": "Cart cancelled successfully",
        "data": service.serialize(session, cart),
    }
