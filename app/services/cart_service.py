# app/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.helpers import utcnow
from app.models.cart import Cart, CartItem
from app.models.product import Product
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    AdminCartFilters,
    CartDecision,
    CartHistoryFilters,
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartProduct,
    CartRead,
    CartSubmit,
)

logger = logging.getLogger(__name__)

CART_UPDATED_MESSAGE = "Cart updated due to product availability changes"


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _cart_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")


class CartService:
    """
    Business logic for the cart workflow.

    Responsibilities:
      - one active cart per user, created lazily
      - availability + stock checks at add, submit and approve time
      - price captured when a product is first added (never re-read)
      - totals recomputed from items before every save
      - status transitions:
          active -> pending -> approved | rejected
          active | pending | rejected -> cancelled

    Every operation validates first and mutates last, so a rejected
    call leaves the cart as it was.
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    @staticmethod
    def _recalculate(cart: Cart) -> None:
        cart.total_amount = sum(i.line_total for i in cart.items)
        cart.total_items = sum(i.quantity for i in cart.items)

    def _persist(self, session: Session, cart: Cart) -> Cart:
        self._recalculate(cart)
        return self.cart_repo.save(session, cart)

    @staticmethod
    def _is_available(product: Product | None) -> bool:
        return product is not None and product.is_active and not product.is_expired

    def _get_active_or_404(self, session: Session, user: User) -> Cart:
        cart = self.cart_repo.get_active_for_user(session, user.id)
        if cart is None:
            raise _cart_not_found()
        if cart.status != "active":
            raise _bad_request("Cart cannot be modified in its current status")
        return cart

    def _check_items_purchasable(self, session: Session, cart: Cart) -> None:
        """
        Every line must reference an available product with enough stock.
        Raises 400 on the first offending line.
        """
        products = self.product_repo.get_many(session, [i.product_id for i in cart.items])
        for item in cart.items:
            product = products.get(item.product_id)
            if not self._is_available(product):
                name = product.name if product else item.product_id
                raise _bad_request(f"Product {name} is no longer available")
            if item.quantity > product.quantity:
                raise _bad_request(
                    f"Insufficient stock for product {product.name}. "
                    f"Only {product.quantity} available"
                )

    def _get_cart(self, session: Session, cart_id: uuid.UUID) -> Cart:
        cart = self.cart_repo.get_by_id(session, cart_id)
        if cart is None:
            raise _cart_not_found()
        return cart

    # ---- user operations ----

    def get_active_cart(self, session: Session, user: User) -> tuple[Cart, bool]:
        """
        Fetch (or lazily create) the user's active cart and revalidate it.

        Lines whose product is gone, inactive, expired or out of stock are
        dropped; lines above current stock are clamped to it.
        Returns (cart, changed).
        """
        cart = self.cart_repo.get_active_for_user(session, user.id)
        if cart is None:
            cart = self.cart_repo.create(session, Cart(user_id=user.id))
            return cart, False

        products = self.product_repo.get_many(session, [i.product_id for i in cart.items])
        changed = False

        for item in list(cart.items):
            product = products.get(item.product_id)
            if not self._is_available(product) or product.quantity <= 0:
                self.cart_repo.remove_item(cart, item)
                changed = True
            elif item.quantity > product.quantity:
                item.quantity = product.quantity
                changed = True

        if changed:
            cart = self._persist(session, cart)
            logger.info(f"Cart {cart.id} revalidated against current stock")

        return cart, changed

    def add_item(self, session: Session, user: User, payload: CartItemCreate) -> Cart:
        product = self.product_repo.get_by_id(session, payload.product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_active:
            raise _bad_request("Product is not active")
        if product.is_expired:
            raise _bad_request("Product has expired")
        if product.quantity < payload.quantity:
            raise _bad_request(f"Only {product.quantity} items available in stock")

        cart = self.cart_repo.get_active_for_user(session, user.id)
        if cart is None:
            cart = self.cart_repo.create(session, Cart(user_id=user.id))

        existing = cart.find_item(product.id)
        in_cart = existing.quantity if existing else 0
        if in_cart + payload.quantity > product.quantity:
            raise _bad_request(
                f"Cannot add {payload.quantity} items. "
                f"Only {product.quantity - in_cart} more items available"
            )

        if existing is not None:
            existing.quantity = in_cart + payload.quantity
        else:
            self.cart_repo.add_item(
                cart,
                CartItem(
                    product_id=product.id,
                    quantity=payload.quantity,
                    price_at_time=product.price,
                ),
            )

        return self._persist(session, cart)

    def update_item(
        self,
        session: Session,
        user: User,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> tuple[Cart, str]:
        """
        Set a line's quantity; 0 removes it.
        Returns (cart, message).
        """
        cart = self._get_active_or_404(session, user)
        item = cart.find_item(product_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )

        if payload.quantity <= 0:
            self.cart_repo.remove_item(cart, item)
            return self._persist(session, cart), "Item removed from cart"

        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if payload.quantity > product.quantity:
            raise _bad_request(f"Only {product.quantity} items available in stock")

        item.quantity = payload.quantity
        return self._persist(session, cart), "Cart item updated successfully"

    def remove_item(self, session: Session, user: User, product_id: uuid.UUID) -> Cart:
        cart = self._get_active_or_404(session, user)
        item = cart.find_item(product_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )
        self.cart_repo.remove_item(cart, item)
        return self._persist(session, cart)

    def clear(self, session: Session, user: User) -> Cart:
        cart = self._get_active_or_404(session, user)
        self.cart_repo.clear_items(cart)
        return self._persist(session, cart)

    def submit(self, session: Session, user: User, payload: CartSubmit) -> Cart:
        """active -> pending, after a fresh availability check."""
        cart = self.cart_repo.get_active_for_user(session, user.id)
        if cart is None:
            raise _cart_not_found()
        if not cart.items:
            raise _bad_request("Cannot submit empty cart")
        if cart.status != "active":
            raise _bad_request("Cart cannot be submitted in its current status")

        self._check_items_purchasable(session, cart)

        cart.status = "pending"
        cart.submitted_at = utcnow()
        cart.notes = payload.notes
        cart = self._persist(session, cart)
        logger.info(f"Cart {cart.id} submitted by {user.username}")
        return cart

    def cancel(self, session: Session, user: User, cart_id: uuid.UUID) -> Cart:
        cart = self._get_cart(session, cart_id)
        if cart.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only cancel your own cart",
            )
        if cart.status == "cancelled":
            raise _bad_request("Cart is already cancelled")
        if cart.status == "approved":
            raise _bad_request("Cannot cancel approved cart")

        cart.status = "cancelled"
        return self._persist(session, cart)

    def history(
        self,
        session: Session,
        user: User,
        filters: CartHistoryFilters,
    ) -> tuple[list[Cart], int]:
        return self.cart_repo.search(
            session,
            skip=filters.offset,
            limit=filters.limit,
            status=filters.status,
            user_id=user.id,
        )

    # ---- admin operations ----

    def list_all(self, session: Session, filters: AdminCartFilters) -> tuple[list[Cart], int]:
        return self.cart_repo.search(
            session,
            skip=filters.offset,
            limit=filters.limit,
            status=filters.status,
            user_id=filters.user_id,
            sort=filters.sort,
        )

    def list_by_status(
        self,
        session: Session,
        cart_status: str,
        skip: int,
        limit: int,
    ) -> tuple[list[Cart], int]:
        return self.cart_repo.search(
            session,
            skip=skip,
            limit=limit,
            status=cart_status,
            sort="-submitted_at",
        )

    def approve(
        self,
        session: Session,
        admin: User,
        cart_id: uuid.UUID,
        payload: CartDecision,
    ) -> Cart:
        """
        pending -> approved, after a final availability check.
        Stock is decremented only when CART_APPROVAL_DECREMENTS_STOCK is on.
        """
        cart = self._get_cart(session, cart_id)
        if cart.status != "pending":
            raise _bad_request("Cart cannot be processed in its current status")

        self._check_items_purchasable(session, cart)

        if get_settings().CART_APPROVAL_DECREMENTS_STOCK:
            products = self.product_repo.get_many(session, [i.product_id for i in cart.items])
            for item in cart.items:
                product = products[item.product_id]
                product.quantity -= item.quantity
                session.add(product)

        cart.status = "approved"
        cart.approved_by = admin.id
        cart.approved_at = utcnow()
        cart.admin_notes = payload.admin_notes
        cart = self._persist(session, cart)
        logger.info(f"Cart {cart.id} approved by {admin.username}")
        return cart

    def reject(
        self,
        session: Session,
        admin: User,
        cart_id: uuid.UUID,
        payload: CartDecision,
    ) -> Cart:
        cart = self._get_cart(session, cart_id)
        if cart.status != "pending":
            raise _bad_request("Cart cannot be processed in its current status")

        cart.status = "rejected"
        cart.rejected_by = admin.id
        cart.rejected_at = utcnow()
        cart.admin_notes = payload.admin_notes
        cart = self._persist(session, cart)
        logger.info(f"Cart {cart.id} rejected by {admin.username}")
        return cart

    # ---- response shaping ----

    def serialize(self, session: Session, cart: Cart) -> CartRead:
        """Cart read model with the current state of each line's product."""
        products = self.product_repo.get_many(session, [i.product_id for i in cart.items])
        items = []
        for item in cart.items:
            product = products.get(item.product_id)
            read = CartItemRead.model_validate(item)
            if product is not None:
                read.product = CartProduct.model_validate(product)
            items.append(read)

        data = CartRead.model_validate(cart)
        data.items = items
        return data

    def serialize_many(self, session: Session, carts: list[Cart]) -> list[CartRead]:
        return [self.serialize(session, c) for c in carts]
