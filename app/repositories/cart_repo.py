# app/repositories/cart_repo.py
import uuid

from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.cart import Cart, CartItem
from app.repositories.pagination import fetch_page, order_by_sort_key


class CartRepository:
    """
    Data access layer for Cart and its items.

    A cart and its items are saved as one unit: services mutate
    `cart.items` and call save(), which commits both.
    """

    def get_by_id(self, session: Session, cart_id: uuid.UUID) -> Cart | None:
        return session.get(Cart, cart_id)

    def get_active_for_user(self, session: Session, user_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id, Cart.status == "active")
        return session.exec(stmt).first()

    def search(
        self,
        session: Session,
        *,
        skip: int,
        limit: int,
        status: str | None = None,
        user_id: uuid.UUID | None = None,
        sort: str = "-created_at",
    ) -> tuple[list[Cart], int]:
        stmt = select(Cart)
        if status is not None:
            stmt = stmt.where(Cart.status == status)
        if user_id is not None:
            stmt = stmt.where(Cart.user_id == user_id)
        stmt = stmt.order_by(order_by_sort_key(Cart, sort))
        return fetch_page(session, stmt, skip, limit)

    def add_item(self, cart: Cart, item: CartItem) -> None:
        cart.items.append(item)

    def remove_item(self, cart: Cart, item: CartItem) -> None:
        cart.items.remove(item)

    def clear_items(self, cart: Cart) -> None:
        cart.items.clear()

    def save(self, session: Session, cart: Cart) -> Cart:
        """Persist the cart and its items."""
        cart.updated_at = utcnow()
        session.add(cart)
        session.commit()
        session.refresh(cart)
        return cart

    def create(self, session: Session, cart: Cart) -> Cart:
        session.add(cart)
        session.commit()
        session.refresh(cart)
        return cart
