from datetime import date, timedelta

from app.core.config import get_settings
from app.services.cart_service import CART_UPDATED_MESSAGE
from tests.factories import auth_headers, make_product, make_user


def _add(client, user, product, quantity=1):
    return client.post(
        "/api/cart/add",
        json={"product_id": str(product.id), "quantity": quantity},
        headers=auth_headers(user),
    )


def test_cart_requires_authentication(client):
    resp = client.get("/api/cart")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Authentication required"}


def test_first_access_creates_empty_active_cart(client, user):
    resp = client.get("/api/cart", headers=auth_headers(user))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] is None
    assert body["data"]["status"] == "active"
    assert body["data"]["items"] == []
    assert body["data"]["total_amount"] == 0
    assert body["data"]["total_items"] == 0

    again = client.get("/api/cart", headers=auth_headers(user)).json()
    assert again["data"]["id"] == body["data"]["id"]


def test_add_respects_remaining_stock(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"], quantity=5, price=10)

    resp = _add(client, user, product, 3)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["items"][0]["quantity"] == 3
    assert data["total_items"] == 3
    assert data["total_amount"] == 30
    assert data["formatted_total_amount"] == "$30.00"

    resp = _add(client, user, product, 4)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot add 4 items. Only 2 more items available"

    cart = client.get("/api/cart", headers=auth_headers(user)).json()["data"]
    assert cart["items"][0]["quantity"] == 3
    assert cart["total_items"] == 3


def test_add_merges_lines_and_keeps_price_at_time(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"], quantity=10, price=4)
    _add(client, user, product, 2)

    product.price = 9
    session.add(product)
    session.commit()

    data = _add(client, user, product, 1).json()["data"]
    assert len(data["items"]) == 1
    item = data["items"][0]
    assert item["quantity"] == 3
    assert item["price_at_time"] == 4
    assert item["line_total"] == 12
    assert item["product"]["price"] == 9
    assert data["total_amount"] == 12


def test_add_rejects_unavailable_products(client, session, user, catalog):
    inactive = make_product(
        session, catalog["category"], catalog["group"], "Old Jam", is_active=False
    )
    expired = make_product(
        session,
        catalog["category"],
        catalog["group"],
        "Stale Bread",
        expiration_date=date.today() - timedelta(days=1),
    )
    scarce = make_product(session, catalog["category"], catalog["group"], "Rare Tea", quantity=1)

    assert _add(client, user, inactive).json()["message"] == "Product is not active"
    assert _add(client, user, expired).json()["message"] == "Product has expired"

    resp = _add(client, user, scarce, 2)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Only 1 items available in stock"

    resp = client.post(
        "/api/cart/add",
        json={"product_id": "00000000-0000-0000-0000-000000000000"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Product not found"


def test_add_validates_quantity_bounds(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"])
    resp = _add(client, user, product, 0)
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "quantity"


def test_update_quantity_and_zero_removes(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"], quantity=5)
    _add(client, user, product, 1)

    resp = client.put(
        f"/api/cart/items/{product.id}",
        json={"quantity": 4},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["total_items"] == 4

    resp = client.put(
        f"/api/cart/items/{product.id}",
        json={"quantity": 6},
        headers=auth_headers(user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Only 5 items available in stock"

    resp = client.put(
        f"/api/cart/items/{product.id}",
        json={"quantity": 0},
        headers=auth_headers(user),
    )
    assert resp.json()["message"] == "Item removed from cart"
    assert resp.json()["data"]["items"] == []
    assert resp.json()["data"]["total_amount"] == 0


def test_remove_and_clear(client, session, user, catalog):
    honey = make_product(session, catalog["category"], catalog["group"], "Honey")
    milk = make_product(session, catalog["category"], catalog["group"], "Milk", price=2)
    _add(client, user, honey, 1)
    _add(client, user, milk, 2)

    resp = client.delete(f"/api/cart/items/{honey.id}", headers=auth_headers(user))
    data = resp.json()["data"]
    assert [i["product_id"] for i in data["items"]] == [str(milk.id)]
    assert data["total_amount"] == 4

    resp = client.delete(f"/api/cart/items/{honey.id}", headers=auth_headers(user))
    assert resp.status_code == 404

    resp = client.delete("/api/cart/clear", headers=auth_headers(user))
    assert resp.json()["data"]["items"] == []
    assert resp.json()["data"]["total_items"] == 0


def test_fetch_heals_cart_against_current_stock(client, session, user, catalog):
    honey = make_product(session, catalog["category"], catalog["group"], "Honey", quantity=5)
    milk = make_product(session, catalog["category"], catalog["group"], "Milk", quantity=5)
    _add(client, user, honey, 3)
    _add(client, user, milk, 2)

    honey.quantity = 1
    milk.is_active = False
    session.add(honey)
    session.add(milk)
    session.commit()

    body = client.get("/api/cart", headers=auth_headers(user)).json()
    assert body["message"] == CART_UPDATED_MESSAGE
    items = body["data"]["items"]
    assert len(items) == 1
    assert items[0]["product_id"] == str(honey.id)
    assert items[0]["quantity"] == 1
    assert body["data"]["total_items"] == 1

    body = client.get("/api/cart", headers=auth_headers(user)).json()
    assert body["message"] is None


def test_submit_empty_cart_fails(client, user):
    client.get("/api/cart", headers=auth_headers(user))
    resp = client.post("/api/cart/submit", json={}, headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot submit empty cart"


def test_submit_rechecks_stock(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"], quantity=5)
    _add(client, user, product, 3)

    product.quantity = 2
    session.add(product)
    session.commit()

    resp = client.post("/api/cart/submit", json={}, headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Insufficient stock for product Honey. Only 2 available"


def test_submit_moves_cart_to_pending_and_opens_new_cart(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"])
    first_id = _add(client, user, product, 2).json()["data"]["id"]

    resp = client.post(
        "/api/cart/submit",
        json={"notes": "Deliver on Monday"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "pending"
    assert data["notes"] == "Deliver on Monday"
    assert data["submitted_at"] is not None

    fresh = client.get("/api/cart", headers=auth_headers(user)).json()["data"]
    assert fresh["id"] != first_id
    assert fresh["status"] == "active"
    assert fresh["items"] == []


def test_submit_rejects_long_notes(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"])
    _add(client, user, product, 1)
    resp = client.post(
        "/api/cart/submit",
        json={"notes": "x" * 501},
        headers=auth_headers(user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def _submitted_cart(client, session, user, catalog, quantity=2):
    product = make_product(session, catalog["category"], catalog["group"], quantity=5)
    _add(client, user, product, quantity)
    cart_id = client.post(
        "/api/cart/submit", json={}, headers=auth_headers(user)
    ).json()["data"]["id"]
    return cart_id, product


def test_admin_routes_forbidden_for_users(client, user):
    resp = client.get("/api/cart/admin/all", headers=auth_headers(user))
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required"


def test_approve_pending_cart(client, session, user, admin, catalog):
    cart_id, product = _submitted_cart(client, session, user, catalog)

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/approve",
        json={"admin_notes": "All good"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "approved"
    assert data["approved_by"] == str(admin.id)
    assert data["approved_at"] is not None
    assert data["admin_notes"] == "All good"

    session.refresh(product)
    assert product.quantity == 5

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/approve", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart cannot be processed in its current status"


def test_approve_can_decrement_stock(client, session, user, admin, catalog, monkeypatch):
    monkeypatch.setattr(get_settings(), "CART_APPROVAL_DECREMENTS_STOCK", True)
    cart_id, product = _submitted_cart(client, session, user, catalog, quantity=2)

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/approve", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 200

    session.refresh(product)
    assert product.quantity == 3


def test_approve_rechecks_availability(client, session, user, admin, catalog):
    cart_id, product = _submitted_cart(client, session, user, catalog)
    product.is_active = False
    session.add(product)
    session.commit()

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/approve", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Product Honey is no longer available"


def test_approve_active_cart_fails(client, session, user, admin, catalog):
    product = make_product(session, catalog["category"], catalog["group"])
    cart_id = _add(client, user, product, 1).json()["data"]["id"]

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/approve", json={}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400


def test_reject_then_cancel(client, session, user, admin, catalog):
    cart_id, _ = _submitted_cart(client, session, user, catalog)

    resp = client.patch(
        f"/api/cart/admin/{cart_id}/reject",
        json={"admin_notes": "Out of season"},
        headers=auth_headers(admin),
    )
    data = resp.json()["data"]
    assert data["status"] == "rejected"
    assert data["rejected_by"] == str(admin.id)

    resp = client.patch(f"/api/cart/{cart_id}/cancel", headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "cancelled"

    resp = client.patch(f"/api/cart/{cart_id}/cancel", headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart is already cancelled"


def test_cancel_rules(client, session, user, admin, catalog):
    cart_id, _ = _submitted_cart(client, session, user, catalog)
    stranger = make_user(session, "mallory")

    resp = client.patch(f"/api/cart/{cart_id}/cancel", headers=auth_headers(stranger))
    assert resp.status_code == 403
    assert resp.json()["message"] == "You can only cancel your own cart"

    client.patch(f"/api/cart/admin/{cart_id}/approve", json={}, headers=auth_headers(admin))
    resp = client.patch(f"/api/cart/{cart_id}/cancel", headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot cancel approved cart"


def test_history_and_admin_listings(client, session, user, admin, catalog):
    cart_id, _ = _submitted_cart(client, session, user, catalog)
    client.get("/api/cart", headers=auth_headers(user))

    history = client.get("/api/cart/history", headers=auth_headers(user)).json()
    assert history["pagination"]["total_items"] == 2

    pending_only = client.get(
        "/api/cart/history", params={"status": "pending"}, headers=auth_headers(user)
    ).json()
    assert [c["id"] for c in pending_only["data"]] == [cart_id]

    pending = client.get("/api/cart/admin/pending", headers=auth_headers(admin)).json()
    assert [c["id"] for c in pending["data"]] == [cart_id]

    everything = client.get(
        "/api/cart/admin/all",
        params={"user_id": str(user.id), "sort": "-total_amount"},
        headers=auth_headers(admin),
    ).json()
    assert everything["pagination"]["total_items"] == 2
    assert everything["data"][0]["total_amount"] == 20

    client.patch(f"/api/cart/admin/{cart_id}/reject", json={}, headers=auth_headers(admin))
    rejected = client.get("/api/cart/admin/rejected", headers=auth_headers(admin)).json()
    assert rejected["pagination"]["total_items"] == 1
    approved = client.get("/api/cart/admin/approved", headers=auth_headers(admin)).json()
    assert approved["data"] == []


def test_admin_list_rejects_unknown_sort(client, admin):
    resp = client.get(
        "/api/cart/admin/all", params={"sort": "owner"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def test_total_amount_is_exact_sum_of_line_totals(client, session, user, catalog):
    product = make_product(session, catalog["category"], catalog["group"], price=0.125)

    resp = _add(client, user, product, 1)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["items"][0]["line_total"] == 0.125
    assert data["total_amount"] == 0.125
