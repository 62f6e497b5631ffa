import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.routers import categories
from tests.factories import PNG_BYTES, auth_headers, make_category


def _create(client, admin, **fields):
    data = {"name": "Fresh Produce", "description": "Vegetables and fruit", **fields}
    return client.post("/api/categories", data=data, headers=auth_headers(admin))


def test_create_category(client, admin, media):
    resp = client.post(
        "/api/categories",
        data={"name": "Fresh Produce", "description": "Vegetables and fruit"},
        files={"logo": ("logo.png", PNG_BYTES, "image/png")},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["slug"] == "fresh-produce"
    assert data["counts"] == 0
    assert data["logo_url"] == "https://cdn.test/categories/logos/asset-1"


def test_create_category_rejects_duplicate_name(client, admin):
    _create(client, admin)
    resp = _create(client, admin, name="fresh produce")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Category with this name already exists"


def test_create_category_validation(client, admin):
    resp = _create(client, admin, description="short")
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "description"


def test_create_category_rejects_non_image_logo(client, admin):
    resp = client.post(
        "/api/categories",
        data={"name": "Docs", "description": "Not really images"},
        files={"logo": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Unsupported image type")


def test_category_admin_routes_require_admin(client, user):
    assert _create(client, user).status_code == 403
    assert client.get("/api/categories/stats", headers=auth_headers(user)).status_code == 403


def test_list_and_lookup(client, session):
    make_category(session, "Bakery")
    make_category(session, "Archive", is_active=False)

    resp = client.get("/api/categories")
    assert [c["name"] for c in resp.json()["data"]] == ["Archive", "Bakery"]

    resp = client.get("/api/categories/active")
    assert [c["name"] for c in resp.json()["data"]] == ["Bakery"]

    assert client.get("/api/categories/slug/bakery").status_code == 200
    resp = client.get("/api/categories/slug/archive")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Category not found"


def test_rename_regenerates_slug_and_replaces_logo(client, admin, media):
    created = client.post(
        "/api/categories",
        data={"name": "Dairy", "description": "Milk, cheese and more"},
        files={"logo": ("logo.png", PNG_BYTES, "image/png")},
        headers=auth_headers(admin),
    ).json()["data"]

    resp = client.put(
        f"/api/categories/{created['id']}",
        data={"name": "Dairy Goods"},
        files={"logo": ("new.png", PNG_BYTES, "image/png")},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["slug"] == "dairy-goods"
    assert media.deleted == ["categories/logos/asset-1"]
    assert data["logo_url"].endswith("asset-2")


def test_toggle_status(client, session, admin):
    category = make_category(session)
    resp = client.patch(
        f"/api/categories/{category.id}/toggle-status", headers=auth_headers(admin)
    )
    assert resp.json()["message"] == "Category deactivated successfully"
    assert resp.json()["data"]["is_active"] is False


def test_delete_blocked_while_products_exist(client, session, admin):
    category = make_category(session, counts=2)

    resp = client.delete(f"/api/categories/{category.id}", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Cannot delete category with existing products")

    category.counts = 0
    session.add(category)
    session.commit()
    resp = client.delete(f"/api/categories/{category.id}", headers=auth_headers(admin))
    assert resp.json()["message"] == "Category deleted successfully"
    assert client.get(f"/api/categories/{category.id}").status_code == 404


def test_category_stats(client, session, admin):
    make_category(session, "Bakery", counts=3)
    make_category(session, "Dairy", counts=1, is_active=False)

    data = client.get("/api/categories/stats", headers=auth_headers(admin)).json()["data"]
    assert data["total_categories"] == 2
    assert data["active_categories"] == 1
    assert data["inactive_categories"] == 1
    assert data["total_products"] == 4
    assert [c["name"] for c in data["top_categories"]] == ["Bakery", "Dairy"]


def test_logo_is_deleted_when_insert_fails(client, admin, media, monkeypatch):
    def failing_create(session, category):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(categories.repo, "create", failing_create)
    with pytest.raises(SQLAlchemyError):
        client.post(
            "/api/categories",
            data={"name": "Fresh Produce", "description": "Vegetables and fruit"},
            files={"logo": ("logo.png", PNG_BYTES, "image/png")},
            headers=auth_headers(admin),
        )
    assert media.uploaded == ["categories/logos/asset-1"]
    assert media.deleted == media.uploaded
