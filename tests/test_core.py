from app.core.helpers import format_money, pluralize
from app.core.slug import slugify, unique_slug
from app.models.category import Category
from app.schemas.common import Pagination
from tests.factories import make_category


def test_slugify():
    assert slugify("  Fresh & Local  Produce!! ") == "fresh-local-produce"
    assert slugify("a -- b") == "a-b"
    assert slugify("%%%", fallback="category") == "category"


def test_unique_slug_appends_suffix(session):
    make_category(session, "Bakery")
    assert unique_slug(session, Category, "Bakery") == "bakery-1"

    other = make_category(session, "Dairy")
    other.slug = "bakery-1"
    session.add(other)
    session.commit()
    assert unique_slug(session, Category, "Bakery") == "bakery-2"
    assert unique_slug(session, Category, "Bakery 1", exclude_id=other.id) == "bakery-1"


def test_formatting_helpers():
    assert pluralize(0, "member") == "0 members"
    assert pluralize(1, "member") == "1 member"
    assert pluralize(1234, "view") == "1,234 views"
    assert format_money(12.5) == "$12.50"


def test_pagination_build():
    page = Pagination.build(2, 10, 25)
    assert page.total_pages == 3
    assert page.items_per_page == 10
    assert Pagination.build(1, 10, 0).total_pages == 0


def test_root_and_health(client):
    assert client.get("/").json()["success"] is True

    body = client.get("/health").json()
    assert body["status"] == "OK"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_unknown_route(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Route not found"}


def test_malformed_path_parameter(client):
    resp = client.get("/api/categories/not-a-uuid")
    assert resp.status_code == 400
    error = resp.json()["errors"][0]
    assert error["field"] == "category_id"
    assert error["value"] == "not-a-uuid"


def test_page_limits_are_validated(client):
    resp = client.get("/api/products", params={"limit": 500})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "limit"
