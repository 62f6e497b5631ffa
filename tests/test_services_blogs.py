from tests.factories import PNG_BYTES, add_member, auth_headers, make_group, make_service, make_user


def _png(field, name="photo.png"):
    return (field, (name, PNG_BYTES, "image/png"))


# -------- Services --------


def test_create_service(client, admin, user):
    form = {"title": "Home Repairs", "subtitle": "Fix it", "description": "Plumbers and more"}

    assert client.post("/api/services", data=form, headers=auth_headers(user)).status_code == 403

    resp = client.post("/api/services", data=form, headers=auth_headers(admin))
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["slug"] == "home-repairs"
    assert data["formatted_groups"] == "0 groups"

    resp = client.post("/api/services", data=form, headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Service with this title already exists"


def test_service_listing_and_activation(client, session, admin):
    service = make_service(session, "Tutoring")

    resp = client.put(f"/api/services/{service.id}/deactivate", headers=auth_headers(admin))
    assert resp.json()["data"]["is_active"] is False

    assert client.get("/api/services").json()["data"] == []
    resp = client.get("/api/services", params={"active_only": "false"})
    assert [s["title"] for s in resp.json()["data"]] == ["Tutoring"]
    assert client.get("/api/services/slug/tutoring").status_code == 404

    client.put(f"/api/services/{service.id}/activate", headers=auth_headers(admin))
    assert client.get("/api/services/slug/tutoring").json()["data"]["title"] == "Tutoring"


def test_service_stats_and_recount(client, session, admin):
    service = make_service(session)
    public = make_group(session, service, admin, "Public")
    make_group(session, service, admin, "Private", is_private=True)
    make_group(session, service, admin, "Waiting", approved=False)
    add_member(session, public, make_user(session, "member_one"), status="approved")
    public.members_count = 1
    session.add(public)
    session.commit()

    resp = client.put(f"/api/services/{service.id}/update-stats", headers=auth_headers(admin))
    data = resp.json()["data"]
    assert data["total_groups"] == 2
    assert data["total_members"] == 1

    data = client.get(f"/api/services/{service.id}/stats", headers=auth_headers(admin)).json()["data"]
    assert data["total_groups"] == 3
    assert data["active_groups"] == 2
    assert data["pending_groups"] == 1
    assert data["private_groups"] == 1
    assert data["public_groups"] == 2


def test_unknown_service(client, admin):
    resp = client.get("/api/services/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Service not found"}


# -------- Blogs --------


def _create_blog(client, admin, gallery=2, **fields):
    data = {"title": "Harvest Season", "description": "It was a good year " * 50, **fields}
    files = [_png("thumbnail", "thumb.png")] + [
        _png("gallery", f"g{i}.png") for i in range(gallery)
    ]
    return client.post("/api/blogs", data=data, files=files, headers=auth_headers(admin))


def test_create_blog(client, admin, catalog, media):
    resp = _create_blog(client, admin)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["slug"] == "harvest-season"
    assert data["service_id"] == str(catalog["service"].id)
    assert data["gallery_count"] == 2
    assert data["thumbnail"] == "https://cdn.test/blogs/thumbnails/asset-1"
    assert data["estimated_reading_time"] == "2 min read"
    assert media.uploaded == [
        "blogs/thumbnails/asset-1",
        "blogs/gallery/asset-2",
        "blogs/gallery/asset-3",
    ]


def test_create_blog_requires_gallery(client, admin, catalog):
    resp = _create_blog(client, admin, gallery=0)
    assert resp.status_code == 400
    assert resp.json()["message"] == "At least one gallery image is required"


def test_create_blog_without_default_service(client, admin):
    resp = _create_blog(client, admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Default service not found"


def test_failed_gallery_upload_cleans_up(client, admin, catalog, media):
    media.fail_after = 2
    resp = _create_blog(client, admin, gallery=2)
    assert resp.status_code == 400
    assert media.deleted == ["blogs/thumbnails/asset-1", "blogs/gallery/asset-2"]
    assert client.get("/api/blogs").json()["data"] == []


def test_views_and_likes(client, admin, catalog):
    blog = _create_blog(client, admin).json()["data"]

    client.get(f"/api/blogs/{blog['id']}")
    data = client.get("/api/blogs/slug/harvest-season").json()["data"]
    assert data["views"] == 2
    assert data["formatted_views"] == "2 views"

    resp = client.put(f"/api/blogs/{blog['id']}/like")
    assert resp.json()["data"]["likes"] == 1
    assert resp.json()["data"]["formatted_likes"] == "1 like"


def test_inactive_blog_hidden_from_public(client, admin, catalog):
    blog = _create_blog(client, admin).json()["data"]
    client.put(f"/api/blogs/{blog['id']}/deactivate", headers=auth_headers(admin))

    assert client.get("/api/blogs").json()["data"] == []
    assert client.get("/api/blogs/slug/harvest-season").status_code == 404
    resp = client.get("/api/blogs", params={"active_only": "false"})
    assert len(resp.json()["data"]) == 1


def test_update_blog_appends_gallery(client, admin, catalog, media):
    blog = _create_blog(client, admin, gallery=1).json()["data"]

    resp = client.put(
        f"/api/blogs/{blog['id']}",
        data={"title": "Winter Notes"},
        files=[_png("thumbnail", "new.png"), _png("gallery", "more.png")],
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["slug"] == "winter-notes"
    assert data["gallery_count"] == 2
    assert media.deleted == ["blogs/thumbnails/asset-1"]


def test_remove_gallery_image(client, admin, catalog, media):
    blog = _create_blog(client, admin, gallery=2).json()["data"]
    url = f"/api/blogs/{blog['id']}/gallery"

    resp = client.delete(f"{url}/5", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid image index"

    resp = client.delete(f"{url}/0", headers=auth_headers(admin))
    assert resp.json()["data"]["gallery_count"] == 1
    assert media.deleted == ["blogs/gallery/asset-2"]

    resp = client.delete(f"{url}/0", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot remove the last image from gallery"


def test_blog_stats_and_delete(client, admin, catalog, media):
    blog = _create_blog(client, admin).json()["data"]

    data = client.get(f"/api/blogs/{blog['id']}/stats", headers=auth_headers(admin)).json()["data"]
    assert data["service_title"] == "Default Service"
    assert data["gallery_count"] == 2

    resp = client.delete(f"/api/blogs/{blog['id']}", headers=auth_headers(admin))
    assert resp.json()["message"] == "Blog deleted successfully"
    assert sorted(media.deleted) == sorted(media.uploaded)
    assert client.get(f"/api/blogs/{blog['id']}").status_code == 404
