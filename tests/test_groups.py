import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.routers import groups
from tests.factories import add_member, auth_headers, make_group, make_service, make_user


def _create_group(client, user, service, **fields):
    data = {
        "name": "Beekeepers",
        "description": "Local honey producers",
        "service_id": str(service.id),
        **fields,
    }
    return client.post("/api/groups", data=data, headers=auth_headers(user))


def test_create_group_starts_pending(client, session, user):
    service = make_service(session)

    resp = _create_group(client, user, service, is_private="true")
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Group created successfully and is pending approval"
    data = body["data"]
    assert data["approval_status"] == "pending"
    assert data["is_active"] is False
    assert data["is_private"] is True
    assert data["group_admin"] == str(user.id)
    assert data["slug"] == "beekeepers"
    assert data["formatted_members"] == "0 members"


def test_create_group_validation(client, session, user):
    service = make_service(session)

    resp = _create_group(client, user, service, link="ftp://example.com")
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "link"

    _create_group(client, user, service)
    resp = _create_group(client, user, service)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Group with this name already exists in this service"


def test_create_group_in_inactive_service(client, session, user):
    service = make_service(session, is_active=False)
    resp = _create_group(client, user, service)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Service not found or is inactive"


def test_create_group_with_icon(client, session, user, media):
    service = make_service(session)
    resp = client.post(
        "/api/groups",
        data={"name": "Bakers", "description": "Bread", "service_id": str(service.id)},
        files={"group_icon": ("icon.png", b"\x89PNG-data", "image/png")},
        headers=auth_headers(user),
    )
    assert resp.status_code == 201
    assert media.uploaded == ["groups/icons/asset-1"]
    assert resp.json()["data"]["group_icon"] == "https://cdn.test/groups/icons/asset-1"


def test_approval_updates_service_counts(client, session, user, admin):
    service = make_service(session)
    group_id = _create_group(client, user, service).json()["data"]["id"]

    assert client.put(
        f"/api/groups/{group_id}/approve", headers=auth_headers(user)
    ).status_code == 403

    resp = client.put(f"/api/groups/{group_id}/approve", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["approval_status"] == "approved"
    assert resp.json()["data"]["is_active"] is True

    data = client.get(f"/api/services/{service.id}").json()["data"]
    assert data["total_groups"] == 1
    assert [g["id"] for g in data["groups"]] == [group_id]

    resp = client.put(f"/api/groups/{group_id}/reject", headers=auth_headers(admin))
    assert resp.json()["data"]["is_active"] is False
    assert client.get(f"/api/services/{service.id}").json()["data"]["total_groups"] == 0


def test_join_public_group(client, session, user, catalog):
    group = catalog["group"]

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Joined group successfully"
    assert resp.json()["data"]["status"] == "approved"

    data = client.get(f"/api/groups/{group.id}").json()["data"]
    assert data["members_count"] == 1
    assert data["formatted_members"] == "1 member"

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "You have already joined this group"

    service = client.get(f"/api/services/{catalog['service'].id}").json()["data"]
    assert service["total_members"] == 1


def test_join_private_group_needs_group_admin(client, session, user, admin, notifier):
    service = make_service(session)
    group = make_group(session, service, admin, "Secret Club", is_private=True)

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.json()["message"] == "Join request sent successfully"
    assert resp.json()["data"]["status"] == "pending"

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.json()["message"] == "You have already requested to join this group"

    outsider = make_user(session, "mallory")
    resp = client.get(f"/api/groups/{group.id}/requests", headers=auth_headers(outsider))
    assert resp.status_code == 403
    resp = client.put(
        f"/api/groups/{group.id}/approve/{user.id}", headers=auth_headers(outsider)
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Not authorized. Only group admin can approve join requests."

    resp = client.get(f"/api/groups/{group.id}/requests", headers=auth_headers(admin))
    assert [r["user_id"] for r in resp.json()["data"]] == [str(user.id)]

    resp = client.put(f"/api/groups/{group.id}/approve/{user.id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "approved"
    assert notifier.sent == [("group_approval", user.email, "Secret Club")]

    resp = client.put(f"/api/groups/{group.id}/approve/{user.id}", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "User is already approved"

    data = client.get(f"/api/groups/{group.id}").json()["data"]
    assert data["members_count"] == 1


def test_reject_join_request(client, session, user, admin, notifier, catalog):
    group = catalog["group"]
    add_member(session, group, user)

    resp = client.put(f"/api/groups/{group.id}/reject/{user.id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected"
    assert notifier.sent == [("group_rejection", user.email, "Farmers")]

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.json()["message"] == "You have already been rejected from this group"

    stranger = make_user(session, "nobody")
    resp = client.put(
        f"/api/groups/{group.id}/reject/{stranger.id}", headers=auth_headers(admin)
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Join request not found"


def test_cannot_join_unapproved_group(client, session, user, admin):
    service = make_service(session)
    group = make_group(session, service, admin, approved=False)

    resp = client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Group is not active or not approved"


def test_listing_visibility(client, session, user, admin):
    service = make_service(session)
    make_group(session, service, admin, "Visible")
    make_group(session, service, admin, "Hidden", approved=False)
    _create_group(client, user, service, name="Mine")

    names = [g["name"] for g in client.get("/api/groups").json()["data"]]
    assert names == ["Visible"]

    resp = client.get("/api/groups", params={"owner": "true"}, headers=auth_headers(user))
    assert [g["name"] for g in resp.json()["data"]] == ["Mine"]

    resp = client.get("/api/groups", headers=auth_headers(admin))
    assert resp.json()["pagination"]["total_items"] == 3

    resp = client.get("/api/groups/pending", headers=auth_headers(admin))
    assert sorted(g["name"] for g in resp.json()["data"]) == ["Hidden", "Mine"]

    assert client.get("/api/groups/pending", headers=auth_headers(user)).status_code == 403


def test_my_groups(client, session, user, admin, catalog):
    group = catalog["group"]
    client.post(f"/api/groups/{group.id}/join", headers=auth_headers(user))

    resp = client.get("/api/groups/my-groups", headers=auth_headers(user))
    data = resp.json()["data"]
    assert len(data) == 1
    assert data[0]["name"] == "Farmers"
    assert data[0]["my_status"] == "approved"


def test_update_and_delete_group_permissions(client, session, user, admin):
    service = make_service(session)
    group_id = _create_group(client, user, service).json()["data"]["id"]
    outsider = make_user(session, "oscar")

    resp = client.put(
        f"/api/groups/{group_id}", data={"name": "Renamed"}, headers=auth_headers(outsider)
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Not authorized to update this group"

    resp = client.put(
        f"/api/groups/{group_id}", data={"name": "Renamed"}, headers=auth_headers(user)
    )
    assert resp.json()["data"]["name"] == "Renamed"
    assert resp.json()["data"]["slug"] == "renamed"

    assert client.delete(
        f"/api/groups/{group_id}", headers=auth_headers(outsider)
    ).status_code == 403
    resp = client.delete(f"/api/groups/{group_id}", headers=auth_headers(admin))
    assert resp.json()["message"] == "Group deleted successfully"
    assert client.get(f"/api/groups/{group_id}").status_code == 404


def test_service_delete_blocked_by_visible_groups(client, session, admin, catalog):
    service = catalog["service"]

    resp = client.delete(f"/api/services/{service.id}", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Cannot delete service with existing groups")

    client.put(f"/api/groups/{catalog['group'].id}/reject", headers=auth_headers(admin))
    resp = client.delete(f"/api/services/{service.id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert client.get(f"/api/groups/{catalog['group'].id}").status_code == 404


def test_icon_is_deleted_when_insert_fails(client, session, user, media, monkeypatch):
    service = make_service(session)

    def failing_create(session, group):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(groups.repo, "create", failing_create)
    with pytest.raises(SQLAlchemyError):
        client.post(
            "/api/groups",
            data={"name": "Bakers", "description": "Bread", "service_id": str(service.id)},
            files={"group_icon": ("icon.png", b"\x89PNG-data", "image/png")},
            headers=auth_headers(user),
        )
    assert media.deleted == ["groups/icons/asset-1"]
