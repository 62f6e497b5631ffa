from tests.factories import auth_headers, make_user

REGISTRATION = {
    "full_name": "Jane Doe",
    "username": "jane_doe",
    "email": "Jane@Example.com",
    "phone": "+250788123456",
    "password": "hunter22",
}


def test_register_returns_token_and_sets_cookie(client, notifier):
    resp = client.post("/api/auth/register", json=REGISTRATION)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "jane@example.com"
    assert body["user"]["role"] == "user"
    assert "password_hash" not in body["user"]
    assert resp.cookies.get("token") == body["token"]
    assert notifier.sent == [("welcome", "jane@example.com")]


def test_register_rejects_duplicates(client):
    client.post("/api/auth/register", json=REGISTRATION)

    resp = client.post(
        "/api/auth/register",
        json={**REGISTRATION, "email": "other@example.com", "phone": "+250788000000"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Username already exists"}

    resp = client.post(
        "/api/auth/register",
        json={**REGISTRATION, "username": "someone", "phone": "+250788000000"},
    )
    assert resp.json()["message"] == "Email already exists"

    resp = client.post(
        "/api/auth/register",
        json={**REGISTRATION, "username": "someone", "email": "x@example.com"},
    )
    assert resp.json()["message"] == "Phone number already exists"


def test_register_validation_errors(client):
    resp = client.post(
        "/api/auth/register",
        json={**REGISTRATION, "phone": "12ab", "username": "bad name!"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert fields == {"phone", "username"}


def test_login_with_any_identifier(client, session):
    bob = make_user(session, "bob", password="pass1234")

    # email lookup is case-insensitive
    for identifier in ("bob", "BOB@example.com", bob.phone):
        resp = client.post(
            "/api/auth/login", json={"identifier": identifier, "password": "pass1234"}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["username"] == "bob"


def test_login_failures(client, session):
    make_user(session, "carol", password="pass1234")
    make_user(session, "dave", password="pass1234", is_active=False)

    resp = client.post("/api/auth/login", json={"identifier": "carol", "password": "nope1"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"

    resp = client.post("/api/auth/login", json={"identifier": "dave", "password": "pass1234"})
    assert resp.status_code == 401


def test_cookie_session_and_logout(client, session):
    make_user(session, "erin", password="pass1234")
    client.post("/api/auth/login", json={"identifier": "erin", "password": "pass1234"})

    resp = client.get("/api/auth/me")
    assert resp.status_code == 200
    assert resp.json()["data"]["username"] == "erin"

    resp = client.post("/api/auth/logout")
    assert resp.json()["message"] == "Logged out successfully"
    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401


def test_deactivated_user_token_rejected(client, session, user):
    headers = auth_headers(user)
    user.is_active = False
    session.add(user)
    session.commit()

    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "User not found or inactive"


def test_garbage_token_rejected(client):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"


def test_profile_update_checks_uniqueness(client, session, user):
    other = make_user(session, "frank")

    resp = client.put(
        "/api/auth/profile",
        json={"email": other.email},
        headers=auth_headers(user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email already exists"

    resp = client.put(
        "/api/auth/profile",
        json={"full_name": "Alice Liddell", "email": "ALICE@wonder.land"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["full_name"] == "Alice Liddell"
    assert data["email"] == "alice@wonder.land"


def test_profile_update_rejects_unknown_fields(client, user):
    resp = client.put("/api/auth/profile", json={"role": "admin"}, headers=auth_headers(user))
    assert resp.status_code == 400


def test_admin_user_listing(client, session, user, admin):
    make_user(session, "ghost", is_active=False)

    assert client.get("/api/auth/users", headers=auth_headers(user)).status_code == 403

    resp = client.get("/api/auth/users", headers=auth_headers(admin))
    assert resp.status_code == 200
    body = resp.json()
    assert body["data"]["stats"] == {
        "total_users": 3,
        "active_users": 2,
        "inactive_users": 1,
        "admin_users": 1,
        "regular_users": 2,
    }
    assert body["pagination"]["total_items"] == 3

    resp = client.get(
        "/api/auth/users",
        params={"active_only": "true", "role": "user"},
        headers=auth_headers(admin),
    )
    assert [u["username"] for u in resp.json()["data"]["users"]] == ["alice"]

    resp = client.get(
        "/api/auth/users", params={"search": "ghost"}, headers=auth_headers(admin)
    )
    assert resp.json()["pagination"]["total_items"] == 1


def test_admin_cannot_change_own_role_or_delete_self(client, admin):
    resp = client.put(
        f"/api/auth/users/{admin.id}",
        json={"role": "user"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "You cannot change your own role or status"

    resp = client.delete(f"/api/auth/users/{admin.id}", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "You cannot delete your own account"


def test_admin_deactivate_reactivate_and_delete(client, user, admin):
    resp = client.delete(f"/api/auth/users/{user.id}", headers=auth_headers(admin))
    assert resp.json()["message"] == "User deactivated successfully"

    resp = client.patch(f"/api/auth/users/{user.id}/reactivate", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is True

    resp = client.patch(f"/api/auth/users/{user.id}/reactivate", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "User is already active"

    resp = client.delete(
        f"/api/auth/users/{user.id}",
        params={"permanent": "true"},
        headers=auth_headers(admin),
    )
    assert resp.json()["message"] == "User permanently deleted"

    resp = client.get(f"/api/auth/users/{user.id}", headers=auth_headers(admin))
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def test_admin_update_user(client, user, admin):
    resp = client.put(
        f"/api/auth/users/{user.id}",
        json={"username": "alice2", "role": "admin"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["username"] == "alice2"
    assert resp.json()["data"]["role"] == "admin"


def test_register_rejects_password_over_72_bytes(client):
    resp = client.post("/api/auth/register", json={**REGISTRATION, "password": "x" * 100})
    assert resp.status_code == 400
    assert [e["field"] for e in resp.json()["errors"]] == ["password"]

    # multi-byte characters count by their UTF-8 length
    resp = client.post("/api/auth/register", json={**REGISTRATION, "password": "é" * 37})
    assert resp.status_code == 400

    resp = client.post("/api/auth/register", json={**REGISTRATION, "password": "x" * 72})
    assert resp.status_code == 201
