"""
Minimal auth flow: register -> login -> access control -> logout.
"""
import pytest


def _register(client, username, password, role="customer"):
    return client.post("/auth/register",
                       json={"username": username, "password": password, "role": role})


def _login(client, username, password):
    return client.post("/auth/login", json={"username": username, "password": password})


def _get_session_user_id(client):
    with client.session_transaction() as sess:
        return sess.get("uid")


def test_register_login_me_logout(client):
    r = _register(client, "alice", "Alice123")
    assert r.status_code == 201
    assert r.get_json()["user"]["role"] == "customer"
    assert "password_hash" not in r.get_json()["user"]

    r = _login(client, "alice", "Alice123")
    assert r.status_code == 200
    assert _get_session_user_id(client) == r.get_json()["user"]["user_id"]

    assert client.get("/auth/me").get_json()["user"]["username"] == "alice"

    client.post("/auth/logout")
    assert _get_session_user_id(client) is None
    assert client.get("/auth/me").status_code == 401


@pytest.mark.parametrize("username,password,role", [
    ("", "Alice123", "customer"),
    ("alice", "weak", "customer"),
    ("alice", "Alice123", "admin"),
    ("a", "Alice123", "customer"),
    ("Alice1", "alice1", "customer"),
])
def test_register_rejects_bad_input(client, username, password, role):
    r = _register(client, username, password, role)
    assert r.status_code == 400
    assert r.get_json()["kind"] == "ValidationError"


def test_duplicate_username(client):
    assert _register(client, "alice", "Alice123").status_code == 201
    assert _register(client, "alice", "Other123").status_code == 400


def test_wrong_password(client):
    _register(client, "alice", "Alice123")
    r = _login(client, "alice", "Wrong123")
    assert r.status_code == 400
    assert _get_session_user_id(client) is None


def test_rental_routes_require_login(client):
    assert client.get("/rentals/my-rentals").status_code == 401
    assert client.post("/rentals", json={}).status_code == 401
    assert client.get("/notifications").status_code == 401


def test_dashboards_are_role_gated(client):
    _register(client, "alice", "Alice123")
    _login(client, "alice", "Alice123")

    assert client.get("/dashboard/customer").status_code == 200
    assert client.get("/dashboard/vendor").status_code == 403
    assert client.get("/dashboard/admin").status_code == 403
    assert client.post("/products", json={"title": "Tent", "per_day": 1}).status_code == 403


@pytest.mark.parametrize("payload", [
    {"username": 12345, "password": "Alice123"},
    {"username": "alice", "password": 12345678},
    {"username": "alice", "password": "Alice123", "role": 7},
])
def test_register_with_numbers_is_a_validation_error(client, payload):
    r = client.post("/auth/register", json=payload)
    assert r.status_code == 400
    assert r.get_json()["kind"] == "ValidationError"


def test_login_with_numbers_is_invalid_credentials(client):
    _register(client, "alice", "Alice123")
    r = client.post("/auth/login", json={"username": 1, "password": 2})
    assert r.status_code == 400
    assert _get_session_user_id(client) is None


def test_admin_deactivates_and_reactivates_user(app, client):
    app.extensions["rentalhub"].users.register("root", "Root1234", "admin", allow_admin=True)
    alice_id = _register(client, "alice", "Alice123").get_json()["user"]["user_id"]

    # alice is logged in when the admin acts
    _login(client, "alice", "Alice123")
    assert client.get("/admin/users").status_code == 403

    admin = app.test_client()
    _login(admin, "root", "Root1234")
    listed = admin.get("/admin/users?role=customer").get_json()
    assert [u["username"] for u in listed["users"]] == ["alice"]

    r = admin.post(f"/admin/users/{alice_id}/deactivate")
    assert r.status_code == 200
    assert r.get_json()["user"]["is_active"] is False

    root_id = admin.get("/auth/me").get_json()["user"]["user_id"]
    assert admin.post(f"/admin/users/{root_id}/deactivate").status_code == 403
    assert admin.post("/admin/users/nope/activate").status_code == 404

    # the open session is refused and cleared, and a new login is refused
    r = client.get("/rentals/my-rentals")
    assert r.status_code == 403
    assert _get_session_user_id(client) is None
    r = _login(client, "alice", "Alice123")
    assert r.status_code == 403
    assert r.get_json()["kind"] == "Forbidden"

    assert admin.post(f"/admin/users/{alice_id}/activate").status_code == 200
    assert admin.get("/dashboard/admin").get_json()["totals"]["active_users"] == 2

    assert _login(client, "alice", "Alice123").status_code == 200
