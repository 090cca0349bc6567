from civix.models import User
from civix.utils.jwt_utils import create_access_token, decode_token, get_bearer_token

from conftest import PASSWORD


def _register(client, **overrides):
    body = {"name": "Rahim", "email": "rahim@example.com", "password": PASSWORD}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_creates_citizen_and_returns_token(client):
    resp = _register(client, role="admin")
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["token"]
    assert body["data"]["role"] == "citizen"
    assert body["data"]["issueCount"] == 0
    assert body["data"]["photoURL"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["email"] == "rahim@example.com"


def test_register_rejects_duplicates_and_short_passwords(client):
    assert _register(client).status_code == 201

    dup = _register(client, email="RAHIM@example.com")
    assert dup.status_code == 400
    assert dup.get_json()["message"] == "User already exists"

    short = _register(client, email="other@example.com", password="123")
    assert short.status_code == 400

    no_name = _register(client, email="third@example.com", name=" ")
    assert no_name.status_code == 400


def test_login_and_jwt_require_valid_credentials(client, make_user):
    make_user("karim@example.com")

    ok = client.post("/api/auth/login", json={"email": "karim@example.com", "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.get_json()["data"]["email"] == "karim@example.com"

    jwt_resp = client.post("/api/auth/jwt", json={"email": "karim@example.com", "password": PASSWORD})
    assert jwt_resp.status_code == 200
    assert jwt_resp.get_json()["token"]

    bad = client.post("/api/auth/login", json={"email": "karim@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401

    # an arbitrary body no longer mints a token
    forged = client.post("/api/auth/jwt", json={"email": "karim@example.com"})
    assert forged.status_code == 400


def test_password_is_stored_exactly_as_typed(client):
    padded = "  secret123  "
    assert _register(client, password=padded).status_code == 201

    ok = client.post("/api/auth/login", json={"email": "rahim@example.com", "password": padded})
    assert ok.status_code == 200
    trimmed = client.post("/api/auth/login", json={"email": "rahim@example.com", "password": "secret123"})
    assert trimmed.status_code == 401


def test_malformed_auth_bodies_are_400(client, make_user):
    make_user("karim@example.com")

    assert client.post("/api/auth/login", json=["karim@example.com", PASSWORD]).status_code == 400
    numeric = client.post("/api/auth/login", json={"email": "karim@example.com", "password": 123456})
    assert numeric.status_code == 400
    assert numeric.get_json()["message"] == "Email and password are required"

    assert client.post("/api/auth/register", json="rahim").status_code == 400
    assert _register(client, password=1234567).status_code == 400


def test_missing_token_is_401_and_bad_token_is_403(client):
    missing = client.get("/api/auth/me")
    assert missing.status_code == 401
    assert missing.get_json()["message"] == "Unauthorized access - No token provided"

    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 403
    assert bad.get_json()["message"] == "Forbidden access - Invalid token"


def test_token_for_deleted_user_is_rejected(app, client, make_user, fetch):
    headers = make_user("gone@example.com")

    def _delete():
        from civix.extensions import db
        db.session.delete(User.query.filter_by(email="gone@example.com").first())
        db.session.commit()

    fetch(_delete)
    assert client.get("/api/auth/me", headers=headers).status_code == 403


def test_profile_is_self_only_and_ignores_privileged_fields(client, make_user):
    mine = make_user("me@example.com")
    make_user("you@example.com")

    assert client.get("/api/auth/users/you@example.com", headers=mine).status_code == 403
    assert client.patch("/api/auth/users/you@example.com", headers=mine, json={"name": "X"}).status_code == 403

    resp = client.patch(
        "/api/auth/users/me@example.com",
        headers=mine,
        json={"name": "New Name", "phone": "017", "role": "admin", "isPremium": True},
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["name"] == "New Name"
    assert data["phone"] == "017"
    assert data["role"] == "citizen"
    assert data["isPremium"] is False

    blank = client.patch("/api/auth/users/me@example.com", headers=mine, json={"name": "  "})
    assert blank.status_code == 400
    assert client.get("/api/auth/users/me@example.com", headers=mine).get_json()["data"]["name"] == "New Name"


def test_jwt_helpers(app):
    with app.app_context():
        token = create_access_token(7, "a@b.c", ttl_seconds=60)
        payload = decode_token(token)
        assert payload["sub"] == "7"
        assert payload["email"] == "a@b.c"
        assert payload["type"] == "access"

        expired = create_access_token(7, "a@b.c", ttl_seconds=-10)
        assert decode_token(expired) is None

    assert get_bearer_token("Bearer abc") == "abc"
    assert get_bearer_token("bearer abc") == "abc"
    assert get_bearer_token("Token abc") is None
    assert get_bearer_token("") is None
