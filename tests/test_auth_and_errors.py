from contextlib import contextmanager
from datetime import timedelta

from mediscan.models.user import UserSession
from mediscan.main import app
from mediscan.timeutil import utcnow

REGISTRATION = {"email": "test@example.com", "password": "secret123", "first_name": "Test", "last_name": "User"}


def _register(client, **overrides) -> dict:
    response = client.post("/api/auth/register", json={**REGISTRATION, **overrides})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_sets_session_cookie(client):
    response = client.post("/api/auth/register", json=REGISTRATION)
    assert response.status_code == 200
    payload = response.json()
    assert payload["user"]["email"] == "test@example.com"
    assert payload["user"]["role"] == "user"
    assert "password_hash" not in payload["user"]

    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith(f"session={payload['token'].lower()}")
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "max-age=604800" in set_cookie

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == payload["user"]["id"]


def test_register_and_login(client):
    _register(client)
    client.cookies.clear()

    login_response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "secret123"})
    assert login_response.status_code == 200
    token = login_response.json()["token"]

    client.cookies.clear()
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "test@example.com"


def test_register_missing_fields_is_bad_request(client):
    response = client.post("/api/auth/register", json={"email": "x@example.com", "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_register_duplicate_email_conflicts(client):
    _register(client)
    response = client.post("/api/auth/register", json={**REGISTRATION, "first_name": "Other"})
    assert response.status_code == 409
    assert response.json() == {"statusCode": 409, "message": "Email already exists", "error": "Conflict"}


def test_error_envelope_on_invalid_login(client):
    _register(client)
    wrong_password = client.post("/api/auth/login", json={"email": "test@example.com", "password": "bad"})
    unknown_email = client.post("/api/auth/login", json={"email": "missing@example.com", "password": "bad"})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["error"] == "Unauthorized"


def test_public_pages_need_no_cookie(client):
    assert client.get("/").status_code == 200
    assert client.get("/login").status_code == 200
    assert client.get("/register").status_code == 200


def test_protected_page_redirects_to_login(client):
    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"].endswith("/login")


def test_protected_api_rejects_missing_and_garbage_tokens(client):
    body = {"image_type": "X-Ray", "body_part": "Chest", "original_image_url": "/uploads/chest.png"}
    missing = client.post("/api/reports", json=body)
    garbage = client.post("/api/reports", json=body, headers={"Authorization": "Bearer garbage"})
    assert missing.status_code == 401
    assert garbage.status_code == 401
    assert garbage.json()["error"] == "Unauthorized"


def test_builtin_docs_redirect_to_login_without_session(client):
    for path in ("/docs", "/openapi.json", "/redoc"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 307, path
        assert response.headers["location"].endswith("/login")


def test_unknown_page_redirects_to_login_without_session(client):
    response = client.get("/analysis", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"].endswith("/login")


def test_unknown_api_path_rejected_without_session(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_malformed_body_without_session_is_unauthorized(client):
    response = client.post(
        "/api/reports",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_docs_available_with_session(client):
    _register(client)
    assert client.get("/openapi.json").status_code == 200


def test_protected_api_rejects_expired_session(client, db_session):
    token = _register(client)["token"]
    session = db_session.query(UserSession).filter(UserSession.session_token == token).one()
    session.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    body = {"image_type": "X-Ray", "body_part": "Chest", "original_image_url": "/uploads/chest.png"}
    response = client.post("/api/reports", json=body)
    assert response.status_code == 401

    page = client.get("/dashboard", follow_redirects=False)
    assert page.status_code == 307


def test_protected_api_allows_fresh_session(client):
    _register(client)
    body = {"image_type": "X-Ray", "body_part": "Chest", "original_image_url": "/uploads/chest.png"}
    response = client.post("/api/reports", json=body)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "uploaded"


def test_logout_revokes_session_and_clears_cookie(client):
    token = _register(client)["token"]
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    assert "session=" in response.headers["set-cookie"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 401


def test_store_outage_is_reported_as_internal_error(client, monkeypatch):
    class BrokenRepository:
        def resolve_session(self, token, now):
            raise RuntimeError("database unavailable")

    @contextmanager
    def broken_factory():
        yield BrokenRepository()

    monkeypatch.setattr(app.state, "auth_repository_factory", broken_factory)
    response = client.get("/api/reports", headers={"Authorization": "Bearer anything"})
    assert response.status_code == 500
    assert response.json()["message"] == "Authentication error"
    assert "database unavailable" not in response.text
