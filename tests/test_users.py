from fastapi.testclient import TestClient


def test_read_me(client: TestClient, user, user_headers):
    r = client.get("/api/users/me", headers=user_headers)
    assert r.status_code == 200
    body = r.json()["response"]
    assert body["id"] == user.id
    assert body["email"] == user.email
    assert "password_hash" not in body
    assert "reset_password_token" not in body


def test_update_me_changes_name(client: TestClient, user_headers):
    r = client.put("/api/users/me", json={"name": "  Renamed  "}, headers=user_headers)
    assert r.status_code == 200, r.text
    assert r.json()["response"]["name"] == "Renamed"


def test_update_me_without_fields_rejected(client: TestClient, user_headers):
    r = client.put("/api/users/me", json={}, headers=user_headers)
    assert r.status_code == 400


def test_list_users_admin_only(client: TestClient, user, admin, user_headers, admin_headers):
    assert client.get("/api/users/", headers=user_headers).status_code == 403

    r = client.get("/api/users/", headers=admin_headers)
    assert r.status_code == 200
    assert {u["id"] for u in r.json()["response"]} == {user.id, admin.id}

    admins = client.get("/api/users/", params={"role": "ADMIN"}, headers=admin_headers)
    assert [u["id"] for u in admins.json()["response"]] == [admin.id]


def test_list_users_without_trailing_slash(client: TestClient, admin_headers):
    r = client.get("/api/users", headers=admin_headers, follow_redirects=False)
    assert r.status_code == 200
    assert isinstance(r.json()["response"], list)


def test_health_and_root(client: TestClient):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["checks"]["database"] == "healthy"
    assert health.headers.get("X-Request-ID")

    root = client.get("/")
    assert root.json()["documentation"] == "/api/docs"


def test_request_id_is_echoed(client: TestClient):
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    missing = client.get("/api/users/me", headers={"X-Request-ID": "req-456"})
    assert missing.json()["request_id"] == "req-456"


def test_openapi_lists_auth_routes(client: TestClient):
    spec = client.get("/api/openapi.json").json()
    for path in ("/auth/signup", "/auth/login", "/api/auth/forgot", "/api/auth/reset", "/api/auth/refresh"):
        assert path in spec["paths"]
    assert "ErrorResponse" in spec["components"]["schemas"]
