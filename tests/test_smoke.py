from conftest import login


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_index_redirects_anonymous_to_login(client):
    r = client.get("/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_login_page_reports_error_hint(client):
    r = client.get("/auth/login?error=Unable+to+load+user+profile")
    assert r.status_code == 200
    assert r.json["error"] == "Unable to load user profile"


def test_login_redirects_to_role_home(client):
    r = login(client, "admin@example.com")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")

    r = client.get("/admin/")
    assert r.status_code == 200
    assert r.json["area"] == "admin"


def test_login_honours_safe_next(client):
    r = client.post(
        "/auth/login",
        data={"email": "expert@example.com", "password": "pw", "next": "/expert/phases"},
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/expert/phases")


def test_login_ignores_offsite_next(client):
    r = client.post(
        "/auth/login",
        data={"email": "expert@example.com", "password": "pw", "next": "//evil.example.com/"},
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/expert/")


def test_login_bad_password(client):
    r = login(client, "admin@example.com", "wrong")
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials."


def test_login_rate_limited(client):
    for _ in range(5):
        assert login(client, "admin@example.com", "wrong").status_code == 401
    r = login(client, "admin@example.com", "pw")
    assert r.status_code == 429


def test_logout_clears_session(client):
    login(client, "owner@example.com")
    r = client.get("/auth/logout")
    assert r.status_code == 302
    r = client.get("/agency/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_unknown_route_is_json_404(client):
    r = client.get("/no-such-page")
    assert r.status_code == 404
    assert r.json["error"] == "Not found."


def test_json_array_body_without_csrf_token_is_rejected(client):
    login(client, "owner@example.com")
    r = client.post("/agency/applications", json=["csrf_token"])
    assert r.status_code == 400
    assert r.json["error"] == "CSRF token missing or invalid."
