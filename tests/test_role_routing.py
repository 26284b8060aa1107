"""Area access: every guard redirects, it never answers 403 for a wrong role."""
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy.exc import OperationalError

from app.homecare import query as q
from app.homecare.db import session_scope
from app.homecare.models import User
from conftest import EXPERT_ID, login


def _query(location: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(location).query)


def test_admin_area_without_session_goes_to_login(client):
    r = client.get("/admin/")
    assert r.status_code == 302
    location = r.headers["Location"]
    assert "/auth/login" in location
    assert _query(location)["next"] == ["/admin/"]


def test_admin_area_with_company_owner_goes_to_agency_home(client):
    login(client, "owner@example.com")
    r = client.get("/admin/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/")
    assert "/auth/login" not in r.headers["Location"]


def test_admin_area_with_staff_member_goes_to_agency_home(client):
    login(client, "staff@example.com")
    r = client.get("/admin/applications")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/")


@pytest.mark.parametrize(
    "email,path,home",
    [
        ("expert@example.com", "/agency/", "/expert/"),
        ("admin@example.com", "/expert/", "/admin/"),
        ("owner@example.com", "/expert/applications", "/agency/"),
    ],
)
def test_wrong_role_goes_to_own_home(client, email, path, home):
    login(client, email)
    r = client.get(path)
    assert r.status_code == 302
    assert r.headers["Location"].endswith(home)


def test_missing_profile_goes_to_login_with_hint(client):
    r = login(client, "noprofile@example.com")
    assert r.status_code == 302
    assert _query(r.headers["Location"])["error"] == ["Unable to load user profile"]

    r = client.get("/admin/")
    assert r.status_code == 302
    location = r.headers["Location"]
    assert "/auth/login" in location
    assert _query(location)["error"] == ["Unable to load user profile"]


def test_deactivated_user_is_signed_out(app, client):
    login(client, "expert@example.com")
    with session_scope(app) as s:
        s.get(User, EXPERT_ID).is_active = False

    r = client.get("/expert/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_identity_lookup_failure_is_treated_as_signed_out(client, monkeypatch):
    login(client, "expert@example.com")

    def failing(s, user_id):
        raise OperationalError("SELECT users", {}, Exception("database is locked"))

    monkeypatch.setattr(q.profiles, "get_user_by_id", failing)
    r = client.get("/expert/")
    assert r.status_code == 302
    location = r.headers["Location"]
    assert "/auth/login" in location
    assert _query(location)["next"] == ["/expert/"]


def test_index_sends_signed_in_user_home(client):
    login(client, "staff@example.com")
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/")


def test_each_role_reaches_its_home(client):
    for email, path, area in (
        ("admin@example.com", "/admin/", "admin"),
        ("expert@example.com", "/expert/", "expert"),
        ("owner@example.com", "/agency/", "agency"),
    ):
        login(client, email)
        r = client.get(path)
        assert r.status_code == 200
        assert r.json["area"] == area
        client.get("/auth/logout")
