from sqlalchemy.exc import OperationalError

from app.homecare import query as q
from app.homecare.db import session_scope
from app.homecare.modules.applications.models import Application
from conftest import APP_CLOSED, APP_HALF, APP_NO_PROGRESS, APP_OTHER, APP_READY, csrf_headers, login

OWNER_APPS = {APP_READY, APP_HALF, APP_CLOSED, APP_NO_PROGRESS}


def test_agency_home_counts(client):
    login(client, "owner@example.com")
    r = client.get("/agency/")
    assert r.status_code == 200
    assert r.json["unread_notifications"] == 2
    assert r.json["applications"] == 4
    assert r.json["licenses"] == 1


def test_staff_member_sees_owner_applications(client):
    login(client, "staff@example.com")
    r = client.get("/agency/applications")
    assert r.status_code == 200
    assert {a["id"] for a in r.json["applications"]} == OWNER_APPS


def test_agency_clients(client):
    login(client, "owner@example.com")
    r = client.get("/agency/clients")
    assert [c["id"] for c in r.json["clients"]] == ["client-1"]

    r = client.get("/agency/clients/client-1")
    assert r.status_code == 200
    assert {a["id"] for a in r.json["applications"]} == OWNER_APPS

    r = client.get("/agency/clients/client-2")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/clients")


def test_agency_detail_out_of_scope_redirects(client):
    login(client, "owner@example.com")
    r = client.get(f"/agency/applications/{APP_OTHER}")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/applications")

    r = client.get(f"/agency/applications/{APP_HALF}")
    assert r.status_code == 200
    assert r.json["application"]["progress_percentage"] == 50
    assert len(r.json["steps"]) == 2


def test_owner_creates_application(client):
    login(client, "owner@example.com")
    r = client.post(
        "/agency/applications",
        json={"application_name": "Dallas branch", "state": "Texas", "client_id": "client-1"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 201
    created = r.json["application"]
    assert created["status"] == "open"
    assert created["progress_percentage"] == 0
    assert created["client_id"] == "client-1"


def test_create_application_validation(client):
    login(client, "owner@example.com")
    headers = csrf_headers(client)
    r = client.post("/agency/applications", json={"application_name": "", "state": "Atlantis"}, headers=headers)
    assert r.status_code == 400
    assert r.json["errors"] == ["Application name is required.", "Unknown state: Atlantis"]

    r = client.post(
        "/agency/applications",
        json={"application_name": "Borrowed", "state": "Ohio", "client_id": "client-2"},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json["error"] == "Unknown client."


def test_create_application_body_must_be_an_object(client):
    login(client, "owner@example.com")
    r = client.post("/agency/applications", json=["Dallas branch", "Texas"], headers=csrf_headers(client))
    assert r.status_code == 400
    assert r.json["errors"] == ["Application name is required.", "State is required."]


def test_create_application_store_failure_is_502(app, client, monkeypatch):
    def failing(s, data):
        raise OperationalError("INSERT applications", {}, Exception("database is locked"))

    monkeypatch.setattr(q.applications, "insert_application", failing)
    login(client, "owner@example.com")
    r = client.post(
        "/agency/applications",
        json={"application_name": "Dallas branch", "state": "Texas"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 502
    assert r.json["error"] == "database is locked"
    with session_scope(app) as s:
        assert s.query(Application).filter(Application.application_name == "Dallas branch").count() == 0


def test_staff_member_cannot_create_application(client):
    login(client, "staff@example.com")
    r = client.post(
        "/agency/applications",
        json={"application_name": "Nope", "state": "Ohio"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/agency/")


def test_expert_views(client):
    login(client, "expert@example.com")
    r = client.get("/expert/")
    assert r.json["assigned_applications"] == 4
    assert r.json["open_applications"] == 3

    r = client.get("/expert/clients")
    assert [c["id"] for c in r.json["clients"]] == ["client-1"]

    r = client.get("/expert/applications")
    assert {a["id"] for a in r.json["applications"]} == OWNER_APPS

    r = client.get(f"/expert/applications/{APP_OTHER}")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/expert/clients")


def test_admin_views(client):
    login(client, "admin@example.com")
    r = client.get("/admin/")
    assert r.json["applications_by_status"] == {"open": 4, "closed": 1}
    assert [p["email"] for p in r.json["experts"]] == ["expert@example.com"]

    r = client.get("/admin/applications")
    assert len(r.json["applications"]) == 5

    r = client.get("/admin/applications/missing")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/applications")


def test_mark_notification_read(client):
    login(client, "owner@example.com")
    r = client.post("/notifications/note-1/read", headers=csrf_headers(client))
    assert r.status_code == 200
    assert r.json["unread_notifications"] == 1


def test_cannot_mark_someone_elses_notification(client):
    login(client, "expert@example.com")
    r = client.post("/notifications/note-1/read", headers=csrf_headers(client))
    assert r.status_code == 404
