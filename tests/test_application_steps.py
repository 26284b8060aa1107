from sqlalchemy.exc import OperationalError

from app.homecare import query as q
from app.homecare.db import session_scope
from app.homecare.modules.applications.models import ApplicationStep
from app.homecare.modules.applications.service import compute_progress
from conftest import APP_CLOSED, APP_HALF, APP_OTHER, csrf_headers, fetch_application, login


def test_compute_progress():
    done = ApplicationStep(step_name="a", is_completed=True)
    todo = ApplicationStep(step_name="b", is_completed=False)
    assert compute_progress([]) is None
    assert compute_progress([done, todo]) == 50
    assert compute_progress([done, todo, todo]) == 33
    assert compute_progress([done, done]) == 100


def test_expert_adds_step_with_default_phase(app, client):
    login(client, "expert@example.com")
    r = client.post(
        f"/expert/applications/{APP_HALF}/steps",
        json={"step_name": "Schedule survey walkthrough"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 201
    step = r.json["step"]
    assert step["phase"] == "Client Intake"
    assert step["is_expert_step"] is True
    assert step["step_order"] == 1
    # One of three steps done.
    assert fetch_application(app, APP_HALF).progress_percentage == 33


def test_expert_steps_append_in_order(client):
    login(client, "expert@example.com")
    headers = csrf_headers(client)
    orders = []
    for name, phase in (("Intake call", "Client Intake"), ("Mock survey", "Survey Preparation")):
        r = client.post(
            f"/expert/applications/{APP_HALF}/steps",
            json={"step_name": name, "phase": phase},
            headers=headers,
        )
        orders.append(r.json["step"]["step_order"])
    assert orders == [1, 2]

    r = client.get(f"/expert/applications/{APP_HALF}")
    assert r.status_code == 200
    assert [g["phase"] for g in r.json["expert_steps_by_phase"]] == ["Client Intake", "Survey Preparation"]
    assert [st["id"] for st in r.json["steps"]] == ["step-1", "step-2"]


def test_expert_step_validation(client):
    login(client, "expert@example.com")
    headers = csrf_headers(client)
    r = client.post(f"/expert/applications/{APP_HALF}/steps", json={"step_name": "  "}, headers=headers)
    assert r.status_code == 400
    assert r.json["error"] == "Step name is required."

    r = client.post(
        f"/expert/applications/{APP_HALF}/steps",
        json={"step_name": "Legacy", "phase": "Old Phase"},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json["error"].startswith("Invalid phase.")


def test_expert_step_body_must_be_an_object(client):
    login(client, "expert@example.com")
    r = client.post(f"/expert/applications/{APP_HALF}/steps", json=["Schedule survey"], headers=csrf_headers(client))
    assert r.status_code == 400
    assert r.json["error"] == "Step name is required."


def test_expert_step_store_failure_is_502(app, client, monkeypatch):
    def failing(s, data):
        raise OperationalError("INSERT application_steps", {}, Exception("database is locked"))

    monkeypatch.setattr(q.applications, "insert_application_step", failing)
    login(client, "expert@example.com")
    r = client.post(
        f"/expert/applications/{APP_HALF}/steps",
        json={"step_name": "Schedule survey walkthrough"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 502
    assert r.json["error"] == "database is locked"
    with session_scope(app) as s:
        assert s.query(ApplicationStep).filter(ApplicationStep.application_id == APP_HALF).count() == 2
    assert fetch_application(app, APP_HALF).progress_percentage == 50


def test_expert_cannot_add_step_to_closed_application(client):
    login(client, "expert@example.com")
    r = client.post(
        f"/expert/applications/{APP_CLOSED}/steps",
        json={"step_name": "Too late"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 409
    assert r.json["error"] == "Closed applications cannot be modified"


def test_completing_last_step_unlocks_close(app, client):
    login(client, "expert@example.com")
    headers = csrf_headers(client)
    r = client.post(f"/expert/applications/{APP_HALF}/steps/step-2/complete", json={"completed": True}, headers=headers)
    assert r.status_code == 200
    assert r.json["progress_percentage"] == 100

    r = client.post(f"/expert/applications/{APP_HALF}/close", headers=headers)
    assert r.status_code == 200
    assert fetch_application(app, APP_HALF).status == "closed"


def test_reopening_step_lowers_progress(app, client):
    login(client, "expert@example.com")
    r = client.post(
        f"/expert/applications/{APP_HALF}/steps/step-1/complete",
        data={"completed": "false"},
        headers=csrf_headers(client),
    )
    assert r.status_code == 200
    assert r.json["progress_percentage"] == 0


def test_unknown_step_is_404(client):
    login(client, "expert@example.com")
    r = client.post(f"/expert/applications/{APP_HALF}/steps/nope/complete", headers=csrf_headers(client))
    assert r.status_code == 404
    assert r.json["error"] == "Step not found"


def test_agency_completes_agency_step(app, client):
    login(client, "staff@example.com")
    r = client.post(f"/agency/applications/{APP_HALF}/steps/step-2/complete", headers=csrf_headers(client))
    assert r.status_code == 200
    assert fetch_application(app, APP_HALF).progress_percentage == 100


def test_agency_cannot_complete_expert_step(app, client, db):
    db.add(ApplicationStep(id="expert-step", application_id=APP_HALF, step_name="Review", is_expert_step=True))
    db.commit()

    login(client, "owner@example.com")
    r = client.post(f"/agency/applications/{APP_HALF}/steps/expert-step/complete", headers=csrf_headers(client))
    assert r.status_code == 403


def test_agency_cannot_touch_other_agency(client):
    login(client, "owner@example.com")
    r = client.post(f"/agency/applications/{APP_OTHER}/steps/step-1/complete", headers=csrf_headers(client))
    assert r.status_code == 404


def test_expert_phases_endpoint(client):
    login(client, "expert@example.com")
    r = client.get("/expert/phases")
    assert r.status_code == 200
    assert r.json["default_phase"] == "Client Intake"
    assert len(r.json["phases"]) == 5
