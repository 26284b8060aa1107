from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from app.homecare import create_app
from app.homecare.db import session_scope
from app.homecare.models import Base, Notification, User, UserProfile
from app.homecare.modules.applications.models import Application, ApplicationStep, Client

CSRF_TOKEN = "test-csrf-token"

ADMIN_ID = "u-admin"
EXPERT_ID = "u-expert"
OWNER_ID = "u-owner"
STAFF_ID = "u-staff"
OTHER_OWNER_ID = "u-other-owner"
NO_PROFILE_ID = "u-no-profile"

APP_READY = "app-ready"  # open, 100%
APP_HALF = "app-half"  # open, 50%, two steps
APP_CLOSED = "app-closed"
APP_NO_PROGRESS = "app-no-progress"  # open, progress NULL
APP_OTHER = "app-other"  # other agency, not assigned to the expert


def _user(user_id: str, email: str) -> User:
    return User(id=user_id, email=email, password_hash=generate_password_hash("pw"), is_active=True)


def _seed(s) -> None:
    s.add_all(
        [
            _user(ADMIN_ID, "admin@example.com"),
            _user(EXPERT_ID, "expert@example.com"),
            _user(OWNER_ID, "owner@example.com"),
            _user(STAFF_ID, "staff@example.com"),
            _user(OTHER_OWNER_ID, "other@example.com"),
            _user(NO_PROFILE_ID, "noprofile@example.com"),
        ]
    )
    s.flush()
    s.add_all(
        [
            UserProfile(id=ADMIN_ID, email="admin@example.com", full_name="Ada Admin", role="admin"),
            UserProfile(id=EXPERT_ID, email="expert@example.com", full_name="Eve Expert", role="expert"),
            UserProfile(id=OWNER_ID, email="owner@example.com", full_name="Olive Owner", role="company_owner"),
            UserProfile(
                id=STAFF_ID,
                email="staff@example.com",
                full_name="Sam Staff",
                role="staff_member",
                company_owner_id=OWNER_ID,
            ),
            UserProfile(id=OTHER_OWNER_ID, email="other@example.com", full_name="Otto Other", role="company_owner"),
        ]
    )
    s.add_all(
        [
            Client(id="client-1", company_owner_id=OWNER_ID, contact_name="Sunrise Home Care"),
            Client(id="client-2", company_owner_id=OTHER_OWNER_ID, contact_name="Elsewhere Care"),
        ]
    )
    s.flush()

    now = datetime(2026, 1, 15, 12, 0, 0)

    def application(app_id: str, **kw) -> Application:
        values = {
            "client_id": "client-1",
            "company_owner_id": OWNER_ID,
            "assigned_expert_id": EXPERT_ID,
            "application_name": app_id,
            "state": "Texas",
            "status": "open",
            "started_date": now,
            "last_updated_date": now,
        }
        values.update(kw)
        return Application(id=app_id, **values)

    s.add_all(
        [
            application(APP_READY, progress_percentage=100),
            application(APP_HALF, progress_percentage=50),
            application(APP_CLOSED, progress_percentage=100, status="closed"),
            application(APP_NO_PROGRESS, progress_percentage=None),
            application(
                APP_OTHER,
                progress_percentage=100,
                client_id="client-2",
                company_owner_id=OTHER_OWNER_ID,
                assigned_expert_id=None,
            ),
        ]
    )
    s.flush()
    s.add_all(
        [
            ApplicationStep(id="step-1", application_id=APP_HALF, step_name="Gather license forms", step_order=1, is_completed=True),
            ApplicationStep(id="step-2", application_id=APP_HALF, step_name="Submit to state", step_order=2),
            Notification(id="note-1", user_id=OWNER_ID, title="Welcome"),
            Notification(id="note-2", user_id=OWNER_ID, title="Application update"),
        ]
    )


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    app.config["TESTING"] = True

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        _seed(s)

    yield app
    engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def db(app):
    s = app.extensions["sqlalchemy_sessionmaker"]()
    yield s
    s.close()


def login(client, email: str, password: str = "pw"):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


def csrf_headers(client) -> dict[str, str]:
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF_TOKEN
    return {"X-CSRF-Token": CSRF_TOKEN}


def fetch_application(app, application_id: str) -> Application | None:
    with session_scope(app) as s:
        return s.get(Application, application_id)
