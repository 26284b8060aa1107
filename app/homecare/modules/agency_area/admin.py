from __future__ import annotations

from flask import Blueprint, current_app, g, redirect, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.homecare import query as q
from app.homecare.constants import AGENCY_ROLES, ROLE_COMPANY_OWNER
from app.homecare.db import db_session
from app.homecare.modules.applications.service import (
    MSG_NOT_FOUND,
    agency_owner_id,
    create_application,
    get_visible_application,
    set_step_completed,
    store_error_message,
    validate_application_payload,
)
from app.homecare.modules.applications.utils import (
    application_to_dict,
    client_to_dict,
    document_to_dict,
    http_status_for,
    parse_completed,
    profile_to_dict,
    request_payload,
    step_to_dict,
)
from app.homecare.rbac import role_required

bp = Blueprint("agency_area", __name__)


def _owner_id() -> str | None:
    return agency_owner_id(g.current_profile)


@bp.get("/")
@role_required(*AGENCY_ROLES)
def index():
    s = db_session()
    owner_id = _owner_id()
    applications = q.applications.list_applications_by_owner(s, owner_id) if owner_id else []
    return {
        "area": "agency",
        "profile": profile_to_dict(g.current_profile),
        "unread_notifications": q.notifications.get_unread_notifications_count(s, g.current_user.id),
        "applications": len(applications),
        "licenses": len(q.applications.list_licenses_by_owner(s, owner_id)) if owner_id else 0,
    }


@bp.get("/clients")
@role_required(*AGENCY_ROLES)
def clients_list():
    s = db_session()
    owner_id = _owner_id()
    clients = q.clients.list_clients_by_owner(s, owner_id) if owner_id else []
    return {"clients": [client_to_dict(c) for c in clients]}


@bp.get("/clients/<client_id>")
@role_required(*AGENCY_ROLES)
def client_detail(client_id: str):
    s = db_session()
    owner_id = _owner_id()
    client = q.clients.get_client_for_owner(s, client_id, owner_id) if owner_id else None
    if client is None:
        return redirect(url_for("agency_area.clients_list"))
    return {
        "client": client_to_dict(client),
        "applications": [application_to_dict(a) for a in client.applications],
    }


@bp.get("/applications")
@role_required(*AGENCY_ROLES)
def applications_list():
    s = db_session()
    owner_id = _owner_id()
    applications = q.applications.list_applications_by_owner(s, owner_id) if owner_id else []
    return {"applications": [application_to_dict(a) for a in applications]}


@bp.post("/applications")
@role_required(ROLE_COMPANY_OWNER)
def application_create():
    s = db_session()
    payload = request_payload()

    errors = validate_application_payload(payload)
    client_id = (payload.get("client_id") or "").strip()
    if client_id and q.clients.get_client_for_owner(s, client_id, g.current_user.id) is None:
        errors.append("Unknown client.")
    if errors:
        return {"error": errors[0], "errors": errors}, 400

    try:
        application = create_application(s, payload, g.current_user)
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("Application create failed owner_id=%s", g.current_user.id)
        return {"error": store_error_message(e)}, 502
    return {"error": None, "application": application_to_dict(application)}, 201


@bp.get("/applications/<application_id>")
@role_required(*AGENCY_ROLES)
def application_detail(application_id: str):
    s = db_session()
    application = get_visible_application(s, application_id, g.current_profile)
    if application is None:
        return redirect(url_for("agency_area.applications_list"))
    steps = q.applications.get_application_steps(s, application_id)
    return {
        "application": application_to_dict(application),
        "steps": [step_to_dict(st) for st in steps if not st.is_expert_step],
        "documents": [document_to_dict(d) for d in q.applications.get_application_documents(s, application_id)],
    }


@bp.post("/applications/<application_id>/steps/<step_id>/complete")
@role_required(*AGENCY_ROLES)
def step_complete(application_id: str, step_id: str):
    s = db_session()
    if get_visible_application(s, application_id, g.current_profile) is None:
        return {"error": MSG_NOT_FOUND}, 404
    step = q.applications.get_application_step(s, application_id, step_id)
    if step is not None and step.is_expert_step:
        # Expert steps are driven by the assigned expert.
        return {"error": "Expert steps can only be completed by the expert."}, 403
    completed = parse_completed(request_payload())
    result = set_step_completed(s, application_id, step_id, completed, actor=g.current_user)
    application = q.applications.get_application_by_id(s, application_id)
    body = result.as_dict()
    body["progress_percentage"] = application.progress_percentage if application else None
    return body, http_status_for(result)


@bp.get("/licenses")
@role_required(*AGENCY_ROLES)
def licenses_list():
    s = db_session()
    owner_id = _owner_id()
    licenses = q.applications.list_licenses_by_owner(s, owner_id) if owner_id else []
    return {"licenses": [application_to_dict(a) for a in licenses]}
