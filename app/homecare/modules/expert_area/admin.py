from __future__ import annotations

from flask import Blueprint, current_app, g, redirect, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.homecare import query as q
from app.homecare.constants import ROLE_EXPERT
from app.homecare.db import db_session
from app.homecare.expert_step_phase import DEFAULT_EXPERT_STEP_PHASE, phase_options
from app.homecare.modules.applications.service import (
    MSG_CLOSED_READ_ONLY,
    MSG_NOT_FOUND,
    add_expert_step,
    close_application,
    is_closed,
    set_step_completed,
    store_error_message,
    validate_expert_step_payload,
)
from app.homecare.modules.applications.utils import (
    application_to_dict,
    client_to_dict,
    document_to_dict,
    expert_steps_by_phase,
    http_status_for,
    parse_completed,
    profile_to_dict,
    request_payload,
    step_to_dict,
)
from app.homecare.rbac import role_required

bp = Blueprint("expert_area", __name__)


@bp.get("/")
@role_required(ROLE_EXPERT)
def index():
    s = db_session()
    assigned = q.applications.list_applications_by_assigned_expert(s, g.current_user.id)
    return {
        "area": "expert",
        "profile": profile_to_dict(g.current_profile),
        "unread_notifications": q.notifications.get_unread_notifications_count(s, g.current_user.id),
        "assigned_applications": len(assigned),
        "open_applications": sum(1 for a in assigned if not is_closed(a)),
    }


@bp.get("/clients")
@role_required(ROLE_EXPERT)
def clients_list():
    s = db_session()
    clients = q.clients.list_clients_for_expert(s, g.current_user.id)
    return {"clients": [client_to_dict(c) for c in clients]}


@bp.get("/applications")
@role_required(ROLE_EXPERT)
def applications_list():
    s = db_session()
    applications = q.applications.list_applications_by_assigned_expert(s, g.current_user.id)
    return {"applications": [application_to_dict(a) for a in applications]}


@bp.get("/applications/<application_id>")
@role_required(ROLE_EXPERT)
def application_detail(application_id: str):
    s = db_session()
    application = q.applications.get_application_for_owner_or_expert(s, application_id, g.current_user.id)
    if application is None:
        return redirect(url_for("expert_area.clients_list"))
    steps = q.applications.get_application_steps(s, application_id)
    return {
        "application": application_to_dict(application),
        "steps": [step_to_dict(st) for st in steps if not st.is_expert_step],
        "expert_steps_by_phase": expert_steps_by_phase(q.applications.get_expert_application_steps(s, application_id)),
        "documents": [document_to_dict(d) for d in q.applications.get_application_documents(s, application_id)],
    }


@bp.post("/applications/<application_id>/close")
@role_required(ROLE_EXPERT)
def application_close(application_id: str):
    s = db_session()
    if q.applications.get_application_for_owner_or_expert(s, application_id, g.current_user.id) is None:
        return {"error": MSG_NOT_FOUND}, 404
    result = close_application(s, application_id, actor=g.current_profile)
    return result.as_dict(), http_status_for(result)


@bp.post("/applications/<application_id>/steps")
@role_required(ROLE_EXPERT)
def expert_step_create(application_id: str):
    s = db_session()
    application = q.applications.get_application_for_owner_or_expert(s, application_id, g.current_user.id)
    if application is None:
        return {"error": MSG_NOT_FOUND}, 404
    if is_closed(application):
        return {"error": MSG_CLOSED_READ_ONLY}, 409

    payload = request_payload()
    errors = validate_expert_step_payload(payload)
    if errors:
        return {"error": errors[0], "errors": errors}, 400

    try:
        step = add_expert_step(s, application, payload, g.current_user)
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("Expert step create failed application_id=%s", application_id)
        return {"error": store_error_message(e)}, 502
    return {"error": None, "step": step_to_dict(step)}, 201


@bp.post("/applications/<application_id>/steps/<step_id>/complete")
@role_required(ROLE_EXPERT)
def step_complete(application_id: str, step_id: str):
    s = db_session()
    if q.applications.get_application_for_owner_or_expert(s, application_id, g.current_user.id) is None:
        return {"error": MSG_NOT_FOUND}, 404
    completed = parse_completed(request_payload())
    result = set_step_completed(s, application_id, step_id, completed, actor=g.current_user)
    application = q.applications.get_application_by_id(s, application_id)
    body = result.as_dict()
    body["progress_percentage"] = application.progress_percentage if application else None
    return body, http_status_for(result)


@bp.get("/phases")
@role_required(ROLE_EXPERT)
def phases():
    return {"phases": phase_options(), "default_phase": DEFAULT_EXPERT_STEP_PHASE}
