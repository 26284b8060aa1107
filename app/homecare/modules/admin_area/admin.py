from __future__ import annotations

from flask import Blueprint, g, redirect, request, url_for

from app.homecare import query as q
from app.homecare.constants import APPLICATION_STATUSES, ROLE_ADMIN, ROLE_EXPERT
from app.homecare.db import db_session
from app.homecare.modules.applications.service import close_application
from app.homecare.modules.applications.utils import (
    application_to_dict,
    document_to_dict,
    expert_steps_by_phase,
    http_status_for,
    profile_to_dict,
    step_to_dict,
)
from app.homecare.rbac import role_required

bp = Blueprint("admin_area", __name__)


@bp.get("/")
@role_required(ROLE_ADMIN)
def index():
    s = db_session()
    applications = q.applications.list_all_applications(s)
    by_status = {status: 0 for status in APPLICATION_STATUSES}
    for a in applications:
        by_status[a.status] = by_status.get(a.status, 0) + 1
    return {
        "area": "admin",
        "profile": profile_to_dict(g.current_profile),
        "unread_notifications": q.notifications.get_unread_notifications_count(s, g.current_user.id),
        "applications_by_status": by_status,
        "experts": [profile_to_dict(p) for p in q.profiles.list_profiles_by_role(s, ROLE_EXPERT)],
    }


@bp.get("/applications")
@role_required(ROLE_ADMIN)
def applications_list():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    if status_filter:
        applications = q.applications.list_applications_by_status(s, status_filter)
    else:
        applications = q.applications.list_all_applications(s)
    return {
        "status_filter": status_filter or None,
        "applications": [application_to_dict(a) for a in applications],
    }


@bp.get("/applications/<application_id>")
@role_required(ROLE_ADMIN)
def application_detail(application_id: str):
    s = db_session()
    application = q.applications.get_application_by_id(s, application_id)
    if application is None:
        return redirect(url_for("admin_area.applications_list"))
    steps = q.applications.get_application_steps(s, application_id)
    return {
        "application": application_to_dict(application),
        "steps": [step_to_dict(st) for st in steps if not st.is_expert_step],
        "expert_steps_by_phase": expert_steps_by_phase(q.applications.get_expert_application_steps(s, application_id)),
        "documents": [document_to_dict(d) for d in q.applications.get_application_documents(s, application_id)],
    }


@bp.post("/applications/<application_id>/close")
@role_required(ROLE_ADMIN)
def application_close(application_id: str):
    result = close_application(db_session(), application_id, actor=g.current_profile)
    return result.as_dict(), http_status_for(result)
