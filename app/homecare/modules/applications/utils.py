from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import request

from app.homecare.expert_step_phase import group_steps_by_phase
from app.homecare.models import UserProfile
from app.homecare.modules.applications.models import Application, ApplicationDocument, ApplicationStep, Client
from app.homecare.modules.applications.service import ActionResult, ErrorKind

_STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PRECONDITION_FAILED: 409,
    ErrorKind.UPDATE_FAILED: 502,
}


def http_status_for(result: ActionResult) -> int:
    if result.ok or result.kind is None:
        return 200
    return _STATUS_BY_KIND.get(result.kind, 400)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "role": profile.role,
    }


def client_to_dict(client: Client) -> dict[str, Any]:
    return {
        "id": client.id,
        "contact_name": client.contact_name,
        "contact_email": client.contact_email,
        "status": client.status,
        "created_at": _iso(client.created_at),
    }


def application_to_dict(application: Application) -> dict[str, Any]:
    return {
        "id": application.id,
        "application_name": application.application_name,
        "state": application.state,
        "status": application.status,
        "progress_percentage": application.progress_percentage,
        "client_id": application.client_id,
        "company_owner_id": application.company_owner_id,
        "assigned_expert_id": application.assigned_expert_id,
        "started_date": _iso(application.started_date),
        "last_updated_date": _iso(application.last_updated_date),
        "created_at": _iso(application.created_at),
    }


def step_to_dict(step: ApplicationStep) -> dict[str, Any]:
    return {
        "id": step.id,
        "step_name": step.step_name,
        "description": step.description,
        "step_order": step.step_order,
        "phase": step.phase,
        "is_expert_step": step.is_expert_step,
        "is_completed": step.is_completed,
        "completed_at": _iso(step.completed_at),
    }


def document_to_dict(doc: ApplicationDocument) -> dict[str, Any]:
    return {
        "id": doc.id,
        "document_name": doc.document_name,
        "content_type": doc.content_type,
        "size_bytes": doc.size_bytes,
        "status": doc.status,
        "created_at": _iso(doc.created_at),
    }


def expert_steps_by_phase(steps: list[ApplicationStep]) -> list[dict[str, Any]]:
    return [
        {"phase": phase, "steps": [step_to_dict(st) for st in grouped]}
        for phase, grouped in group_steps_by_phase(steps)
    ]


def request_payload() -> dict[str, Any]:
    """Form fields or JSON body, whichever the client sent."""
    if request.is_json:
        data = request.get_json(silent=True)
        # Arrays and scalars are well-formed JSON but carry no fields.
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def parse_completed(payload: dict[str, Any]) -> bool:
    return str(payload.get("completed", "true")).strip().lower() not in ("0", "false", "no", "")
