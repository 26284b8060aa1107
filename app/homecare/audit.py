import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.homecare.models import AuditEvent, User, UserProfile


def _request_fields(request_id: str | None) -> dict[str, str | None]:
    if not has_request_context():
        return {"request_id": request_id, "client_ip": None}
    return {
        "request_id": request_id or getattr(g, "request_id", None),
        "client_ip": request.remote_addr,
    }


def record_event(
    s: Session,
    *,
    actor: User | UserProfile | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add an append-only audit row to the caller's session; the caller commits it
    together with the change it describes. Works outside a request (scripts, tests).

    Identities and profiles share ids, so either can be passed as the actor.
    """
    event = AuditEvent(
        actor_user_id=getattr(actor, "id", None),
        actor_user_email=getattr(actor, "email", None),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        **_request_fields(request_id),
    )
    s.add(event)
    return event
