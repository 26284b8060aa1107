from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from app.homecare import query as q
from app.homecare.audit import record_event
from app.homecare.constants import (
    APPLICATION_STATUS_CLOSED,
    APPLICATION_STATUS_OPEN,
    CLOSE_ALLOWED_ROLES,
    DOCUMENT_STATUS_PENDING,
    ROLE_ADMIN,
    ROLE_COMPANY_OWNER,
    ROLE_EXPERT,
    ROLE_STAFF_MEMBER,
    US_STATES,
)
from app.homecare.expert_step_phase import DEFAULT_EXPERT_STEP_PHASE, EXPERT_STEP_PHASE_ORDER, is_canonical_phase
from app.homecare.storage import storage_from_config

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.homecare.models import User, UserProfile
    from app.homecare.modules.applications.models import Application, ApplicationDocument, ApplicationStep

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Application not found"
MSG_NOT_AT_FULL_PROGRESS = "Application can only be closed when progress is 100%"
MSG_CLOSE_FORBIDDEN = "Only experts and admins can close applications"
MSG_CLOSED_READ_ONLY = "Closed applications cannot be modified"
MSG_STEP_NOT_FOUND = "Step not found"


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    UPDATE_FAILED = "update_failed"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a lifecycle action. error is None on success."""

    error: str | None = None
    kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, str | None]:
        return {"error": self.error}

    @classmethod
    def success(cls) -> "ActionResult":
        return cls()

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ActionResult":
        return cls(error=message, kind=kind)


def is_closed(application: "Application") -> bool:
    return application.status == APPLICATION_STATUS_CLOSED


def progress_of(application: "Application") -> int:
    """Progress gate value; a missing percentage counts as 0."""
    return application.progress_percentage or 0


def store_error_message(e: SQLAlchemyError) -> str:
    orig = getattr(e, "orig", None)
    return str(orig) if orig is not None else str(e)


# ---------- Close ----------


def close_application(s: "Session", application_id: str, *, actor: "UserProfile | None" = None) -> ActionResult:
    """
    Close an application. Allowed only at 100% progress; closing a closed
    application succeeds without writing.

    When an actor profile is passed, its role must be expert or admin. The write is
    a conditional update (still open and still at 100%), committed here, and status
    is the only column it touches.
    """
    if actor is not None and actor.role not in CLOSE_ALLOWED_ROLES:
        logger.warning("close_application refused: role=%s application_id=%s", actor.role, application_id)
        return ActionResult.fail(ErrorKind.FORBIDDEN, MSG_CLOSE_FORBIDDEN)

    try:
        application = q.applications.get_application_for_close(s, application_id)
    except SQLAlchemyError:
        logger.exception("close_application: fetch failed application_id=%s", application_id)
        s.rollback()
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)

    if application is None:
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)

    if is_closed(application):
        return ActionResult.success()

    if progress_of(application) < 100:
        return ActionResult.fail(ErrorKind.PRECONDITION_FAILED, MSG_NOT_AT_FULL_PROGRESS)

    try:
        matched = q.applications.close_application_update(s, application_id)
        if matched:
            record_event(
                s,
                actor=actor,
                action="application.close",
                entity_type="Application",
                entity_id=application_id,
                metadata={"progress_percentage": application.progress_percentage},
            )
            s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        logger.exception("close_application: update failed application_id=%s", application_id)
        return ActionResult.fail(ErrorKind.UPDATE_FAILED, store_error_message(e))

    if not matched:
        s.rollback()
        return _after_lost_race(s, application_id)

    s.expire(application)
    logger.info("Application closed application_id=%s by=%s", application_id, actor.id if actor else None)
    return ActionResult.success()


def _after_lost_race(s: "Session", application_id: str) -> ActionResult:
    """The conditional update matched nothing: something changed between read and write."""
    try:
        application = q.applications.get_application_for_close(s, application_id)
    except SQLAlchemyError:
        logger.exception("close_application: re-read failed application_id=%s", application_id)
        s.rollback()
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)
    if application is None:
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)
    if is_closed(application):
        return ActionResult.success()
    return ActionResult.fail(ErrorKind.PRECONDITION_FAILED, MSG_NOT_AT_FULL_PROGRESS)


# ---------- Steps & progress ----------


def compute_progress(steps: list["ApplicationStep"]) -> int | None:
    if not steps:
        return None
    done = sum(1 for st in steps if st.is_completed)
    return round(100 * done / len(steps))


def _refresh_progress(s: "Session", application: "Application", now: datetime) -> int | None:
    progress = compute_progress(q.applications.get_application_steps(s, application.id))
    if progress is not None:
        q.applications.update_application_progress(s, application.id, progress, now)
        s.expire(application)
    return progress


def set_step_completed(
    s: "Session",
    application_id: str,
    step_id: str,
    completed: bool,
    *,
    actor: "User | UserProfile",
) -> ActionResult:
    """Mark a step complete or incomplete and recompute the application's progress."""
    application = q.applications.get_application_by_id(s, application_id)
    if application is None:
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)
    if is_closed(application):
        return ActionResult.fail(ErrorKind.PRECONDITION_FAILED, MSG_CLOSED_READ_ONLY)

    step = q.applications.get_application_step(s, application_id, step_id)
    if step is None:
        return ActionResult.fail(ErrorKind.NOT_FOUND, MSG_STEP_NOT_FOUND)

    now = datetime.utcnow()
    try:
        step.is_completed = completed
        step.completed_at = now if completed else None
        s.flush()
        progress = _refresh_progress(s, application, now)
        record_event(
            s,
            actor=actor,
            action="application_step.complete" if completed else "application_step.reopen",
            entity_type="ApplicationStep",
            entity_id=step_id,
            metadata={"application_id": application_id, "progress_percentage": progress},
        )
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        logger.exception("set_step_completed failed application_id=%s step_id=%s", application_id, step_id)
        return ActionResult.fail(ErrorKind.UPDATE_FAILED, store_error_message(e))
    return ActionResult.success()


def validate_expert_step_payload(payload: dict) -> list[str]:
    """Validate an expert step payload. Returns list of errors."""
    errors = []
    name = (payload.get("step_name") or "").strip()
    if not name:
        errors.append("Step name is required.")
    phase = (payload.get("phase") or "").strip()
    if phase and not is_canonical_phase(phase):
        errors.append(f"Invalid phase. Must be one of: {', '.join(EXPERT_STEP_PHASE_ORDER)}")
    return errors


def add_expert_step(
    s: "Session",
    application: "Application",
    payload: dict,
    user: "User",
) -> "ApplicationStep":
    """Append an expert step after the current last expert step. Caller commits."""
    now = datetime.utcnow()
    step = q.applications.insert_application_step(
        s,
        {
            "application_id": application.id,
            "step_name": (payload.get("step_name") or "").strip(),
            "description": (payload.get("description") or "").strip() or None,
            "phase": (payload.get("phase") or "").strip() or DEFAULT_EXPERT_STEP_PHASE,
            "step_order": q.applications.get_max_expert_step_order(s, application.id) + 1,
            "is_expert_step": True,
            "is_completed": False,
            "created_at": now,
        },
    )
    progress = _refresh_progress(s, application, now)
    record_event(
        s,
        actor=user,
        action="application_step.create",
        entity_type="ApplicationStep",
        entity_id=step.id,
        metadata={"application_id": application.id, "phase": step.phase, "progress_percentage": progress},
    )
    return step


# ---------- Create ----------


def validate_application_payload(payload: dict) -> list[str]:
    """Validate a new application payload. Returns list of errors."""
    errors = []
    name = (payload.get("application_name") or "").strip()
    if not name:
        errors.append("Application name is required.")
    state = (payload.get("state") or "").strip()
    if not state:
        errors.append("State is required.")
    elif state not in US_STATES:
        errors.append(f"Unknown state: {state}")
    return errors


def create_application(s: "Session", payload: dict, owner: "User") -> "Application":
    """Start a new open application at 0% progress. Caller commits."""
    now = datetime.utcnow()
    application = q.applications.insert_application(
        s,
        {
            "company_owner_id": owner.id,
            "client_id": (payload.get("client_id") or "").strip() or None,
            "application_name": (payload.get("application_name") or "").strip(),
            "state": (payload.get("state") or "").strip(),
            "status": APPLICATION_STATUS_OPEN,
            "progress_percentage": 0,
            "started_date": now,
            "last_updated_date": now,
        },
    )
    record_event(
        s,
        actor=owner,
        action="application.create",
        entity_type="Application",
        entity_id=application.id,
        metadata={"application_name": application.application_name, "state": application.state},
    )
    return application


# ---------- Documents ----------


def build_document_storage_key(application_id: str, filename: str, upload_date: date | None = None) -> str:
    """Build deterministic storage key for an application document."""
    if upload_date is None:
        upload_date = date.today()
    safe_filename = secure_filename(filename) or "document.bin"
    return f"applications/{application_id}/{upload_date.isoformat()}/{safe_filename}"


def file_digest_and_size(file_bytes: bytes) -> tuple[str, int]:
    h = hashlib.sha256()
    h.update(file_bytes)
    return h.hexdigest(), len(file_bytes)


def upload_application_document(
    s: "Session",
    application: "Application",
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    user: "User",
) -> "ApplicationDocument":
    """
    Record the file against the application, then store it. The row is flushed
    before the object is written so a failed insert leaves nothing in storage.
    Caller commits, and deletes the stored object if that commit fails.
    """
    sha256, size_bytes = file_digest_and_size(file_bytes)
    storage_key = build_document_storage_key(application.id, filename)

    doc = q.applications.insert_application_document(
        s,
        {
            "application_id": application.id,
            "document_name": secure_filename(filename) or "document.bin",
            "storage_key": storage_key,
            "content_type": content_type,
            "size_bytes": size_bytes,
            "sha256": sha256,
            "status": DOCUMENT_STATUS_PENDING,
            "uploaded_by_user_id": user.id,
        },
    )
    record_event(
        s,
        actor=user,
        action="application.document_upload",
        entity_type="ApplicationDocument",
        entity_id=doc.id,
        metadata={"application_id": application.id, "filename": doc.document_name, "size_bytes": size_bytes},
    )
    s.flush()

    storage = storage_from_config(current_app.config)
    storage.put_bytes(storage_key, file_bytes, content_type=content_type)
    return doc


# ---------- Visibility ----------


def agency_owner_id(profile: "UserProfile") -> str | None:
    """The company owner whose records an agency user works on."""
    if profile.role == ROLE_COMPANY_OWNER:
        return profile.id
    if profile.role == ROLE_STAFF_MEMBER:
        return profile.company_owner_id
    return None


def get_visible_application(s: "Session", application_id: str, profile: "UserProfile") -> "Application | None":
    """Application as seen by the caller's scope; None when missing or out of scope."""
    if profile.role == ROLE_ADMIN:
        return q.applications.get_application_by_id(s, application_id)
    if profile.role == ROLE_EXPERT:
        return q.applications.get_application_for_owner_or_expert(s, application_id, profile.id)
    owner_id = agency_owner_id(profile)
    if owner_id is None:
        return None
    return q.applications.get_application_for_owner(s, application_id, owner_id)
