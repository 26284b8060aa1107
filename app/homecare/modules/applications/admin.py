from __future__ import annotations

from flask import Blueprint, abort, current_app, g, request, send_file
from sqlalchemy.exc import SQLAlchemyError

from app.homecare import query as q
from app.homecare.audit import record_event
from app.homecare.constants import ALL_ROLES
from app.homecare.db import db_session
from app.homecare.modules.applications.service import (
    MSG_CLOSED_READ_ONLY,
    MSG_NOT_FOUND,
    get_visible_application,
    is_closed,
    store_error_message,
    upload_application_document,
)
from app.homecare.modules.applications.utils import document_to_dict
from app.homecare.rbac import require_role, role_required
from app.homecare.storage import StorageError, storage_from_config

bp = Blueprint("applications", __name__)


# ---------- Notifications ----------
@bp.post("/notifications/<notification_id>/read")
@role_required(*ALL_ROLES)
def notification_mark_read(notification_id: str):
    s = db_session()
    matched = q.notifications.mark_notification_as_read(s, notification_id, g.current_user.id)
    if not matched:
        s.rollback()
        abort(404)
    s.commit()
    return {
        "error": None,
        "unread_notifications": q.notifications.get_unread_notifications_count(s, g.current_user.id),
    }


# ---------- Documents ----------
def _discard_stored_object(storage_key: str) -> None:
    try:
        storage_from_config(current_app.config).delete(storage_key)
    except StorageError as e:
        current_app.logger.error("Stored object left without a record key=%s: %s", storage_key, e)


@bp.post("/applications/<application_id>/documents")
def application_document_upload(application_id: str):
    user, profile = require_role(ALL_ROLES)
    s = db_session()

    application = get_visible_application(s, application_id, profile)
    if application is None:
        return {"error": MSG_NOT_FOUND}, 404
    if is_closed(application):
        return {"error": MSG_CLOSED_READ_ONLY}, 409

    f = request.files.get("file")
    if not f or not f.filename:
        return {"error": "File is required."}, 400
    file_bytes = f.read()
    if not file_bytes:
        return {"error": "File is empty."}, 400

    try:
        doc = upload_application_document(
            s,
            application,
            file_bytes,
            f.filename,
            f.mimetype or "application/octet-stream",
            user,
        )
    except StorageError as e:
        s.rollback()
        current_app.logger.error("Document upload failed application_id=%s: %s", application_id, e)
        return {"error": "Document storage is unavailable."}, 502
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("Document record failed application_id=%s", application_id)
        return {"error": store_error_message(e)}, 502

    storage_key = doc.storage_key
    try:
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("Document commit failed application_id=%s", application_id)
        _discard_stored_object(storage_key)
        return {"error": store_error_message(e)}, 502
    return {"error": None, "document": document_to_dict(doc)}, 201


@bp.get("/documents/<document_id>")
def application_document_download(document_id: str):
    user, profile = require_role(ALL_ROLES)
    s = db_session()

    doc = q.applications.get_application_document(s, document_id)
    if doc is None or get_visible_application(s, doc.application_id, profile) is None:
        abort(404)

    # The download is audited before any handle is opened.
    try:
        record_event(
            s,
            actor=user,
            action="application.document_download",
            entity_type="ApplicationDocument",
            entity_id=doc.id,
            metadata={"application_id": doc.application_id, "filename": doc.document_name},
        )
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("Download audit failed document_id=%s", document_id)
        return {"error": store_error_message(e)}, 502

    try:
        fobj = storage_from_config(current_app.config).open(doc.storage_key)
    except StorageError as e:
        current_app.logger.error("Document download failed document_id=%s: %s", document_id, e)
        abort(404)

    return send_file(
        fobj,
        mimetype=doc.content_type or "application/octet-stream",
        as_attachment=True,
        download_name=doc.document_name,
    )
