from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from app.homecare.constants import APPLICATION_STATUS_CLOSED
from app.homecare.modules.applications.models import Application, ApplicationDocument, ApplicationStep


def get_application_for_close(s: Session, application_id: str) -> Application | None:
    """Fetch the application whose status/progress gate the close transition."""
    # populate_existing: never trust a row cached earlier in this session.
    stmt = select(Application).where(Application.id == application_id).execution_options(populate_existing=True)
    return s.execute(stmt).scalar_one_or_none()


def get_application_by_id(s: Session, application_id: str) -> Application | None:
    return s.get(Application, application_id)


def get_application_for_owner(s: Session, application_id: str, company_owner_id: str) -> Application | None:
    stmt = select(Application).where(
        Application.id == application_id,
        Application.company_owner_id == company_owner_id,
    )
    return s.execute(stmt).scalar_one_or_none()


def get_application_for_owner_or_expert(s: Session, application_id: str, user_id: str) -> Application | None:
    stmt = select(Application).where(
        Application.id == application_id,
        or_(Application.company_owner_id == user_id, Application.assigned_expert_id == user_id),
    )
    return s.execute(stmt).scalar_one_or_none()


def close_application_update(s: Session, application_id: str) -> int:
    """
    Conditionally set status to closed. Only rows that are still open and at 100%
    progress match, so a concurrent progress change cannot slip past the check.
    Returns the number of rows matched.
    """
    stmt = (
        update(Application)
        .where(
            Application.id == application_id,
            Application.status != APPLICATION_STATUS_CLOSED,
            Application.progress_percentage >= 100,
        )
        .values(status=APPLICATION_STATUS_CLOSED)
        .execution_options(synchronize_session=False)
    )
    return s.execute(stmt).rowcount


def insert_application(s: Session, data: dict) -> Application:
    app_row = Application(**data)
    s.add(app_row)
    s.flush()
    return app_row


def update_application_progress(s: Session, application_id: str, progress: int, updated_at: datetime) -> int:
    stmt = (
        update(Application)
        .where(Application.id == application_id)
        .values(progress_percentage=progress, last_updated_date=updated_at)
        .execution_options(synchronize_session=False)
    )
    return s.execute(stmt).rowcount


def list_applications_by_owner(s: Session, company_owner_id: str) -> list[Application]:
    stmt = (
        select(Application)
        .where(Application.company_owner_id == company_owner_id)
        .order_by(Application.last_updated_date.desc(), Application.created_at.desc())
    )
    return list(s.execute(stmt).scalars())


def list_licenses_by_owner(s: Session, company_owner_id: str) -> list[Application]:
    """Closed applications are the agency's licenses."""
    stmt = (
        select(Application)
        .where(
            Application.company_owner_id == company_owner_id,
            Application.status == APPLICATION_STATUS_CLOSED,
        )
        .order_by(Application.last_updated_date.desc(), Application.created_at.desc())
    )
    return list(s.execute(stmt).scalars())


def list_applications_by_assigned_expert(s: Session, expert_user_id: str) -> list[Application]:
    stmt = (
        select(Application)
        .where(Application.assigned_expert_id == expert_user_id)
        .order_by(Application.created_at.desc())
    )
    return list(s.execute(stmt).scalars())


def list_applications_by_status(s: Session, status: str) -> list[Application]:
    stmt = select(Application).where(Application.status == status).order_by(Application.created_at.desc())
    return list(s.execute(stmt).scalars())


def list_all_applications(s: Session) -> list[Application]:
    return list(s.execute(select(Application).order_by(Application.created_at.desc())).scalars())


def get_application_steps(s: Session, application_id: str) -> list[ApplicationStep]:
    stmt = (
        select(ApplicationStep)
        .where(ApplicationStep.application_id == application_id)
        .order_by(ApplicationStep.step_order.asc())
    )
    return list(s.execute(stmt).scalars())


def get_expert_application_steps(s: Session, application_id: str) -> list[ApplicationStep]:
    stmt = (
        select(ApplicationStep)
        .where(ApplicationStep.application_id == application_id, ApplicationStep.is_expert_step.is_(True))
        .order_by(ApplicationStep.step_order.asc())
    )
    return list(s.execute(stmt).scalars())


def get_max_expert_step_order(s: Session, application_id: str) -> int:
    stmt = select(func.max(ApplicationStep.step_order)).where(
        ApplicationStep.application_id == application_id,
        ApplicationStep.is_expert_step.is_(True),
    )
    return int(s.execute(stmt).scalar_one_or_none() or 0)


def get_application_step(s: Session, application_id: str, step_id: str) -> ApplicationStep | None:
    stmt = select(ApplicationStep).where(
        ApplicationStep.id == step_id,
        ApplicationStep.application_id == application_id,
    )
    return s.execute(stmt).scalar_one_or_none()


def insert_application_step(s: Session, data: dict) -> ApplicationStep:
    step = ApplicationStep(**data)
    s.add(step)
    s.flush()
    return step


def get_application_documents(s: Session, application_id: str) -> list[ApplicationDocument]:
    stmt = (
        select(ApplicationDocument)
        .where(ApplicationDocument.application_id == application_id)
        .order_by(ApplicationDocument.created_at.desc())
    )
    return list(s.execute(stmt).scalars())


def get_application_document(s: Session, document_id: str) -> ApplicationDocument | None:
    return s.get(ApplicationDocument, document_id)


def insert_application_document(s: Session, data: dict) -> ApplicationDocument:
    doc = ApplicationDocument(**data)
    s.add(doc)
    s.flush()
    return doc
