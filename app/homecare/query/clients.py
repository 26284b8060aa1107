from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.homecare.modules.applications.models import Application, Client


def list_clients_by_owner(s: Session, company_owner_id: str) -> list[Client]:
    stmt = select(Client).where(Client.company_owner_id == company_owner_id).order_by(Client.created_at.desc())
    return list(s.execute(stmt).scalars())


def get_client_for_owner(s: Session, client_id: str, company_owner_id: str) -> Client | None:
    stmt = select(Client).where(Client.id == client_id, Client.company_owner_id == company_owner_id)
    return s.execute(stmt).scalar_one_or_none()


def list_clients_for_expert(s: Session, expert_user_id: str) -> list[Client]:
    """Clients that have at least one application assigned to the expert."""
    assigned = select(Application.client_id).where(
        Application.assigned_expert_id == expert_user_id,
        Application.client_id.is_not(None),
    )
    stmt = select(Client).where(Client.id.in_(assigned)).order_by(Client.contact_name.asc())
    return list(s.execute(stmt).scalars())
