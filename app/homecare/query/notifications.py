from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.homecare.models import Notification


def get_unread_notifications_count(s: Session, user_id: str) -> int:
    """Unread notifications for a user; used to decorate area home payloads."""
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return int(s.execute(stmt).scalar_one())


def mark_notification_as_read(s: Session, notification_id: str, user_id: str) -> int:
    stmt = (
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    return s.execute(stmt).rowcount
