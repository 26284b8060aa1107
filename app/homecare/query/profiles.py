from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.homecare.models import User, UserProfile


def get_user_by_id(s: Session, user_id: str) -> User | None:
    return s.get(User, user_id)


def get_user_by_email(s: Session, email: str) -> User | None:
    return s.execute(select(User).where(User.email == email)).scalar_one_or_none()


def get_profile_by_id(s: Session, user_id: str) -> UserProfile | None:
    return s.get(UserProfile, user_id)


def list_profiles_by_role(s: Session, role: str) -> list[UserProfile]:
    stmt = select(UserProfile).where(UserProfile.role == role).order_by(UserProfile.full_name.asc())
    return list(s.execute(stmt).scalars())
