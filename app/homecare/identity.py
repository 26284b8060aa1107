from __future__ import annotations

import uuid
from dataclasses import dataclass

from flask import current_app, g, request, session
from sqlalchemy.exc import SQLAlchemyError

from app.homecare import query as q
from app.homecare.db import db_session
from app.homecare.models import User, UserProfile

PUBLIC_PATH_PREFIXES = ("/static/", "/health", "/healthz")


@dataclass(frozen=True)
class AuthSession:
    user: User
    profile: UserProfile | None

    @property
    def role(self) -> str | None:
        return self.profile.role if self.profile else None


def resolve_session() -> AuthSession | None:
    """
    Resolve the authenticated identity (and its profile) for the current request.

    Absence is a normal outcome: no cookie, a deleted or deactivated identity, or a
    store fault while looking it up all yield None. Nothing is cached between requests.
    """
    user_id = session.get("user_id")
    if not user_id:
        return None

    s = db_session()
    try:
        user = q.profiles.get_user_by_id(s, str(user_id))
        if not user or not user.is_active:
            return None
        profile = q.profiles.get_profile_by_id(s, user.id)
    except SQLAlchemyError as e:
        current_app.logger.error("resolve_session DB error (treating as signed out): %s", e)
        s.rollback()
        return None
    return AuthSession(user=user, profile=profile)


def current_auth_session() -> AuthSession | None:
    """The session resolved for this request (resolved on first use)."""
    if not hasattr(g, "auth_session"):
        g.auth_session = resolve_session()
    return g.auth_session


def load_current_user() -> None:
    """
    before_request hook: publishes g.auth_session, g.current_user and g.current_profile.
    Also assigns a per-request request_id for audit/log correlation.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(PUBLIC_PATH_PREFIXES):
        g.auth_session = None
        g.current_user = None
        g.current_profile = None
        return

    auth = current_auth_session()
    g.current_user = auth.user if auth else None
    g.current_profile = auth.profile if auth else None
