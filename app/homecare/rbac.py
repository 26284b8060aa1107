"""
Role-based routing.

Every protected entry point goes through require_role (directly or via the
role_required decorator), so all areas redirect the same way:

- no session            -> login
- session, no profile   -> login (with an error hint)
- role not allowed      -> the caller's own home area
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import abort, current_app, g, redirect, request, url_for

from app.homecare.constants import ROLE_ADMIN, ROLE_COMPANY_OWNER, ROLE_EXPERT, ROLE_STAFF_MEMBER
from app.homecare.identity import AuthSession, current_auth_session
from app.homecare.models import User, UserProfile

LOGIN_ENDPOINT = "auth.login_get"

ROLE_HOME_ENDPOINTS: dict[str, str] = {
    ROLE_ADMIN: "admin_area.index",
    ROLE_EXPERT: "expert_area.index",
    ROLE_COMPANY_OWNER: "agency_area.index",
    ROLE_STAFF_MEMBER: "agency_area.index",
}

REASON_UNAUTHENTICATED = "unauthenticated"
REASON_MISSING_PROFILE = "missing_profile"
REASON_FORBIDDEN = "forbidden"

MISSING_PROFILE_MESSAGE = "Unable to load user profile"


@dataclass(frozen=True)
class RouteDecision:
    endpoint: str
    reason: str


def home_endpoint_for(role: str | None) -> str | None:
    if role is None:
        return None
    return ROLE_HOME_ENDPOINTS.get(role)


def decide_route(auth: AuthSession | None, required: Iterable[str]) -> RouteDecision | None:
    """
    Pure access decision. None means the caller may proceed.
    "No session" is checked before "wrong role".
    """
    if auth is None:
        return RouteDecision(LOGIN_ENDPOINT, REASON_UNAUTHENTICATED)
    home = home_endpoint_for(auth.role)
    if home is None:
        # No profile row, or a role with no home area: nowhere safe to send them but login.
        return RouteDecision(LOGIN_ENDPOINT, REASON_MISSING_PROFILE)
    if auth.role not in frozenset(required):
        return RouteDecision(home, REASON_FORBIDDEN)
    return None


def _next_path() -> str:
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return nxt


def require_role(required: Iterable[str]) -> tuple[User, UserProfile]:
    """
    Return (user, profile) for the current request, or end the request with a redirect.
    The redirect is raised through abort(), so it cannot be swallowed as a domain error.
    """
    required = frozenset(required)
    auth = current_auth_session()
    decision = decide_route(auth, required)
    if decision is None:
        return auth.user, auth.profile  # type: ignore[union-attr,return-value]

    if decision.reason == REASON_UNAUTHENTICATED:
        target = url_for(decision.endpoint, next=_next_path())
    elif decision.reason == REASON_MISSING_PROFILE:
        current_app.logger.warning(
            "No usable profile for user_id=%s request_id=%s",
            auth.user.id if auth else None,
            getattr(g, "request_id", None),
        )
        target = url_for(decision.endpoint, error=MISSING_PROFILE_MESSAGE)
    else:
        current_app.logger.warning(
            "Forbidden: role=%s required=%s path=%s request_id=%s",
            auth.role if auth else None,
            sorted(required),
            request.path,
            getattr(g, "request_id", None),
        )
        target = url_for(decision.endpoint)
    abort(redirect(target))


def role_required(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            require_role(roles)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
