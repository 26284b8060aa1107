from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, redirect, request, session, url_for
from werkzeug.security import check_password_hash

from app.homecare import query as q
from app.homecare.audit import record_event
from app.homecare.db import db_session
from app.homecare.rbac import home_endpoint_for

bp = Blueprint("auth", __name__)


def _login_attempts() -> defaultdict[str, list[datetime]]:
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    window = int(current_app.config.get("LOGIN_RATE_WINDOW_SECONDS", 300))
    limit = int(current_app.config.get("LOGIN_RATE_LIMIT", 5))
    attempts = _login_attempts()
    cutoff = datetime.utcnow() - timedelta(seconds=window)
    attempts[ip] = [t for t in attempts[ip] if t > cutoff]
    return len(attempts[ip]) >= limit


def _record_attempt(ip: str) -> None:
    _login_attempts()[ip].append(datetime.utcnow())


def _safe_next(nxt: str) -> str | None:
    # Only allow local paths to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login_get():
    return {
        "login_required": True,
        "next": (request.args.get("next") or "").strip() or None,
        "error": (request.args.get("error") or "").strip() or None,
    }


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit ip=%s", ip)
        return {"error": "Too many login attempts. Please wait 5 minutes."}, 429

    _record_attempt(ip)

    s = db_session()
    user = q.profiles.get_user_by_email(s, email)
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        current_app.logger.warning("Login failed email=%s request_id=%s", email, getattr(g, "request_id", None))
        return {"error": "Invalid credentials."}, 401

    session.clear()
    session["user_id"] = user.id
    _login_attempts()[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    s.commit()

    target = _safe_next(nxt)
    if target:
        return redirect(target)
    profile = q.profiles.get_profile_by_id(s, user.id)
    home = home_endpoint_for(profile.role if profile else None)
    if home is None:
        return redirect(url_for("auth.login_get", error="Unable to load user profile"))
    return redirect(url_for(home))


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
        s.commit()
    session.clear()
    return redirect(url_for("auth.login_get"))
