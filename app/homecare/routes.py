from flask import Blueprint, g, redirect, url_for

from app.homecare.rbac import LOGIN_ENDPOINT, home_endpoint_for

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    """Signed-in users land on their role's area; everyone else on login."""
    profile = getattr(g, "current_profile", None)
    home = home_endpoint_for(profile.role if profile else None)
    return redirect(url_for(home or LOGIN_ENDPOINT))


@bp.get("/health")
def health():
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    # Liveness check: no session, no database.
    return "ok", 200
