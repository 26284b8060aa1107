import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, request, session

from app.homecare.auth import bp as auth_bp
from app.homecare.config import PRODUCTION_ENVS, load_config
from app.homecare.db import init_db, teardown_db_session
from app.homecare.identity import PUBLIC_PATH_PREFIXES, load_current_user
from app.homecare.modules.admin_area.admin import bp as admin_area_bp
from app.homecare.modules.agency_area.admin import bp as agency_area_bp
from app.homecare.modules.applications import models as _application_models  # noqa: F401  (registers tables)
from app.homecare.modules.applications.admin import bp as applications_bp
from app.homecare.modules.expert_area.admin import bp as expert_area_bp
from app.homecare.routes import bp as routes_bp
from app.homecare.security import csrf_protect

logger = logging.getLogger(__name__)


def _check_production_config(app: Flask) -> None:
    """Refuse to boot a production process on development defaults."""
    if (app.config.get("ENV") or "").strip().lower() not in PRODUCTION_ENVS:
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")


def _check_storage_config(app: Flask) -> None:
    if app.config.get("STORAGE_BACKEND") != "s3":
        return
    missing = [k for k in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY") if not app.config.get(k)]
    if missing:
        app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing))


def _dispose_engine_after_fork(app: Flask) -> None:
    # gunicorn --preload forks after create_app(); pooled connections must not cross the fork.
    if not hasattr(os, "register_at_fork"):
        return

    def _after_fork_child() -> None:
        engine = app.extensions.get("sqlalchemy_engine")
        if engine is not None:
            engine.dispose()
            app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

    os.register_at_fork(after_in_child=_after_fork_child)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(403)
    def _forbidden(e):
        app.logger.warning("Forbidden path=%s request_id=%s", request.path, getattr(g, "request_id", None))
        return {"error": "Forbidden."}, 403

    @app.errorhandler(404)
    def _not_found(e):
        return {"error": "Not found."}, 404

    @app.errorhandler(413)
    def _too_large(e):
        return {"error": "File too large. Maximum size is 10MB."}, 413

    @app.errorhandler(500)
    def _server_error(e):
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return {"error": "Internal server error."}, 500


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    _check_production_config(app)
    init_db(app)
    _dispose_engine_after_fork(app)
    _check_storage_config(app)

    @app.before_request
    def _session_and_csrf():
        if request.path.startswith(PUBLIC_PATH_PREFIXES):
            return None
        session.permanent = True
        return csrf_protect()

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_area_bp, url_prefix="/admin")
    app.register_blueprint(expert_area_bp, url_prefix="/expert")
    app.register_blueprint(agency_area_bp, url_prefix="/agency")
    app.register_blueprint(applications_bp)

    _register_error_handlers(app)

    logger.info("create_app() complete; app ready to serve")
    return app
