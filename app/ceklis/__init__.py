import logging
import os
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv

from app.ceklis import models  # noqa: F401  (registers every table on Base.metadata)
from app.ceklis.config import load_config
from app.ceklis.constants import ANONYMOUS_PATH_PREFIXES, RESPONSE_HEADERS
from app.ceklis.db import init_db, teardown_db_session
from app.ceklis.errors import ServiceError
from app.ceklis.routes import bp as routes_bp
from app.ceklis.auth import bp as auth_bp, load_current_user
from app.ceklis.dashboard import bp as dashboard_bp
from app.ceklis.images import avatar_src, bp as images_bp
from app.ceklis.modules.organizations.api import bp as organizations_api_bp
from app.ceklis.modules.teams.api import bp as teams_api_bp
from app.ceklis.modules.labels.api import bp as labels_api_bp
from app.ceklis.modules.tasks.api import bp as tasks_api_bp
from app.ceklis.modules.epics.api import bp as epics_api_bp
from app.ceklis.modules.daily_checkin.api import bp as daily_checkin_api_bp
from app.ceklis.modules.analytics.api import bp as analytics_api_bp


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    from app.ceklis.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_template_helpers() -> dict:
        return {"csrf_token": ensure_csrf_token(), "avatar_src": avatar_src}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.template_filter("humanize")
    def _humanize_filter(value) -> str:
        # "IN_PROGRESS" -> "In progress"
        return str(value or "").replace("_", " ").capitalize()

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(ANONYMOUS_PATH_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Auth endpoints (OAuth callback/logout) carry their own state checks.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                if _wants_json():
                    return jsonify({"error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("GOOGLE_CLIENT_ID"):
            app.logger.error("GOOGLE_CLIENT_ID is not set; sign-in will be unavailable.")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(images_bp)
    for api_bp in (
        organizations_api_bp,
        teams_api_bp,
        labels_api_bp,
        tasks_api_bp,
        epics_api_bp,
        daily_checkin_api_bp,
        analytics_api_bp,
    ):
        app.register_blueprint(api_bp, url_prefix="/api")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.after_request
    def _apply_response_headers(response):
        for key, value in RESPONSE_HEADERS.items():
            response.headers.setdefault(key, value)
        return response

    @app.errorhandler(ServiceError)
    def _service_error(e: ServiceError):  # type: ignore[no-redef]
        app.logger.info(
            "Request rejected status=%s error=%s path=%s request_id=%s",
            e.status_code,
            e.message,
            request.path,
            getattr(g, "request_id", None),
        )
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        # Ensure stack trace shows in logs.
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        if _wants_json():
            return jsonify({"error": "Internal Server Error"}), 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Method not allowed"}), 405
        return e

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        app.logger.warning("Forbidden: path=%s request_id=%s", request.path, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Forbidden"}), 403
        return render_template("errors/403.html"), 403

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
