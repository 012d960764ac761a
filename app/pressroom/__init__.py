import os
import uuid
from datetime import timedelta

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv

from app.pressroom.config import load_config
from app.pressroom.db import init_db, missing_tables, teardown_db_session
from app.pressroom.errors import register_error_handlers
from app.pressroom.routes import bp as routes_bp
from app.pressroom.auth import bp as auth_bp
from app.pressroom.modules.posts.api import bp as posts_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    from app.pressroom.security import csrf_required, ensure_csrf_token, validate_csrf

    @app.before_request
    def _assign_request_id():
        g.request_id = (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/health", "/healthz")):
            return None
        from flask import session

        session.permanent = True
        if not app.config.get("CSRF_ENABLED", True):
            return None
        # Auth endpoints (register/login/logout) establish or drop the session.
        if (request.endpoint or "").startswith("auth."):
            return None
        if csrf_required(request):
            ensure_csrf_token()
            if not validate_csrf(request):
                app.logger.warning("CSRF rejected path=%s request_id=%s", request.path, g.request_id)
                return jsonify({"error": "CSRF token missing or invalid."}), 400
        return None

    @app.after_request
    def _echo_request_id(response):
        rid = getattr(g, "request_id", None)
        if rid:
            response.headers["X-Request-ID"] = rid
        return response

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

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
    app.register_blueprint(posts_bp, url_prefix="/api")

    app.teardown_appcontext(teardown_db_session)
    register_error_handlers(app)

    # Schema drift shows up in logs at boot and in /health afterwards.
    try:
        missing = missing_tables(app.extensions["sqlalchemy_engine"])
        if missing:
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
    except Exception as e:
        app.logger.exception("Schema health check failed: %s", e)

    app.logger.info("create_app() complete; app ready to serve")
    return app
