from flask import Blueprint, current_app

from app.pressroom.db import missing_tables

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return {"name": "pressroom", "api": "/api/posts"}


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON, including schema status."""
    try:
        missing = missing_tables(current_app.extensions["sqlalchemy_engine"])
    except Exception as e:
        current_app.logger.error("Health check DB error: %s", e)
        return {"ok": False, "db_connected": False}, 503
    return {"ok": True, "db_connected": True, "schema_ok": not missing, "missing_tables": missing}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200
