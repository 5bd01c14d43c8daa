import time

import duckdb
from flask import current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import blueprint
from ...extensions import db
from ...readmodel import metadata
from ...responses import utc_timestamp

_STARTED_AT = time.monotonic()


def _check_relational() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        current_app.logger.warning("Relational database check failed: %s", exc)
        db.session.rollback()
        return False


def _check_read_model() -> tuple[str, dict | None]:
    if current_app.config.get("ANALYTICS_BACKEND") != "duckdb":
        return "disabled", None
    try:
        last_run = metadata.latest_etl_run(current_app.config.get("DUCKDB_PATH"))
    except (duckdb.Error, FileNotFoundError) as exc:
        current_app.logger.warning("Read model check failed: %s", exc)
        return "unavailable", None
    return "available", last_run


@blueprint.route("/", strict_slashes=False)
def health():
    """Service health with dependency status; 503 when degraded."""
    relational_ok = _check_relational()
    read_model_status, last_run = _check_read_model()
    degraded = not relational_ok or read_model_status == "unavailable"

    payload = {
        "service": current_app.config.get("SERVICE_NAME", "ms-guide"),
        "status": "degraded" if degraded else "healthy",
        "timestamp": utc_timestamp(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "environment": current_app.config.get("CONFIG_NAME"),
        "version": current_app.config.get("API_VERSION"),
        "databases": {
            "relational": "connected" if relational_ok else "disconnected",
            "read_model": read_model_status,
        },
        "eventBus": "enabled" if current_app.extensions["event_publisher"].enabled else "disabled",
    }
    if last_run is not None:
        payload["lastProjection"] = last_run
    return jsonify(payload), 503 if degraded else 200


@blueprint.route("/ready")
def ready():
    """Readiness probe."""
    if _check_relational():
        return jsonify({"status": "ready"})
    return jsonify({"status": "not ready"}), 503


@blueprint.route("/live")
def live():
    return jsonify({"status": "alive"})
