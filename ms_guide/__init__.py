import logging
import time

from flask import Flask, g, jsonify, request

from .api import register_blueprints
from .config import config_by_name
from .errors import GuideServiceError
from .extensions import db
from .responses import error_response, utc_timestamp
from .services.events import init_event_bus


def create_app(config_name: str | None = None) -> Flask:
    """Application factory configuring extensions and blueprints."""
    app = Flask(__name__, instance_relative_config=True)

    selected_name = config_name or "development"
    base_config = config_by_name["default"]
    app.config.from_object(base_config)

    if selected_name in config_by_name:
        app.config.from_object(config_by_name[selected_name])
    app.config["CONFIG_NAME"] = selected_name

    app.config.from_pyfile("config.py", silent=True)

    configure_logging(app)

    db.init_app(app)
    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    init_event_bus(app)
    register_blueprints(app)
    register_root_route(app)

    setup_request_logging(app)
    setup_cors_headers(app)
    register_error_handlers(app)

    return app


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    if not app.testing:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger(__name__).setLevel(level)
    app.logger.setLevel(level)


def register_root_route(app: Flask) -> None:
    @app.route("/")
    def service_info():
        return jsonify(
            {
                "service": app.config.get("API_TITLE"),
                "version": app.config.get("API_VERSION"),
                "status": "running",
                "timestamp": utc_timestamp(),
                "environment": app.config.get("CONFIG_NAME"),
                "features": {
                    "analyticsBackend": app.config.get("ANALYTICS_BACKEND"),
                    "eventBus": bool(app.config.get("USE_EVENT_BUS")),
                },
            }
        )


def setup_request_logging(app: Flask) -> None:
    @app.before_request
    def start_timer():
        g.request_started_at = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started_at")
        duration_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        app.logger.info(
            "%s %s %s %.1fms", request.method, request.path, response.status_code, duration_ms
        )
        return response


def setup_cors_headers(app: Flask) -> None:
    """Allow cross-origin requests for all endpoints."""

    @app.after_request
    def apply_cors(response):
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type,X-API-Key")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,PUT,OPTIONS")
        return response


def register_error_handlers(app: Flask) -> None:
    """Render domain errors and common HTTP errors in the JSON envelope."""

    @app.errorhandler(GuideServiceError)
    def guide_service_error(error: GuideServiceError):
        if error.status_code >= 500:
            extra = {}
            if app.debug and error.__cause__ is not None:
                extra["detail"] = str(error.__cause__)
            return error_response(str(error), error.status_code, **extra)
        return error_response(str(error), error.status_code)

    @app.errorhandler(404)
    def not_found(error):
        return error_response(f"Route {request.method} {request.path} not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response(f"Method {request.method} not allowed for {request.path}", 405)

    @app.errorhandler(500)
    def internal_error(error):
        original = getattr(error, "original_exception", None)
        app.logger.error("Unhandled error on %s %s: %s", request.method, request.path, original or error)
        extra = {"detail": str(original)} if app.debug and original is not None else {}
        return error_response("Internal server error", 500, **extra)
