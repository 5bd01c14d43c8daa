from flask import Flask

from .analytics import blueprint as analytics_blueprint
from .docs import blueprint as docs_blueprint
from .guides import blueprint as guides_blueprint
from .health import blueprint as health_blueprint


def register_blueprints(app: Flask) -> None:
    """Wire all HTTP blueprints into the Flask app."""
    app.register_blueprint(health_blueprint, url_prefix="/health")
    app.register_blueprint(guides_blueprint, url_prefix="/api/v1/guides")
    app.register_blueprint(analytics_blueprint, url_prefix="/api/v1/analytics")
    app.register_blueprint(docs_blueprint, url_prefix="/docs")
