import logging
import os

from flask import Flask, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .cli import register_cli
from .errors import ApiError, InternalError, RateLimitError
from .extensions import db, migrate, serialize_sqlite_writers
from .routes.bookings import bp as bookings_bp
from .routes.health import bp as health_bp
from .routes.properties import bp as properties_bp
from .routes.reports import bp as reports_bp
from .routes.users import bp as users_bp
from .utils.ratelimit import init_rate_limit
from .utils.request_log import init_request_logging
from config import Config

logger = logging.getLogger("staysync")

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def _register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc):
        response = jsonify(exc.to_dict())
        if isinstance(exc, RateLimitError) and exc.details:
            response.headers["Retry-After"] = str(exc.details.get("retry_after", 1))
        return response, exc.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc):
        db.session.rollback()
        logger.warning("integrity error on %s %s: %s", request.method, request.path, exc.orig)
        return jsonify({
            "success": False,
            "error": "record violates a uniqueness or integrity rule",
            "code": "DUPLICATE_ENTRY",
        }), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        body = {"success": False, "error": exc.description, "code": exc.name.upper().replace(" ", "_")}
        if exc.code == 404:
            body.update(error="endpoint not found", code="ENDPOINT_NOT_FOUND", path=request.path)
        return jsonify(body), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        error = InternalError()
        return jsonify(error.to_dict()), error.status_code


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.json.sort_keys = False

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("staysync").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            serialize_sqlite_writers(db.engine)

    init_request_logging(app)
    init_rate_limit(app)

    prefix = f"/api/{app.config['API_VERSION']}"
    app.register_blueprint(health_bp)
    app.register_blueprint(users_bp, url_prefix=f"{prefix}/users")
    app.register_blueprint(properties_bp, url_prefix=f"{prefix}/properties")
    app.register_blueprint(bookings_bp, url_prefix=f"{prefix}/bookings")
    app.register_blueprint(reports_bp, url_prefix=f"{prefix}/reports")

    _register_error_handlers(app)
    register_cli(app)

    return app
