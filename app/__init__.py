"""Flask application factory.

Creates and configures the Flask app, registers extensions, error
handlers, and the client, provider and admin API namespaces.
"""

import logging
import os
from datetime import datetime
from decimal import Decimal

from flask import Flask
from flask.json.provider import DefaultJSONProvider
from flask_restx import Api

from app.config.settings import CONFIG_MAP
from app.extensions import db, migrate


class CustomJSONProvider(DefaultJSONProvider):
    """Extend Flask's default JSON provider to handle Decimal and datetime types."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """Build and configure the Flask application.

    Args:
        config_name: One of 'development', 'testing', 'production'.
                     Defaults to the FLASK_ENV environment variable.
        overrides: Config values applied on top of the selected class.
    """
    app = Flask(__name__)
    app.json_provider_class = CustomJSONProvider
    app.json = CustomJSONProvider(app)

    # --- Configuration ---
    config_name = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIG_MAP[config_name])
    app.config.update(overrides or {})

    # --- Extensions ---
    db.init_app(app)
    migrate.init_app(app, db)

    from app.domain import models  # noqa: F401  register tables with the metadata

    if config_name != "production":
        with app.app_context():
            db.create_all()

    # --- Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # --- API ---
    api = Api(
        app,
        title="Credit & Revision Accounting",
        version="1.0",
        description="Credit ledger, request pricing and revision accounting for a services marketplace",
    )

    from app.api.client import ns as client_ns
    from app.api.provider import ns as provider_ns
    from app.api.admin import ns as admin_ns

    api.add_namespace(client_ns, path="/client")
    api.add_namespace(provider_ns, path="/provider")
    api.add_namespace(admin_ns, path="/admin")

    # --- Global error handler ---
    _register_error_handlers(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    """Map application exceptions to JSON responses."""
    from app.domain.exceptions import AppError  # noqa: avoid circular import
    from app.schemas.response import app_error_response, error_response

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return app_error_response(error)

    @app.errorhandler(404)
    def handle_not_found(_error):
        return error_response("Resource not found", "NOT_FOUND", 404)

    @app.errorhandler(500)
    def handle_internal(_error):
        logging.getLogger(__name__).exception("Unhandled server error")
        return error_response("Internal server error", "INTERNAL_ERROR", 500)
