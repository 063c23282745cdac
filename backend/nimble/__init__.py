# backend/nimble/__init__.py
from __future__ import annotations

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import (
    ConflictError,
    NotFoundError,
    ProrationError,
    TransactionError,
    ValidationError,
)
from .extensions import db, migrate


def register_error_handlers(app: Flask) -> None:
    """Map service exceptions to JSON responses: {"error": ..., "details": ...}."""

    def _error(message: str, status: int, details: dict | None = None):
        body = {"error": message}
        if details:
            body["details"] = details
        return body, status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return _error(str(exc), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return _error(str(exc), 404)

    # Also covers OrderStateError and InsufficientStockError
    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return _error(str(exc), 409, exc.details)

    @app.errorhandler(ProrationError)
    def handle_proration_error(exc):
        return _error(str(exc), 422)

    @app.errorhandler(TransactionError)
    def handle_transaction_error(exc):
        app.logger.exception("Transaction failed on %s %s", request.method, request.path)
        return _error("Transaction failed", 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return _error(exc.description, exc.code)
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _error("Internal server error", 500)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.catalog import categories_bp, warehouses_bp, customers_bp, suppliers_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.sales_orders import sales_orders_bp
    from .routes.price_history import price_history_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(sales_orders_bp)
    app.register_blueprint(price_history_bp)
    app.register_blueprint(reports_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("CORS_ALLOWED_ORIGINS", [])):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
