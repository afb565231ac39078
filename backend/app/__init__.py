# backend/app/__init__.py
from flask import Flask, current_app, jsonify, request

from .config import Config
from .extensions import db, migrate
from .responses import error_payload
from .validation import ServiceError



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.queries import queries_bp  # Generic list endpoint
    from .routes.products import products_bp
    from .routes.sales import sales_bp  # Sales, returns, pre-orders
    from .routes.loyalty import loyalty_bp
    from .routes.archives import archives_bp
    from .routes.buy_backs import buy_backs_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(queries_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(loyalty_bp)
    app.register_blueprint(archives_bp)
    app.register_blueprint(buy_backs_bp)

    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        if exc.status_code >= 500:
            current_app.logger.error("Service failure on %s: %s", request.path, exc.message)
        return jsonify(error_payload(exc.message, exc.details)), exc.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "X-User-Id, Idempotency-Key, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
