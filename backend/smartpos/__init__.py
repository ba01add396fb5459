# backend/smartpos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _build_terminal(app: Flask):
    from .services.ai_service import GeminiClient
    from .services.change_feed import ChangeFeed
    from .services.datastore import DataStore
    from .services.remote_store import RemoteStore
    from .services.terminal_service import EXTENSION_KEY, Terminal

    remote = None
    feed = None
    remote_url = app.config.get("REMOTE_DATABASE_URL")
    if remote_url:
        remote = RemoteStore(remote_url)
        feed = ChangeFeed(remote, interval=app.config["CHANGE_FEED_POLL_SECONDS"])

    store = DataStore(
        remote,
        image_max_width=app.config["IMAGE_MAX_WIDTH"],
        image_quality=app.config["IMAGE_JPEG_QUALITY"],
        change_feed=feed,
    )
    ai_client = GeminiClient(
        app.config.get("GEMINI_API_KEY"),
        model=app.config["GEMINI_MODEL"],
        base_url=app.config["GEMINI_BASE_URL"],
        timeout=app.config["GEMINI_TIMEOUT_SECONDS"],
        transport=app.config.get("GEMINI_TRANSPORT"),
    )
    terminal = Terminal(
        store,
        seed_demo_catalog=app.config["SEED_DEMO_CATALOG"],
        report_timezone=app.config.get("REPORT_TIMEZONE"),
        ai_client=ai_client,
    )
    app.extensions[EXTENSION_KEY] = terminal

    if feed is not None and app.config["CHANGE_FEED_ENABLED"] and not app.config.get("TESTING"):
        feed.start()
        app.logger.info("Change feed polling %s every %ss", remote_url, feed.interval)

    return terminal


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before extensions read the config
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.billing import billing_bp
    from .routes.orders import orders_bp
    from .routes.settings import settings_bp
    from .routes.analytics import analytics_bp
    from .routes.imports import imports_bp
    from .routes.ai import ai_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(billing_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(imports_bp)
    app.register_blueprint(ai_bp)

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
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    _build_terminal(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
