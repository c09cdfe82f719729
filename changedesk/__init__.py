"""
ChangeDesk — IT Change Request Tracker
Flask Application Factory.

Usage:
    from changedesk import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from changedesk.config import config
from changedesk.models import db
from changedesk.auth import init_auth
from changedesk.middleware.logging_config import configure_logging
from changedesk.middleware.rate_limiter import init_rate_limits
from changedesk.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # no global limit; applied per blueprint
)


def build_coordinator(app):
    """
    Wire the store, services and summarizer into one AppCoordinator.

    The LLM gateway is kept in ``app.extensions["changedesk_llm"]`` and the
    coordinator in ``app.extensions["changedesk"]``.
    """
    from changedesk.ai.gateway import LLMGateway
    from changedesk.ai.summarizer import ChangeSummaryAssistant
    from changedesk.services.coordinator import AppCoordinator
    from changedesk.services.department_registry import DepartmentRegistry
    from changedesk.services.identity_service import IdentityService
    from changedesk.services.record_store import RecordStore
    from changedesk.services.request_lifecycle import RequestLifecycle

    store = RecordStore(db)
    gateway = LLMGateway(app)
    summarizer = ChangeSummaryAssistant(
        gateway, max_retries=app.config.get("LLM_MAX_RETRIES", 1),
    )
    coordinator = AppCoordinator(
        store,
        IdentityService(store, bcrypt_rounds=app.config.get("BCRYPT_ROUNDS", 12)),
        RequestLifecycle(store, summarizer),
        DepartmentRegistry(),
    )
    app.extensions["changedesk_llm"] = gateway
    app.extensions["changedesk"] = coordinator
    return coordinator


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    if config_name == "production":
        cfg = cfg()  # validates required env vars
    app.config.from_object(cfg)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
             supports_credentials=True)
    else:
        CORS(app)

    # ── Session guard & request timing ───────────────────────────────────
    init_auth(app)
    init_request_timing(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    # ── Import all models so Alembic can detect them ─────────────────────
    from changedesk.models import change_request as _change_request_models  # noqa: F401
    from changedesk.models import schema as _schema_models                  # noqa: F401
    from changedesk.models import user as _user_models                      # noqa: F401

    # ── Store bootstrap: schema + initial users ──────────────────────────
    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        os.makedirs(app.instance_path, exist_ok=True)
    coordinator = build_coordinator(app)
    with app.app_context():
        coordinator.bootstrap()

    # ── Blueprints ───────────────────────────────────────────────────────
    from changedesk.blueprints.admin_bp import admin_bp
    from changedesk.blueprints.auth_bp import auth_bp
    from changedesk.blueprints.change_request_bp import change_request_bp
    from changedesk.blueprints.health_bp import health_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(change_request_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(health_bp)

    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("init-db")
    def init_db_cmd():
        """Create the schema (if missing) and seed the initial users."""
        snapshot = app.extensions["changedesk"].bootstrap()
        logger.info("Store ready: %d users, %d change requests.",
                    len(snapshot.users), len(snapshot.requests))

    @app.cli.command("seed-users")
    def seed_users_cmd():
        """Seed the bootstrap accounts into an empty users table."""
        coordinator = app.extensions["changedesk"]
        coordinator.store.initialize()
        count = coordinator.identity.seed_initial_users()
        logger.info("Seeded %s users.", count)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": f"Rate limit exceeded: {e.description}"}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
