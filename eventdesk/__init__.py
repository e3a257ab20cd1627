"""
EventDesk
Flask Application Factory.

Usage:
    from eventdesk import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from eventdesk.config import config
from eventdesk.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from eventdesk.middleware.jwt_auth import init_jwt_middleware
from eventdesk.middleware.logging_config import configure_logging
from eventdesk.middleware.rate_limiter import init_rate_limits
from eventdesk.middleware.timing import init_request_timing
from eventdesk.models import db
from eventdesk.services.registry import ServiceRegistry
from eventdesk.store import build_store
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

migrate = Migrate()
# storage comes from RATELIMIT_STORAGE_URI in app.config at init_app()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are applied per blueprint
)


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
    config_cls = config[config_name]
    # ProductionConfig validates its environment on instantiation
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Document store + services ────────────────────────────────────────
    store = build_store(app.config)
    app.extensions["eventdesk"] = ServiceRegistry.build(
        store, invite_expiry_days=app.config.get("INVITE_EXPIRY_DAYS", 7)
    )

    # ── Request timing + JWT principal resolution ────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import models so Alembic can detect them ─────────────────────────
    from eventdesk.models import document as _document_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config.get("DOCUMENT_STORE", "sql") == "sql":
        with app.app_context():
            try:
                db.create_all()
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from eventdesk.blueprints.event_bp import event_bp
    from eventdesk.blueprints.health_bp import health_bp
    from eventdesk.blueprints.invite_bp import invite_bp
    from eventdesk.blueprints.notification_bp import notification_bp
    from eventdesk.blueprints.stakeholder_bp import stakeholder_bp
    from eventdesk.blueprints.user_bp import user_bp

    app.register_blueprint(event_bp)
    app.register_blueprint(stakeholder_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(invite_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("audit-links")
    def audit_links_cmd():
        """Report events whose stakeholder links are not symmetric."""
        services = app.extensions["eventdesk"]
        total = 0
        for doc in services.store.all("events"):
            issues = services.relationships.audit_event_links(doc["id"])
            for issue in issues:
                logger.warning("Link issue on event %s: %s", doc["id"], issue)
            total += len(issues)
        logger.info("Link audit finished: %d issue(s)", total)

    return app


def _register_error_handlers(app):
    """Map platform exceptions to the standard JSON error body."""

    @app.errorhandler(ValidationError)
    def _validation(e):
        return api_error(E.BUSINESS_RULE, e.message, details=e.details or None)

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return api_error(E.NOT_FOUND, f"{e.resource} not found",
                         details={"id": e.resource_id} if e.resource_id else None)

    @app.errorhandler(ConflictError)
    def _conflict(e):
        return api_error(E.CONFLICT_DUPLICATE, str(e), details={"field": e.field})

    @app.errorhandler(PermissionDenied)
    def _forbidden(e):
        logger.info("Permission denied: %s", e.action, extra={"principal_id": e.principal_id})
        if e.principal_id is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return api_error(E.FORBIDDEN, "You do not have permission to perform this action",
                         details={"action": e.action})

    @app.errorhandler(404)
    def _route_not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
