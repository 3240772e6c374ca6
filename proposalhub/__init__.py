"""
proposalhub — proposal lifecycle and engagement tracking service.
Flask Application Factory.

Usage:
    from proposalhub import create_app
    app = create_app()           # defaults to APP_ENV, then "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine, event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from proposalhub.config import config
from proposalhub.core.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
    UsageLimitError,
    ValidationError,
)
from proposalhub.middleware.jwt_auth import init_jwt_middleware
from proposalhub.middleware.logging_config import configure_logging
from proposalhub.middleware.rate_limiter import init_rate_limits
from proposalhub.middleware.tenant_context import init_tenant_context
from proposalhub.middleware.timing import init_request_timing
from proposalhub.models import db
from proposalhub.services.plan_cache import PlanCache
from proposalhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

UPGRADE_PATH = "/pricing"


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        logger.debug("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @app.errorhandler(InvalidArgumentError)
    def _invalid_argument(exc):
        extra = {"field": exc.field} if exc.field else {}
        return api_error(E.INVALID_ARGUMENT, str(exc), **extra)

    @app.errorhandler(UnauthorizedError)
    def _unauthorized(exc):
        return api_error(E.UNAUTHORIZED, str(exc))

    @app.errorhandler(ForbiddenError)
    def _forbidden(exc):
        return api_error(E.FORBIDDEN, str(exc))

    @app.errorhandler(UsageLimitError)
    def _usage_limit(exc):
        base = (app.config.get("PUBLIC_SITE_URL") or "").rstrip("/")
        return api_error(
            E.USAGE_LIMIT,
            "Proposal limit reached for your plan",
            reason=exc.reason,
            upgrade_url=f"{base}{UPGRADE_PATH}",
            usage=exc.usage,
        )

    @app.errorhandler(UnavailableError)
    def _unavailable(exc):
        return api_error(E.UNAVAILABLE, str(exc))

    @app.errorhandler(SQLAlchemyError)
    def _db_error(exc):
        db.session.rollback()
        logger.exception("Unhandled database error on %s", request.path)
        return api_error(E.INTERNAL, "Internal server error")

    @app.errorhandler(404)
    def _http_not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def _too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def _unsupported_media(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


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
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

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
    app.extensions["plan_cache"] = PlanCache(ttl_seconds=app.config["PLAN_CACHE_TTL"])

    # ── Middleware chain: timing → jwt → tenant context ─────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_tenant_context(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            # sendBeacon posts text/plain JSON
            if request.path.startswith("/api/v1/tracking/") and ct.startswith("text/plain"):
                return None
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from proposalhub.models import base as _base_models          # noqa: F401
    from proposalhub.models import tenant as _tenant_models      # noqa: F401
    from proposalhub.models import billing as _billing_models    # noqa: F401
    from proposalhub.models import proposal as _proposal_models  # noqa: F401
    from proposalhub.models import tracking as _tracking_models  # noqa: F401

    # ── Auto-create tables + seed plan catalog ───────────────────────────
    with app.app_context():
        try:
            db.create_all()
            from proposalhub.services.usage_gate import ensure_default_plans
            ensure_default_plans()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning("Database bootstrap failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from proposalhub.blueprints.admin_bp import admin_bp
    from proposalhub.blueprints.health_bp import health_bp
    from proposalhub.blueprints.proposal_bp import proposal_bp
    from proposalhub.blueprints.tracking_bp import tracking_bp
    from proposalhub.blueprints.usage_bp import usage_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(usage_bp)
    app.register_blueprint(proposal_bp)
    app.register_blueprint(tracking_bp)
    app.register_blueprint(admin_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-plans")
    def seed_plans_cmd():
        """Seed the default subscription plan catalog."""
        from proposalhub.services.usage_gate import ensure_default_plans
        count = ensure_default_plans()
        app.extensions["plan_cache"].invalidate()
        logger.info("Seeded %s subscription plans.", count)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
