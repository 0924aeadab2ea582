"""
Training Compliance Tracker
Flask application factory.

Usage:
    from training_tracker import create_app
    app = create_app()           # APP_ENV, else "development"
    app = create_app("testing")

Wiring order matters: logging first, then extensions, then the request
hooks (timing before actor resolution, so refused requests are still
timed), then blueprints, then rate limits (they decorate registered
blueprints).
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from training_tracker.config import config
from training_tracker.middleware.actor_context import init_actor_context
from training_tracker.middleware.logging_config import configure_logging
from training_tracker.middleware.rate_limiter import init_rate_limits
from training_tracker.middleware.timing import init_request_timing
from training_tracker.models import db
from training_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

APP_NAME = "Training Compliance Tracker"


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)


def create_app(config_name=None):
    """Build a configured app for ``config_name`` (development / testing / production)."""
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse missing secrets.
    app.config.from_object(config[config_name]())

    configure_logging(app)
    _init_extensions(app)

    init_request_timing(app)
    init_actor_context(app)

    _load_models()
    if not app.config.get("TESTING"):
        _create_tables(app)

    _register_blueprints(app)
    _register_app_handlers(app)
    init_rate_limits(app, limiter)

    logger.debug("App created with %s config", config_name)
    return app


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = app.config.get("CORS_ORIGINS", "*")
    if origins and origins != "*":
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])
    else:
        CORS(app)


def _load_models():
    """Import every model module so metadata (and ``flask db migrate``) sees all tables."""
    from training_tracker.models import (  # noqa: F401
        audit, catalog, compliance, employee, evaluation, planning, provider, workflow,
    )


def _create_tables(app):
    # The default development database is a file under instance/
    os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as exc:
            app.logger.warning("db.create_all() failed: %s", exc)
        else:
            app.logger.info("Database tables ensured")


def _register_blueprints(app):
    from training_tracker.blueprints.audit_bp import audit_bp
    from training_tracker.blueprints.catalog_bp import catalog_bp
    from training_tracker.blueprints.compliance_bp import compliance_bp
    from training_tracker.blueprints.employee_bp import employee_bp
    from training_tracker.blueprints.evidence_bp import evidence_bp
    from training_tracker.blueprints.feedback_bp import feedback_bp
    from training_tracker.blueprints.health_bp import health_bp
    from training_tracker.blueprints.nomination_bp import nomination_bp
    from training_tracker.blueprints.planning_bp import planning_bp
    from training_tracker.blueprints.provider_bp import provider_bp
    from training_tracker.blueprints.reporting_bp import reporting_bp
    from training_tracker.blueprints.training_need_bp import training_need_bp

    for bp in (
        training_need_bp,
        nomination_bp,
        catalog_bp,
        provider_bp,
        evidence_bp,
        feedback_bp,
        compliance_bp,
        reporting_bp,
        planning_bp,
        employee_bp,
        audit_bp,
        health_bp,
    ):
        app.register_blueprint(bp)


def _register_app_handlers(app):
    """App-wide fallbacks; blueprint handlers cover the domain exceptions."""

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": APP_NAME}

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", extra={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed",
                         extra={"method": request.method, "path": request.path})

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Rate limit exceeded", details={"limit": str(e.description)})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error on %s %s: %s", request.method, request.path, e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
