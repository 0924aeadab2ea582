"""
Health check blueprint.

Endpoints:
    GET       /api/v1/health/ready                         (process is up)
    GET       /api/v1/health/live                          (database, workflow schema, Redis)

``live`` answers 503 when the database or the workflow tables are
unavailable.  Redis only backs rate-limit counters, so a Redis failure is
reported but does not degrade the service.
"""

import logging
import time

import redis as redis_lib
from flask import Blueprint, current_app, jsonify
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from training_tracker.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")

# Tables the approval workflow cannot run without
WORKFLOW_TABLES = ("employees", "skills", "training_sessions", "training_enrollments",
                   "training_needs", "nominations", "audit_logs")


def _elapsed_ms(t0):
    return round((time.perf_counter() - t0) * 1000, 1)


def _check_database():
    t0 = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check: database failed: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(t0)}


def _check_workflow_schema():
    try:
        present = set(inspect(db.engine).get_table_names())
    except SQLAlchemyError as exc:
        return {"status": "error", "detail": str(exc)}
    missing = [t for t in WORKFLOW_TABLES if t not in present]
    if missing:
        logger.error("Health check: missing tables %s", ", ".join(missing))
        return {"status": "error", "missing_tables": missing}
    return {"status": "ok"}


def _check_redis(url):
    if not url.startswith(("redis://", "rediss://")):
        return {"status": "skipped", "detail": "no REDIS_URL configured"}
    t0 = time.perf_counter()
    try:
        redis_lib.from_url(url, socket_timeout=2).ping()
    except redis_lib.RedisError as exc:
        logger.warning("Health check: redis unreachable: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(t0)}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {
        "database": _check_database(),
        "workflow_schema": _check_workflow_schema(),
        "redis": _check_redis(current_app.config.get("REDIS_URL") or ""),
    }
    healthy = all(checks[name]["status"] == "ok" for name in ("database", "workflow_schema"))
    body = {
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
        "app": {"debug": current_app.debug, "testing": current_app.testing},
    }
    return jsonify(body), 200 if healthy else 503
