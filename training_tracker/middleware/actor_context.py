"""
Training Compliance Tracker
Actor resolution & role gating.

Provides:
    - ``init_actor_context(app)``: before_request hook that resolves the
      ``X-Actor-Id`` header into ``g.actor`` (an Employee, or None)
    - ``require_actor``: decorator, 401 when no actor was resolved
    - ``require_role(*roles)``: decorator, 401 without actor, 403 when the
      actor's role is not in ``roles``
    - Content-Type enforcement for state-changing requests

Identity is asserted by the upstream gateway; this service does no password,
session or token handling.  Workflow services never read ``g``; blueprints
pass ``g.actor.id`` explicitly.
"""

import functools
import logging

from flask import Flask, g, request

from training_tracker.models import db
from training_tracker.models.employee import Employee
from training_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ACTOR_HEADER = "X-Actor-Id"


def current_actor() -> Employee | None:
    return getattr(g, "actor", None)


def _resolve_actor() -> Employee | None:
    raw = request.headers.get(ACTOR_HEADER, "").strip()
    if not raw:
        return None
    try:
        actor_id = int(raw)
    except ValueError:
        logger.warning("Malformed %s header: %r", ACTOR_HEADER, raw[:20])
        return None
    actor = db.session.get(Employee, actor_id)
    if actor is None:
        logger.warning("Unknown actor id %s on %s", actor_id, request.path)
    return actor


def _check_content_type():
    """
    For POST/PUT/PATCH/DELETE with a body, require
    Content-Type: application/json (HTML forms cannot send it).
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.UNSUPPORTED_MEDIA_TYPE,
                "Content-Type must be application/json for state-changing requests",
            )
    return None


# ── Decorators ───────────────────────────────────────────────────────────────

def require_actor(f):
    """Decorator: the request must carry a resolvable ``X-Actor-Id``."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_actor() is None:
            return api_error(E.UNAUTHENTICATED, f"Authentication required. Provide {ACTOR_HEADER} header.")
        return f(*args, **kwargs)
    return decorated


def require_role(*roles: str):
    """
    Decorator: the actor's role must be one of ``roles``.

    Usage:
        @bp.route("/skills", methods=["POST"])
        @require_role("hr_admin")
        def create_skill(): ...
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            actor = current_actor()
            if actor is None:
                return api_error(E.UNAUTHENTICATED, "Authentication required")
            if actor.role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access %s (allowed: %s)",
                    actor.role, request.path, ",".join(sorted(allowed)),
                    extra={"actor_id": actor.id},
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── Hook installer ───────────────────────────────────────────────────────────

def init_actor_context(app: Flask):
    """Install the actor-resolution hook for /api/v1/* routes."""

    @app.before_request
    def _before_request_actor():
        g.actor = None
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith("/api/v1/health"):
            return None
        if request.method == "OPTIONS":
            return None

        err = _check_content_type()
        if err:
            return err

        g.actor = _resolve_actor()
        return None
