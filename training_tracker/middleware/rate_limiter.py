"""
Per-blueprint rate limits (Flask-Limiter).

The ``Limiter`` itself lives in training_tracker/__init__.py with no
default limit; ``init_rate_limits`` attaches one limit per blueprint from
``BLUEPRINT_LIMITS`` once all blueprints are registered.  Health probes are
exempt.  Nothing is limited under TESTING.

Limits are counted per acting employee when the request names one, else
per client address.
"""

import logging

from flask import Flask, g, request
from flask_limiter import Limiter

from training_tracker.middleware.actor_context import ACTOR_HEADER

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

BLUEPRINT_LIMITS = {
    "training_need": WRITE_LIMIT,
    "nomination": WRITE_LIMIT,
    "catalog": WRITE_LIMIT,
    "provider": WRITE_LIMIT,
    "evidence": WRITE_LIMIT,
    "feedback": WRITE_LIMIT,
    "compliance": WRITE_LIMIT,
    "planning": WRITE_LIMIT,
    "employee": WRITE_LIMIT,
    "reporting": READ_LIMIT,
    "audit": READ_LIMIT,
}

EXEMPT_BLUEPRINTS = ("health",)


def rate_limit_key():
    # Limiter hooks can run before actor resolution, so fall back to the raw header.
    actor = getattr(g, "actor", None)
    if actor is not None:
        return f"actor:{actor.id}"
    header = (request.headers.get(ACTOR_HEADER) or "").strip()
    if header.isdigit():
        return f"actor:{int(header)}"
    return request.remote_addr or "unknown"


def init_rate_limits(app: Flask, limiter: Limiter):
    if app.config.get("TESTING"):
        logger.debug("Rate limiter disabled (TESTING=True)")
        return

    applied = []
    for name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(name)
        if bp is None:
            logger.warning("Rate limit configured for unknown blueprint %r", name)
            continue
        limiter.limit(limit, key_func=rate_limit_key)(bp)
        applied.append(name)

    for name in EXEMPT_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if bp is not None:
            limiter.exempt(bp)

    logger.info("Rate limits applied to %d blueprints (write %s, read %s)",
                len(applied), WRITE_LIMIT, READ_LIMIT)
