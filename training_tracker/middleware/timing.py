"""
Request timing and correlation ids.

Every response gets ``X-Request-ID`` (echoed from the caller or generated)
and ``X-Request-Duration-Ms``.  API requests are logged once on the way out:
DEBUG normally, WARNING above ``SLOW_REQUEST_MS``, ERROR for 5xx.  Health
probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
DURATION_HEADER = "X-Request-Duration-Ms"
SLOW_REQUEST_MS = 1000

_UNLOGGED_PREFIX = "/api/v1/health"


def _incoming_request_id():
    supplied = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    # Cap caller-supplied ids so they cannot bloat log lines
    return supplied[:64] if supplied else uuid.uuid4().hex[:12]


def _log_level(status_code, duration_ms):
    if status_code >= 500:
        return logging.ERROR
    if duration_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):
    @app.before_request
    def _start_request_clock():
        g.request_start = time.perf_counter()
        g.request_id = _incoming_request_id()

    @app.after_request
    def _finish_request_clock(response):
        started = g.get("request_start")
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = g.request_id
        response.headers[DURATION_HEADER] = f"{duration_ms:.1f}"

        if request.path.startswith(_UNLOGGED_PREFIX):
            return response

        actor = g.get("actor")
        logger.log(
            _log_level(response.status_code, duration_ms),
            "%s %s -> %d (%.0fms)", request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
                "actor_id": actor.id if actor is not None else None,
            },
        )
        return response
