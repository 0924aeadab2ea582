"""JSON error bodies for the HTTP layer.

Every error the API returns has the same shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}?, ...extra}

``code`` is stable and meant for clients to branch on; ``error`` is for
people.  Blueprints never build this dict by hand:

    return api_error(E.NOT_FOUND, "Training need not found")
    return api_error(E.SEATS_FULL, "Seat is full, please contact HR",
                     extra={"seats_available": False})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes, grouped by the HTTP status they default to."""

    # 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    # 401 / 403: missing or unknown X-Actor-Id, role or reporting line refused
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    # 404 / 405
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    # 409: duplicates, CRUD lifecycle clashes, workflow refusals
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"
    SEATS_FULL = "ERR_SEATS_FULL"
    # 415 / 429
    UNSUPPORTED_MEDIA_TYPE = "ERR_UNSUPPORTED_MEDIA_TYPE"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    # 5xx
    INTERNAL = "ERR_INTERNAL"
    STORAGE = "ERR_STORAGE"


_STATUS_GROUPS = (
    (400, (E.VALIDATION_REQUIRED, E.VALIDATION_INVALID)),
    (401, (E.UNAUTHENTICATED,)),
    (403, (E.FORBIDDEN,)),
    (404, (E.NOT_FOUND,)),
    (405, (E.METHOD_NOT_ALLOWED,)),
    (409, (E.CONFLICT_DUPLICATE, E.CONFLICT_STATE, E.INVALID_TRANSITION, E.SEATS_FULL)),
    (415, (E.UNSUPPORTED_MEDIA_TYPE,)),
    (429, (E.RATE_LIMITED,)),
    (500, (E.INTERNAL,)),
    (503, (E.STORAGE,)),
)

HTTP_STATUS: dict[str, int] = {code: status for status, codes in _STATUS_GROUPS for code in codes}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    extra: dict | None = None,
):
    """Build ``(response, status)`` for a Flask view or error handler.

    ``status`` overrides the code's default; unknown codes fall back to 400.
    ``details`` is nested under ``"details"``, ``extra`` is merged into the
    top level of the body.
    """
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    if extra:
        body.update(extra)
    return jsonify(body), status or HTTP_STATUS.get(code, 400)
