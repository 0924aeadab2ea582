"""
Training Compliance Tracker
Blueprint registry and shared response helpers.
"""

import logging

from flask import request

from training_tracker.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from training_tracker.services.workflow_errors import ErrorKind
from training_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_WORKFLOW_ERROR_CODES = {
    ErrorKind.NOT_FOUND: E.NOT_FOUND,
    ErrorKind.FORBIDDEN: E.FORBIDDEN,
    ErrorKind.INVALID_TRANSITION: E.INVALID_TRANSITION,
    ErrorKind.SEATS_FULL: E.SEATS_FULL,
    ErrorKind.VALIDATION_ERROR: E.VALIDATION_INVALID,
}


def workflow_error_response(err):
    """Map a ``WorkflowError`` to the standard JSON error response.

    SeatsFull additionally carries ``seats_available``, ``max_participants``
    and ``current_occupancy`` at the top level of the body.
    """
    code = _WORKFLOW_ERROR_CODES[ErrorKind(err.kind)]
    extra = None
    if err.kind is ErrorKind.SEATS_FULL:
        extra = {
            "seats_available": False,
            "max_participants": err.details.get("max_participants"),
            "current_occupancy": err.details.get("current_occupancy"),
        }
    return api_error(code, err.message, details=err.details or None, extra=extra)


def json_body():
    """Request body as a dict; an absent or unparsable body reads as ``{}``."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected", details={"body": "object"})
    return data


def register_error_handlers(bp):
    """Attach the core-exception → HTTP mapping to ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error):
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error):
        code = E.CONFLICT_STATE if error.field == "status" else E.CONFLICT_DUPLICATE
        return api_error(code, str(error), details={"field": error.field})

    @bp.errorhandler(StorageError)
    def _handle_storage(error):
        logger.error("Storage failure in %s endpoint=%s: %s", bp.name, request.endpoint, error)
        return api_error(E.STORAGE, "Storage unavailable, please retry later")

    return bp
