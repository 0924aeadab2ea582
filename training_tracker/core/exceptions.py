"""
Exceptions raised by the catalog, feedback, compliance, planning and
directory services.

Blueprints map them to HTTP once, in ``register_error_handlers``:

    NotFoundError    404
    ForbiddenError   403
    ValidationError  400
    ConflictError    409   (field "status" = lifecycle clash, else duplicate)
    StorageError     503

The approval workflow reports expected refusals as ``WorkflowError`` values
instead; of these only ``StorageError`` can escape it.

Usage:
    raise NotFoundError(resource="TrainingSession", resource_id=42)
    raise ValidationError("title is required", details={"title": "required"})
    raise ConflictError("TrainingFeedback", "enrollment_id", 7)
"""


class TrackerError(Exception):
    """Base class; ``details`` is a field-level breakdown for the response body."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class NotFoundError(TrackerError):
    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        label = resource if resource_id is None else f"{resource} id={resource_id}"
        super().__init__(f"{label} not found")


class ValidationError(TrackerError):
    """Input is malformed or breaks a field rule (range, enum, required)."""


class ConflictError(TrackerError):
    """
    The write would duplicate a one-per-X record, or the record is not in a
    status that allows the operation (``field="status"``).
    """

    def __init__(self, resource: str, field: str, value: str | int | None = None,
                 message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists",
                         details={"field": field})


class ForbiddenError(TrackerError):
    """The actor's role or reporting line does not permit the operation."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class StorageError(TrackerError):
    """The database failed; the transaction was already rolled back.  Never retried."""

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message)
