"""
Typed failures returned by the approval workflow.

Workflow operations never raise for an expected refusal; they return
``(payload, None)`` on success and ``(None, WorkflowError)`` otherwise.
Blueprints translate the error with ``workflow_error_response``.

Usage:
    update, err = transition(need, "approve", actor, subject)
    if err:
        return None, err
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_TRANSITION = "invalid_transition"
    SEATS_FULL = "seats_full"
    VALIDATION_ERROR = "validation_error"


@dataclass(frozen=True)
class WorkflowError:
    """A refused workflow operation.  Nothing was persisted."""

    kind: ErrorKind
    message: str
    details: dict = field(default_factory=dict)

    # ── Constructors ─────────────────────────────────────────────────────

    @classmethod
    def not_found(cls, resource: str, resource_id) -> WorkflowError:
        return cls(ErrorKind.NOT_FOUND, f"{resource} not found",
                   {"resource": resource, "id": resource_id})

    @classmethod
    def forbidden(cls, message: str = "Insufficient permissions") -> WorkflowError:
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def invalid_transition(cls, current: str, action: str, message: str | None = None) -> WorkflowError:
        return cls(
            ErrorKind.INVALID_TRANSITION,
            message or f"Cannot '{action}' from status '{current}'",
            {"current_status": current, "action": action},
        )

    @classmethod
    def seats_full(cls, max_participants: int, current_occupancy: int) -> WorkflowError:
        return cls(
            ErrorKind.SEATS_FULL,
            "Seat is full, please contact HR",
            {"max_participants": max_participants, "current_occupancy": current_occupancy},
        )

    @classmethod
    def validation(cls, message: str, **details) -> WorkflowError:
        return cls(ErrorKind.VALIDATION_ERROR, message, details)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}
