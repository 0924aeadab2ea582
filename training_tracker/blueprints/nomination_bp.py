"""
Nomination blueprint: session seats and HR decisions.

Endpoints:
    GET       /api/v1/nominations                          (list; employees see their own)
    POST      /api/v1/nominations                          (nominate; reserves a seat)
    GET       /api/v1/nominations/<id>
    PATCH     /api/v1/nominations/<id>/approve             (HR)
    PATCH     /api/v1/nominations/<id>/reject              (HR, reason required)
    PATCH     /api/v1/nominations/<id>/waitlist            (HR)

A full session answers 409 with ``seats_available: false``.
"""

from flask import Blueprint, jsonify, request

from training_tracker.blueprints import json_body, register_error_handlers, workflow_error_response
from training_tracker.middleware.actor_context import current_actor, require_actor
from training_tracker.models.employee import Role
from training_tracker.services.workflow_service import WorkflowService
from training_tracker.utils.errors import E, api_error

nomination_bp = register_error_handlers(Blueprint("nomination", __name__, url_prefix="/api/v1"))


@nomination_bp.route("/nominations", methods=["GET"])
@require_actor
def list_nominations():
    """Query params: session_id, employee_id, status."""
    actor = current_actor()
    employee_id = request.args.get("employee_id", type=int)
    if actor.role == Role.EMPLOYEE.value:
        employee_id = actor.id
    status = request.args.get("status")
    return jsonify(WorkflowService().list_nominations(
        session_id=request.args.get("session_id", type=int),
        employee_id=employee_id,
        status=status.upper() if status else None,
    )), 200


@nomination_bp.route("/nominations", methods=["POST"])
@require_actor
def submit_nomination():
    nomination, err = WorkflowService().submit_nomination(current_actor().id, json_body())
    if err:
        return workflow_error_response(err)
    return jsonify(nomination), 201


@nomination_bp.route("/nominations/<int:nomination_id>", methods=["GET"])
@require_actor
def get_nomination(nomination_id):
    actor = current_actor()
    nomination, err = WorkflowService().get_nomination(nomination_id)
    if err:
        return workflow_error_response(err)
    if actor.role == Role.EMPLOYEE.value and nomination["employee_id"] != actor.id:
        return api_error(E.FORBIDDEN, "Access denied")
    return jsonify(nomination), 200


def _decide(nomination_id, action):
    reason = json_body().get("reason")
    nomination, err = WorkflowService().decide_nomination(nomination_id, action, current_actor().id, reason)
    if err:
        return workflow_error_response(err)
    return jsonify(nomination), 200


@nomination_bp.route("/nominations/<int:nomination_id>/approve", methods=["PATCH"])
@require_actor
def approve_nomination(nomination_id):
    return _decide(nomination_id, "approve")


@nomination_bp.route("/nominations/<int:nomination_id>/reject", methods=["PATCH"])
@require_actor
def reject_nomination(nomination_id):
    return _decide(nomination_id, "reject")


@nomination_bp.route("/nominations/<int:nomination_id>/waitlist", methods=["PATCH"])
@require_actor
def waitlist_nomination(nomination_id):
    return _decide(nomination_id, "waitlist")
