"""
Training need blueprint: submission and two-step approval.

Endpoints:
    GET       /api/v1/training-needs                 (list; employees see their own)
    POST      /api/v1/training-needs                 (submit)
    GET       /api/v1/training-needs/<id>            (detail + allowed actions)
    PATCH     /api/v1/training-needs/<id>/approve    (manager / HR approval)
    PATCH     /api/v1/training-needs/<id>/reject     (reject with reason)

All decisions go through WorkflowService; refusals come back as
WorkflowError and are mapped by ``workflow_error_response``.
"""

import logging

from flask import Blueprint, jsonify, request

from training_tracker.blueprints import json_body, register_error_handlers, workflow_error_response
from training_tracker.middleware.actor_context import current_actor, require_actor
from training_tracker.models.employee import Role
from training_tracker.services.workflow_service import WorkflowService
from training_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

training_need_bp = register_error_handlers(Blueprint("training_need", __name__, url_prefix="/api/v1"))


@training_need_bp.route("/training-needs", methods=["GET"])
@require_actor
def list_training_needs():
    """Query params: status, employee_id."""
    actor = current_actor()
    employee_id = request.args.get("employee_id", type=int)
    if actor.role == Role.EMPLOYEE.value:
        employee_id = actor.id
    status = request.args.get("status")
    return jsonify(WorkflowService().list_needs(status=status.upper() if status else None,
                                                employee_id=employee_id)), 200


@training_need_bp.route("/training-needs", methods=["POST"])
@require_actor
def submit_training_need():
    need, err = WorkflowService().submit_need(current_actor().id, json_body())
    if err:
        return workflow_error_response(err)
    return jsonify(need), 201


@training_need_bp.route("/training-needs/<int:need_id>", methods=["GET"])
@require_actor
def get_training_need(need_id):
    actor = current_actor()
    service = WorkflowService()
    need, err = service.get_need(need_id)
    if err:
        return workflow_error_response(err)
    if actor.role == Role.EMPLOYEE.value and actor.id not in (need["for_employee_id"], need["requested_by_user_id"]):
        return api_error(E.FORBIDDEN, "Access denied")
    need["allowed_actions"] = service.allowed_need_actions(need_id, actor.id)
    return jsonify(need), 200


def _decide(need_id, action):
    reason = json_body().get("reason")
    need, err = WorkflowService().decide_need(need_id, action, current_actor().id, reason)
    if err:
        return workflow_error_response(err)
    return jsonify(need), 200


@training_need_bp.route("/training-needs/<int:need_id>/approve", methods=["PATCH"])
@require_actor
def approve_training_need(need_id):
    return _decide(need_id, "approve")


@training_need_bp.route("/training-needs/<int:need_id>/reject", methods=["PATCH"])
@require_actor
def reject_training_need(need_id):
    return _decide(need_id, "reject")
