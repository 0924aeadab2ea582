"""
Feedback & effectiveness evaluation blueprint.

Endpoints:
    POST      /api/v1/training-feedback                    (attendee, own completed enrollment)
    GET       /api/v1/training-feedback/<employee_id>      (self / manager / HR)
    GET       /api/v1/manager-evaluations/pending          (manager / HR)
    POST      /api/v1/effectiveness-evaluations            (manager / HR)
    GET       /api/v1/effectiveness-evaluations            (manager / HR)
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.feedback_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor, require_role
from training_tracker.models.employee import Role

feedback_bp = register_error_handlers(Blueprint("feedback", __name__, url_prefix="/api/v1"))


@feedback_bp.route("/training-feedback", methods=["POST"])
@require_actor
def submit_feedback():
    return jsonify(svc.submit_feedback(current_actor(), json_body())), 201


@feedback_bp.route("/training-feedback/<int:employee_id>", methods=["GET"])
@require_actor
def list_feedback(employee_id):
    return jsonify(svc.list_feedback(current_actor(), employee_id)), 200


@feedback_bp.route("/manager-evaluations/pending", methods=["GET"])
@require_role(Role.MANAGER.value, Role.HR_ADMIN.value)
def pending_evaluations():
    return jsonify(svc.pending_evaluations(current_actor(), department=request.args.get("department"))), 200


@feedback_bp.route("/effectiveness-evaluations", methods=["POST"])
@require_role(Role.MANAGER.value, Role.HR_ADMIN.value)
def create_evaluation():
    return jsonify(svc.create_evaluation(current_actor(), json_body())), 201


@feedback_bp.route("/effectiveness-evaluations", methods=["GET"])
@require_role(Role.MANAGER.value, Role.HR_ADMIN.value)
def list_evaluations():
    return jsonify(svc.list_evaluations(current_actor(), manager_id=request.args.get("manager_id", type=int))), 200
