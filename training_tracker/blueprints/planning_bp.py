"""
Annual training plan blueprint.

Endpoints:
    GET/POST  /api/v1/training-plans                     (writes hr_admin)
    GET/POST  /api/v1/training-plans/<id>/items          (writes hr_admin)
    PATCH     /api/v1/training-plan-items/<id>/convert   (manager / hr_admin)
    PATCH     /api/v1/training-plan-items/<id>/cancel    (hr_admin)
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.planning_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor, require_role
from training_tracker.models.employee import Role

planning_bp = register_error_handlers(Blueprint("planning", __name__, url_prefix="/api/v1"))

_HR = Role.HR_ADMIN.value


@planning_bp.route("/training-plans", methods=["GET"])
@require_actor
def list_plans():
    return jsonify(svc.list_plans(year=request.args.get("year", type=int))), 200


@planning_bp.route("/training-plans", methods=["POST"])
@require_role(_HR)
def create_plan():
    return jsonify(svc.create_plan(json_body(), created_by=current_actor().id)), 201


@planning_bp.route("/training-plans/<int:plan_id>/items", methods=["GET"])
@require_actor
def list_items(plan_id):
    return jsonify(svc.list_items(plan_id)), 200


@planning_bp.route("/training-plans/<int:plan_id>/items", methods=["POST"])
@require_role(_HR)
def add_item(plan_id):
    return jsonify(svc.add_item(plan_id, json_body())), 201


@planning_bp.route("/training-plan-items/<int:item_id>/convert", methods=["PATCH"])
@require_role(Role.MANAGER.value, _HR)
def convert_item(item_id):
    """Body: {"session_id": <int>}."""
    return jsonify(svc.convert_item(item_id, json_body().get("session_id"), performed_by=current_actor().id)), 200


@planning_bp.route("/training-plan-items/<int:item_id>/cancel", methods=["PATCH"])
@require_role(_HR)
def cancel_item(item_id):
    return jsonify(svc.cancel_item(item_id, performed_by=current_actor().id)), 200
