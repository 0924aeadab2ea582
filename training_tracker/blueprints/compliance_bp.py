"""
Compliance blueprint: requirement mapping and the HR dashboard.

Endpoints:
    GET/POST     /api/v1/compliance-requirements        (hr_admin)
    PUT/DELETE   /api/v1/compliance-requirements/<id>   (hr_admin)
    GET          /api/v1/dashboard/metrics              (any actor)
    GET          /api/v1/dashboard/employee-compliance  (hr_admin)
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.compliance_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor, require_role
from training_tracker.models.employee import Role

compliance_bp = register_error_handlers(Blueprint("compliance", __name__, url_prefix="/api/v1"))

_HR = Role.HR_ADMIN.value


@compliance_bp.route("/compliance-requirements", methods=["GET"])
@require_role(_HR)
def list_requirements():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    return jsonify(svc.list_requirements(active_only=active_only)), 200


@compliance_bp.route("/compliance-requirements", methods=["POST"])
@require_role(_HR)
def create_requirement():
    return jsonify(svc.create_requirement(json_body(), performed_by=current_actor().id)), 201


@compliance_bp.route("/compliance-requirements/<int:requirement_id>", methods=["PUT"])
@require_role(_HR)
def update_requirement(requirement_id):
    return jsonify(svc.update_requirement(requirement_id, json_body(), performed_by=current_actor().id)), 200


@compliance_bp.route("/compliance-requirements/<int:requirement_id>", methods=["DELETE"])
@require_role(_HR)
def delete_requirement(requirement_id):
    svc.delete_requirement(requirement_id, performed_by=current_actor().id)
    return jsonify({"message": "Compliance requirement deleted"}), 200


@compliance_bp.route("/dashboard/metrics", methods=["GET"])
@require_actor
def dashboard_metrics():
    return jsonify(svc.compliance_metrics()), 200


@compliance_bp.route("/dashboard/employee-compliance", methods=["GET"])
@require_role(_HR)
def employee_compliance():
    return jsonify(svc.employee_compliance_status()), 200
