"""
Employee directory blueprint.

Endpoints:
    GET/POST  /api/v1/employees      (hr_admin)
    GET       /api/v1/departments    (manager / hr_admin)
    POST      /api/v1/departments    (hr_admin)
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.employee_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_role
from training_tracker.models.employee import Role

employee_bp = register_error_handlers(Blueprint("employee", __name__, url_prefix="/api/v1"))


@employee_bp.route("/employees", methods=["GET"])
@require_role(Role.HR_ADMIN.value)
def list_employees():
    """Query params: department, role."""
    return jsonify(svc.list_employees(department=request.args.get("department"),
                                      role=request.args.get("role"))), 200


@employee_bp.route("/employees", methods=["POST"])
@require_role(Role.HR_ADMIN.value)
def create_employee():
    return jsonify(svc.create_employee(json_body(), performed_by=current_actor().id)), 201


@employee_bp.route("/departments", methods=["GET"])
@require_role(Role.MANAGER.value, Role.HR_ADMIN.value)
def list_departments():
    return jsonify(svc.list_departments()), 200


@employee_bp.route("/departments", methods=["POST"])
@require_role(Role.HR_ADMIN.value)
def create_department():
    return jsonify(svc.create_department(json_body(), performed_by=current_actor().id)), 201
