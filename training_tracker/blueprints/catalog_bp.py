"""
Catalog & delivery blueprint.

Endpoints:
    GET/POST  /api/v1/skills                     (writes hr_admin)
    PUT       /api/v1/skills/<id>                (hr_admin)
    GET/POST  /api/v1/training-catalog           (writes hr_admin)
    GET/PUT   /api/v1/training-catalog/<id>      (writes hr_admin)
    GET/POST  /api/v1/training-sessions          (writes hr_admin)
    GET       /api/v1/training-sessions/<id>     (with seat occupancy)
    GET       /api/v1/training-sessions/calendar?start&end
    GET/POST  /api/v1/training-enrollments       (writes manager / hr_admin)
    PUT       /api/v1/training-enrollments/<id>  (manager / hr_admin)
    GET       /api/v1/training-enrollments/employee/<employee_id>
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.training_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor, require_role
from training_tracker.models.employee import Role
from training_tracker.utils.errors import E, api_error

catalog_bp = register_error_handlers(Blueprint("catalog", __name__, url_prefix="/api/v1"))

_HR = Role.HR_ADMIN.value
_MANAGER = Role.MANAGER.value


# ═════════════════════════════════════════════════════════════════════════
# Skills
# ═════════════════════════════════════════════════════════════════════════


@catalog_bp.route("/skills", methods=["GET"])
@require_actor
def list_skills():
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    return jsonify(svc.list_skills(include_inactive=include_inactive)), 200


@catalog_bp.route("/skills", methods=["POST"])
@require_role(_HR)
def create_skill():
    return jsonify(svc.create_skill(json_body())), 201


@catalog_bp.route("/skills/<int:skill_id>", methods=["PUT"])
@require_role(_HR)
def update_skill(skill_id):
    return jsonify(svc.update_skill(skill_id, json_body())), 200


# ═════════════════════════════════════════════════════════════════════════
# Catalog
# ═════════════════════════════════════════════════════════════════════════


@catalog_bp.route("/training-catalog", methods=["GET"])
@require_actor
def list_catalog():
    """Query params: type, category."""
    return jsonify(svc.list_catalog(type_=request.args.get("type"), category=request.args.get("category"))), 200


@catalog_bp.route("/training-catalog", methods=["POST"])
@require_role(_HR)
def create_catalog():
    return jsonify(svc.create_catalog(json_body(), created_by=current_actor().id)), 201


@catalog_bp.route("/training-catalog/<int:catalog_id>", methods=["GET"])
@require_actor
def get_catalog(catalog_id):
    return jsonify(svc.get_catalog(catalog_id)), 200


@catalog_bp.route("/training-catalog/<int:catalog_id>", methods=["PUT"])
@require_role(_HR)
def update_catalog(catalog_id):
    return jsonify(svc.update_catalog(catalog_id, json_body(), updated_by=current_actor().id)), 200


# ═════════════════════════════════════════════════════════════════════════
# Sessions
# ═════════════════════════════════════════════════════════════════════════


@catalog_bp.route("/training-sessions", methods=["GET"])
@require_actor
def list_sessions():
    return jsonify(svc.list_sessions(
        catalog_id=request.args.get("catalog_id", type=int),
        status=request.args.get("status"),
    )), 200


@catalog_bp.route("/training-sessions/calendar", methods=["GET"])
@require_actor
def session_calendar():
    return jsonify(svc.sessions_between(request.args.get("start"), request.args.get("end"))), 200


@catalog_bp.route("/training-sessions/<int:session_id>", methods=["GET"])
@require_actor
def get_session(session_id):
    return jsonify(svc.get_session(session_id)), 200


@catalog_bp.route("/training-sessions", methods=["POST"])
@require_role(_HR)
def create_session():
    return jsonify(svc.create_session(json_body(), created_by=current_actor().id)), 201


# ═════════════════════════════════════════════════════════════════════════
# Enrollments
# ═════════════════════════════════════════════════════════════════════════


@catalog_bp.route("/training-enrollments", methods=["GET"])
@require_role(_MANAGER, _HR)
def list_enrollments():
    return jsonify(svc.list_enrollments(
        session_id=request.args.get("session_id", type=int),
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status"),
    )), 200


@catalog_bp.route("/training-enrollments", methods=["POST"])
@require_role(_MANAGER, _HR)
def create_enrollment():
    return jsonify(svc.create_enrollment(json_body(), performed_by=current_actor().id)), 201


@catalog_bp.route("/training-enrollments/<int:enrollment_id>", methods=["PUT"])
@require_role(_MANAGER, _HR)
def update_enrollment(enrollment_id):
    return jsonify(svc.update_enrollment(enrollment_id, json_body(), performed_by=current_actor().id)), 200


@catalog_bp.route("/training-enrollments/employee/<int:employee_id>", methods=["GET"])
@require_actor
def employee_enrollments(employee_id):
    """Training history of one employee: self, managers and HR only."""
    actor = current_actor()
    if actor.id != employee_id and actor.role not in (_MANAGER, _HR):
        return api_error(E.FORBIDDEN, "Access denied")
    return jsonify(svc.list_enrollments(employee_id=employee_id)), 200
