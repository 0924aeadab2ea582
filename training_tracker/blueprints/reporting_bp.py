"""
Reporting blueprint.

Endpoints:
    GET /api/v1/reports/training-hours?department&start_date&end_date  (manager / hr_admin)
"""

from flask import Blueprint, jsonify, request

from training_tracker.blueprints import register_error_handlers
from training_tracker.middleware.actor_context import require_role
from training_tracker.models.employee import Role
from training_tracker.services.reporting_service import training_hours_report

reporting_bp = register_error_handlers(Blueprint("reporting", __name__, url_prefix="/api/v1"))


@reporting_bp.route("/reports/training-hours", methods=["GET"])
@require_role(Role.MANAGER.value, Role.HR_ADMIN.value)
def training_hours():
    return jsonify(training_hours_report(
        department=request.args.get("department") or None,
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
    )), 200
