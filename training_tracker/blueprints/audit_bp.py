"""
Audit trail blueprint.

Endpoints:
    GET /api/v1/audit-logs?limit&entity_type&entity_id   (hr_admin)
"""

from flask import Blueprint, current_app, jsonify, request

from training_tracker.blueprints import register_error_handlers
from training_tracker.middleware.actor_context import require_role
from training_tracker.models.employee import Role
from training_tracker.services.audit_service import list_audit_logs

audit_bp = register_error_handlers(Blueprint("audit", __name__, url_prefix="/api/v1"))


@audit_bp.route("/audit-logs", methods=["GET"])
@require_role(Role.HR_ADMIN.value)
def audit_logs():
    default_limit = current_app.config.get("AUDIT_LOG_DEFAULT_LIMIT", 100)
    limit = request.args.get("limit", default_limit, type=int)
    return jsonify(list_audit_logs(
        limit=limit,
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id"),
    )), 200
