"""
Evidence attachment blueprint.

Endpoints:
    POST    /api/v1/evidence-attachments                  (own enrollments only)
    GET     /api/v1/evidence-attachments/<employee_id>    (self, managers, hr_admin)
    DELETE  /api/v1/evidence-attachments/<id>             (uploader or hr_admin)

Bodies are JSON metadata; the file bytes are stored outside this service.
"""

from flask import Blueprint, jsonify

import training_tracker.services.evidence_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor
from training_tracker.models.employee import Role
from training_tracker.utils.errors import E, api_error

evidence_bp = register_error_handlers(Blueprint("evidence", __name__, url_prefix="/api/v1"))


@evidence_bp.route("/evidence-attachments", methods=["POST"])
@require_actor
def register_attachment():
    return jsonify(svc.register(current_actor(), json_body())), 201


@evidence_bp.route("/evidence-attachments/<int:employee_id>", methods=["GET"])
@require_actor
def list_attachments(employee_id):
    actor = current_actor()
    if actor.id != employee_id and actor.role not in (Role.MANAGER.value, Role.HR_ADMIN.value):
        return api_error(E.FORBIDDEN, "Access denied")
    return jsonify(svc.list_for_employee(employee_id)), 200


@evidence_bp.route("/evidence-attachments/<int:attachment_id>", methods=["DELETE"])
@require_actor
def delete_attachment(attachment_id):
    svc.delete(current_actor(), attachment_id)
    return jsonify({"message": "Attachment deleted successfully"}), 200
