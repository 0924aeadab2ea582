"""
Training provider blueprint.

Endpoints:
    GET/POST  /api/v1/vendors            (writes hr_admin)
    PUT       /api/v1/vendors/<id>       (hr_admin)
    GET/POST  /api/v1/trainers           (writes hr_admin)
    PUT       /api/v1/trainers/<id>      (hr_admin)
"""

from flask import Blueprint, jsonify, request

import training_tracker.services.provider_service as svc
from training_tracker.blueprints import json_body, register_error_handlers
from training_tracker.middleware.actor_context import current_actor, require_actor, require_role
from training_tracker.models.employee import Role

provider_bp = register_error_handlers(Blueprint("provider", __name__, url_prefix="/api/v1"))

_HR = Role.HR_ADMIN.value


def _include_inactive():
    return request.args.get("include_inactive", "").lower() in ("1", "true", "yes")


# ═════════════════════════════════════════════════════════════════════════
# Vendors
# ═════════════════════════════════════════════════════════════════════════


@provider_bp.route("/vendors", methods=["GET"])
@require_actor
def list_vendors():
    return jsonify(svc.list_vendors(include_inactive=_include_inactive())), 200


@provider_bp.route("/vendors", methods=["POST"])
@require_role(_HR)
def create_vendor():
    return jsonify(svc.create_vendor(json_body(), created_by=current_actor().id)), 201


@provider_bp.route("/vendors/<int:vendor_id>", methods=["PUT"])
@require_role(_HR)
def update_vendor(vendor_id):
    return jsonify(svc.update_vendor(vendor_id, json_body(), updated_by=current_actor().id)), 200


# ═════════════════════════════════════════════════════════════════════════
# Trainers
# ═════════════════════════════════════════════════════════════════════════


@provider_bp.route("/trainers", methods=["GET"])
@require_actor
def list_trainers():
    """Query params: type (INTERNAL | EXTERNAL), vendor_id, include_inactive."""
    return jsonify(svc.list_trainers(
        trainer_type=request.args.get("type"),
        vendor_id=request.args.get("vendor_id", type=int),
        include_inactive=_include_inactive(),
    )), 200


@provider_bp.route("/trainers", methods=["POST"])
@require_role(_HR)
def create_trainer():
    return jsonify(svc.create_trainer(json_body(), created_by=current_actor().id)), 201


@provider_bp.route("/trainers/<int:trainer_id>", methods=["PUT"])
@require_role(_HR)
def update_trainer(trainer_id):
    return jsonify(svc.update_trainer(trainer_id, json_body(), updated_by=current_actor().id)), 200
