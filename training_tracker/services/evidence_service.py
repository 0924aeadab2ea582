"""Evidence attachments: metadata for files proving attendance or completion.

The file itself is stored elsewhere; this service only records where it is
and who may see it.  Employees register evidence against their own
enrollments; the uploader and HR may delete it.
"""
import logging
import posixpath

from training_tracker.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.catalog import (
    EVIDENCE_FILE_TYPES,
    EVIDENCE_MAX_BYTES,
    EvidenceAttachment,
    TrainingEnrollment,
)
from training_tracker.models.employee import Role
from training_tracker.utils.helpers import db_commit, parse_int, parse_text, require_fields

logger = logging.getLogger(__name__)


def list_for_employee(employee_id):
    """Attachments uploaded by ``employee_id``, newest first."""
    rows = (
        EvidenceAttachment.query
        .filter(EvidenceAttachment.uploaded_by == employee_id)
        .order_by(EvidenceAttachment.uploaded_at.desc(), EvidenceAttachment.id.desc())
        .all()
    )
    return [a.to_dict() for a in rows]


def _check_file(original_name, file_type, file_size):
    extension = posixpath.splitext(original_name.lower())[1]
    allowed = EVIDENCE_FILE_TYPES.get(extension)
    if allowed is None or file_type.lower() not in allowed:
        raise ValidationError(
            "Only JPEG, PNG, PDF, Word and PowerPoint files are allowed",
            details={"file_type": file_type, "original_file_name": original_name},
        )
    if file_size > EVIDENCE_MAX_BYTES:
        raise ValidationError(
            f"file_size exceeds the {EVIDENCE_MAX_BYTES // (1024 * 1024)} MB limit",
            details={"file_size": f"max {EVIDENCE_MAX_BYTES}"},
        )


def register(actor, data):
    """Record an uploaded file against one of ``actor``'s enrollments."""
    require_fields(data, "enrollment_id", "file_name", "file_type", "file_path", "file_size")
    enrollment_id = parse_int(data["enrollment_id"], "enrollment_id", required=True)
    file_name = parse_text(data["file_name"], "file_name", required=True)
    original_name = parse_text(data.get("original_file_name"), "original_file_name") or file_name
    file_type = parse_text(data["file_type"], "file_type", required=True)
    file_path = parse_text(data["file_path"], "file_path", required=True)
    file_size = parse_int(data["file_size"], "file_size", minimum=1, required=True)
    description = parse_text(data.get("description"), "description") or None
    _check_file(original_name, file_type, file_size)

    enrollment = db.session.get(TrainingEnrollment, enrollment_id)
    if enrollment is None or enrollment.employee_id != actor.id:
        raise ForbiddenError("Access denied or enrollment not found")

    attachment = EvidenceAttachment(
        enrollment_id=enrollment.id,
        session_id=enrollment.session_id,
        file_name=file_name,
        original_file_name=original_name,
        file_size=file_size,
        file_type=file_type,
        file_path=file_path,
        description=description,
        uploaded_by=actor.id,
    )
    db.session.add(attachment)
    db.session.flush()
    write_audit(entity_type="evidence_attachment", entity_id=attachment.id, action="create",
                performed_by=actor.id,
                changes={"enrollment_id": enrollment.id, "original_file_name": original_name})
    db_commit()
    logger.info("Evidence %s registered for enrollment %s", attachment.id, enrollment.id,
                extra={"actor_id": actor.id, "entity_type": "evidence_attachment", "entity_id": attachment.id})
    return attachment.to_dict()


def delete(actor, attachment_id):
    attachment = db.session.get(EvidenceAttachment, attachment_id)
    if attachment is None:
        raise NotFoundError(resource="EvidenceAttachment", resource_id=attachment_id)
    if attachment.uploaded_by != actor.id and actor.role != Role.HR_ADMIN.value:
        raise ForbiddenError("Access denied")

    write_audit(entity_type="evidence_attachment", entity_id=attachment.id, action="delete",
                performed_by=actor.id,
                changes={"enrollment_id": attachment.enrollment_id, "file_path": attachment.file_path})
    db.session.delete(attachment)
    db_commit()
    # The stored file is left for the file store's own retention to collect
    logger.info("Evidence %s deleted", attachment_id,
                extra={"actor_id": actor.id, "entity_type": "evidence_attachment", "entity_id": attachment_id})
