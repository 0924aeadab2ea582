"""
Training Compliance Tracker
Catalog & delivery domain models.

Models:
    - Skill: skills master referenced by training needs and plan items
    - TrainingCatalog: course definitions (internal, external, certification, compliance)
    - TrainingSession: a scheduled run of a course, optionally capacity-capped
    - TrainingEnrollment: an employee's seat / attendance record in a session
    - EvidenceAttachment: metadata of a file proving attendance or completion

Chain: TrainingCatalog → TrainingSession → TrainingEnrollment → EvidenceAttachment
"""

from datetime import datetime, timezone

from training_tracker.models import db


# ── Constants ────────────────────────────────────────────────────────────────

SKILL_CATEGORIES = {"BEHAVIORAL", "PROCEDURAL", "TECHNICAL", "LANGUAGE", "SAFETY", "DOMAIN", "OTHER"}

CATALOG_TYPES = {"internal", "external", "certification", "compliance"}
TRAINER_TYPES = {"internal", "external", "contractor"}

SESSION_STATUSES = {"scheduled", "completed", "cancelled"}
SESSION_TRAINER_TYPES = {"internal", "external"}

ENROLLMENT_STATUSES = {"enrolled", "attended", "completed", "absent"}

EVIDENCE_MAX_BYTES = 10 * 1024 * 1024
EVIDENCE_FILE_TYPES = {
    ".jpg": {"image/jpeg"},
    ".jpeg": {"image/jpeg"},
    ".png": {"image/png"},
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
    ".ppt": {"application/vnd.ms-powerpoint"},
    ".pptx": {"application/vnd.openxmlformats-officedocument.presentationml.presentation"},
}


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  SKILL
# ═══════════════════════════════════════════════════════════════════════════

class Skill(db.Model):
    __tablename__ = "skills"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(30), nullable=False, default="OTHER")
    description = db.Column(db.Text, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Skill #{self.id} {self.name}>"


# ═══════════════════════════════════════════════════════════════════════════
#  TRAINING CATALOG
# ═══════════════════════════════════════════════════════════════════════════

class TrainingCatalog(db.Model):
    """
    A course that can be scheduled.

    ``cost`` is stored in minor units (cents) to keep sums exact.
    ``validity_period_months`` drives certificate expiry for compliance courses.
    """

    __tablename__ = "training_catalog"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.String(20), nullable=False, comment="internal | external | certification | compliance")
    category = db.Column(db.String(50), nullable=False, comment="safety | quality | compliance | technical")
    duration_hours = db.Column(db.Integer, nullable=False)
    validity_period_months = db.Column(db.Integer, nullable=True)
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    compliance_standard = db.Column(db.String(100), nullable=True, comment="ISO45001, OSHA, ...")
    prerequisites = db.Column(db.Text, nullable=True)

    # External provider
    cost = db.Column(db.Integer, nullable=True, comment="minor units (cents)")
    currency = db.Column(db.String(3), default="USD")
    provider_name = db.Column(db.String(200), nullable=True)
    provider_contact = db.Column(db.String(200), nullable=True)
    location = db.Column(db.String(200), nullable=True)
    external_url = db.Column(db.String(500), nullable=True)

    trainer_name = db.Column(db.String(200), nullable=True)
    trainer_type = db.Column(db.String(20), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    sessions = db.relationship("TrainingSession", backref="catalog", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "duration_hours": self.duration_hours,
            "validity_period_months": self.validity_period_months,
            "is_required": self.is_required,
            "compliance_standard": self.compliance_standard,
            "prerequisites": self.prerequisites,
            "cost": self.cost,
            "currency": self.currency,
            "provider_name": self.provider_name,
            "provider_contact": self.provider_contact,
            "location": self.location,
            "external_url": self.external_url,
            "trainer_name": self.trainer_name,
            "trainer_type": self.trainer_type,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TrainingCatalog #{self.id} {self.title[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  TRAINING SESSION
# ═══════════════════════════════════════════════════════════════════════════

class TrainingSession(db.Model):
    """
    A scheduled delivery of a course.

    ``max_participants`` NULL means uncapped.  Seat occupancy is
    enrollments + PENDING/APPROVED nominations (see seat_allocator).
    """

    __tablename__ = "training_sessions"

    id = db.Column(db.Integer, primary_key=True)
    catalog_id = db.Column(
        db.Integer, db.ForeignKey("training_catalog.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    session_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    duration_hours = db.Column(db.Integer, nullable=False)
    venue = db.Column(db.String(200), nullable=True)
    trainer_name = db.Column(db.String(200), nullable=True)
    trainer_type = db.Column(db.String(20), nullable=False, default="internal")
    max_participants = db.Column(db.Integer, nullable=True, comment="NULL = uncapped")
    status = db.Column(db.String(20), nullable=False, default="scheduled", index=True)
    materials = db.Column(db.JSON, nullable=True, comment="list of material URLs")

    created_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    enrollments = db.relationship("TrainingEnrollment", backref="session", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "catalog_id": self.catalog_id,
            "title": self.title,
            "session_date": self.session_date.isoformat() if self.session_date else None,
            "duration_hours": self.duration_hours,
            "venue": self.venue,
            "trainer_name": self.trainer_name,
            "trainer_type": self.trainer_type,
            "max_participants": self.max_participants,
            "status": self.status,
            "materials": self.materials or [],
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TrainingSession #{self.id} {self.title[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  TRAINING ENROLLMENT
# ═══════════════════════════════════════════════════════════════════════════

class TrainingEnrollment(db.Model):
    __tablename__ = "training_enrollments"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer, db.ForeignKey("training_sessions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = db.Column(db.String(20), nullable=False, default="enrolled", index=True)
    completion_date = db.Column(db.DateTime(timezone=True), nullable=True)
    score = db.Column(db.Integer, nullable=True)
    certificate_url = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    employee = db.relationship("Employee")

    def to_dict(self, include_session=False):
        d = {
            "id": self.id,
            "session_id": self.session_id,
            "employee_id": self.employee_id,
            "status": self.status,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "score": self.score,
            "certificate_url": self.certificate_url,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_session and self.session is not None:
            d["session_title"] = self.session.title
            d["session_date"] = self.session.session_date.isoformat() if self.session.session_date else None
            d["duration_hours"] = self.session.duration_hours
        return d

    def __repr__(self):
        return f"<TrainingEnrollment #{self.id} session={self.session_id} employee={self.employee_id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  EVIDENCE ATTACHMENT
# ═══════════════════════════════════════════════════════════════════════════

class EvidenceAttachment(db.Model):
    """
    A file registered against an enrollment as proof of attendance.

    Only metadata lives here; the bytes stay wherever ``file_path`` points.
    ``session_id`` is copied from the enrollment so listings can show the
    session title without a second hop.
    """

    __tablename__ = "evidence_attachments"

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(
        db.Integer, db.ForeignKey("training_enrollments.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    session_id = db.Column(
        db.Integer, db.ForeignKey("training_sessions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    file_name = db.Column(db.String(255), nullable=False)
    original_file_name = db.Column(db.String(255), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, comment="bytes")
    file_type = db.Column(db.String(120), nullable=False, comment="MIME type")
    file_path = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, nullable=True)
    uploaded_by = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    uploaded_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    session = db.relationship("TrainingSession")

    def to_dict(self):
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "session_id": self.session_id,
            "session_title": self.session.title if self.session is not None else None,
            "file_name": self.file_name,
            "original_file_name": self.original_file_name,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "description": self.description,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    def __repr__(self):
        return f"<EvidenceAttachment #{self.id} enrollment={self.enrollment_id} {self.original_file_name}>"
