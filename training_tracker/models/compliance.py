"""
Training Compliance Tracker
Compliance requirement mapping.

Models:
    - ComplianceRequirement: links a regulatory clause (standard + requirement)
      to the course that satisfies it, optionally scoped to a department/role.
"""

from datetime import datetime, timezone

from training_tracker.models import db

REQUIREMENT_FREQUENCIES = {"once", "annual", "biannual", "quarterly", "monthly"}


class ComplianceRequirement(db.Model):
    __tablename__ = "compliance_requirements"

    id = db.Column(db.Integer, primary_key=True)
    standard = db.Column(db.String(100), nullable=False, comment="ISO45001, OSHA, ...")
    requirement = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    frequency = db.Column(db.String(20), nullable=True)
    department = db.Column(db.String(100), nullable=True)
    role = db.Column(db.String(20), nullable=True)
    training_catalog_id = db.Column(
        db.Integer, db.ForeignKey("training_catalog.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    training = db.relationship("TrainingCatalog")

    def to_dict(self):
        return {
            "id": self.id,
            "standard": self.standard,
            "requirement": self.requirement,
            "description": self.description,
            "frequency": self.frequency,
            "department": self.department,
            "role": self.role,
            "training_catalog_id": self.training_catalog_id,
            "training_title": self.training.title if self.training else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ComplianceRequirement #{self.id} {self.standard}: {self.requirement[:40]}>"
