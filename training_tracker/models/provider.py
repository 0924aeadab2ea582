"""
Training Compliance Tracker
Training provider models.

Models:
    - Vendor: an external training company
    - Trainer: a person who delivers training, either an employee
      (INTERNAL) or someone supplied by a vendor (EXTERNAL)
"""

from datetime import datetime, timezone

from training_tracker.models import db

TRAINER_KINDS = {"INTERNAL", "EXTERNAL"}


def _utcnow():
    return datetime.now(timezone.utc)


class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    gst_number = db.Column(db.String(50), nullable=True, comment="Tax registration number")
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    trainers = db.relationship("Trainer", back_populates="vendor")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "gst_number": self.gst_number,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Vendor #{self.id} {self.name}>"


class Trainer(db.Model):
    """
    INTERNAL trainers point at an employee, EXTERNAL ones at a vendor.
    The other link stays NULL.
    """

    __tablename__ = "trainers"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False, index=True, comment="INTERNAL | EXTERNAL")
    employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    vendor_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    specialization = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    vendor = db.relationship("Vendor", back_populates="trainers")
    employee = db.relationship("Employee")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "employee_id": self.employee_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor is not None else None,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "specialization": self.specialization,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Trainer #{self.id} {self.type} {self.name}>"
