"""
Training Compliance Tracker
Annual training plan models.

Models:
    - TrainingPlan: a named plan for one calendar year
    - TrainingPlanItem: a tentative course for a month, later converted into
      a real TrainingSession

Item lifecycle: PLANNED → CONVERTED | CANCELLED
"""

from datetime import datetime, timezone
from enum import Enum

from training_tracker.models import db


class PlanItemStatus(str, Enum):
    PLANNED = "PLANNED"
    CONVERTED = "CONVERTED"
    CANCELLED = "CANCELLED"


PLAN_ITEM_TYPES = {"INTERNAL", "EXTERNAL"}

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _utcnow():
    return datetime.now(timezone.utc)


class TrainingPlan(db.Model):
    __tablename__ = "training_plans"

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    created_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    items = db.relationship(
        "TrainingPlanItem", backref="plan", lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self, include_items=False):
        d = {
            "id": self.id,
            "year": self.year,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            d["items"] = [i.to_dict() for i in self.items.order_by(TrainingPlanItem.id)]
        return d

    def __repr__(self):
        return f"<TrainingPlan #{self.id} {self.year} {self.name}>"


class TrainingPlanItem(db.Model):
    __tablename__ = "training_plan_items"

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    skill_id = db.Column(db.Integer, db.ForeignKey("skills.id", ondelete="SET NULL"), nullable=True)
    title = db.Column(db.String(300), nullable=False)
    tentative_month = db.Column(db.String(20), nullable=True)
    expected_hours = db.Column(db.Integer, nullable=True)
    type = db.Column(db.String(20), nullable=False, default="INTERNAL")
    status = db.Column(db.String(20), nullable=False, default=PlanItemStatus.PLANNED.value, index=True)
    converted_to_session_id = db.Column(
        db.Integer, db.ForeignKey("training_sessions.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "skill_id": self.skill_id,
            "title": self.title,
            "tentative_month": self.tentative_month,
            "expected_hours": self.expected_hours,
            "type": self.type,
            "status": self.status,
            "converted_to_session_id": self.converted_to_session_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TrainingPlanItem #{self.id} {self.title[:40]} {self.status}>"
