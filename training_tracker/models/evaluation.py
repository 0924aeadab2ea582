"""
Training Compliance Tracker
Post-training evaluation models.

Models:
    - TrainingFeedback: the attendee's own rating of a completed session
    - EffectivenessEvaluation: the manager's assessment of whether the
      training changed on-the-job behaviour

Both are one-per-enrollment (unique enrollment_id).
"""

from datetime import datetime, timezone

from training_tracker.models import db

RATING_MIN = 1
RATING_MAX = 5

FEEDBACK_RATING_FIELDS = ("overall_rating", "content_rating", "trainer_rating", "relevance_rating")

EVALUATION_RATING_FIELDS = (
    "knowledge_application",
    "behavior_change",
    "performance_improvement",
    "compliance_adherence",
    "overall_effectiveness",
)


def _utcnow():
    return datetime.now(timezone.utc)


class TrainingFeedback(db.Model):
    __tablename__ = "training_feedback"

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(
        db.Integer, db.ForeignKey("training_enrollments.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    session_id = db.Column(
        db.Integer, db.ForeignKey("training_sessions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    overall_rating = db.Column(db.Integer, nullable=False)
    content_rating = db.Column(db.Integer, nullable=False)
    trainer_rating = db.Column(db.Integer, nullable=False)
    relevance_rating = db.Column(db.Integer, nullable=False)
    comments = db.Column(db.Text, nullable=True)
    suggestions = db.Column(db.Text, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    enrollment = db.relationship("TrainingEnrollment")

    def to_dict(self):
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "session_id": self.session_id,
            "employee_id": self.employee_id,
            "overall_rating": self.overall_rating,
            "content_rating": self.content_rating,
            "trainer_rating": self.trainer_rating,
            "relevance_rating": self.relevance_rating,
            "comments": self.comments,
            "suggestions": self.suggestions,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }

    def __repr__(self):
        return f"<TrainingFeedback #{self.id} enrollment={self.enrollment_id}>"


class EffectivenessEvaluation(db.Model):
    """
    Manager's follow-up on a completed enrollment.

    ``overall_effectiveness`` is mandatory; the four dimension ratings are
    optional.  ``follow_up_date`` only makes sense with ``follow_up_required``.
    """

    __tablename__ = "effectiveness_evaluations"

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(
        db.Integer, db.ForeignKey("training_enrollments.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    manager_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    evaluation_date = db.Column(db.DateTime(timezone=True), default=_utcnow)

    knowledge_application = db.Column(db.Integer, nullable=True)
    behavior_change = db.Column(db.Integer, nullable=True)
    performance_improvement = db.Column(db.Integer, nullable=True)
    compliance_adherence = db.Column(db.Integer, nullable=True)
    overall_effectiveness = db.Column(db.Integer, nullable=False)

    comments = db.Column(db.Text, nullable=True)
    action_plan = db.Column(db.Text, nullable=True)
    follow_up_required = db.Column(db.Boolean, nullable=False, default=False)
    follow_up_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    enrollment = db.relationship("TrainingEnrollment")

    def to_dict(self):
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "employee_id": self.employee_id,
            "manager_id": self.manager_id,
            "evaluation_date": self.evaluation_date.isoformat() if self.evaluation_date else None,
            "knowledge_application": self.knowledge_application,
            "behavior_change": self.behavior_change,
            "performance_improvement": self.performance_improvement,
            "compliance_adherence": self.compliance_adherence,
            "overall_effectiveness": self.overall_effectiveness,
            "comments": self.comments,
            "action_plan": self.action_plan,
            "follow_up_required": self.follow_up_required,
            "follow_up_date": self.follow_up_date.isoformat() if self.follow_up_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<EffectivenessEvaluation #{self.id} enrollment={self.enrollment_id}>"
