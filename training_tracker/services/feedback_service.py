"""Post-training feedback & manager effectiveness evaluations.

- Feedback: the attendee rates their own *completed* enrollment, once.
- Evaluation: a manager (or HR) assesses a *completed* enrollment, once.
- Pending evaluations: completed enrollments in the manager's department
  that have no evaluation yet.
"""
import logging

from training_tracker.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.catalog import TrainingEnrollment, TrainingSession
from training_tracker.models.employee import Employee, Role
from training_tracker.models.evaluation import (
    EVALUATION_RATING_FIELDS,
    FEEDBACK_RATING_FIELDS,
    RATING_MAX,
    RATING_MIN,
    EffectivenessEvaluation,
    TrainingFeedback,
)
from training_tracker.utils.helpers import db_commit, parse_date, parse_datetime, parse_int

logger = logging.getLogger(__name__)

COMPLETED = "completed"


def _rating(data, field, required):
    value = parse_int(data.get(field), field, required=required)
    if value is not None and not RATING_MIN <= value <= RATING_MAX:
        raise ValidationError(
            f"{field} must be between {RATING_MIN} and {RATING_MAX}",
            details={field: f"{RATING_MIN}-{RATING_MAX}"},
        )
    return value


def _completed_enrollment(enrollment_id):
    enrollment = db.session.get(TrainingEnrollment, enrollment_id)
    if enrollment is None:
        raise NotFoundError(resource="TrainingEnrollment", resource_id=enrollment_id)
    if enrollment.status != COMPLETED:
        raise ValidationError("Enrollment is not completed", details={"status": enrollment.status})
    return enrollment


# ── Feedback ─────────────────────────────────────────────────────────────


def submit_feedback(actor, data):
    """Record ``actor``'s feedback on one of their own completed enrollments."""
    enrollment_id = parse_int(data.get("enrollment_id"), "enrollment_id", required=True)
    enrollment = db.session.get(TrainingEnrollment, enrollment_id)
    if enrollment is None:
        raise NotFoundError(resource="TrainingEnrollment", resource_id=enrollment_id)
    if enrollment.employee_id != actor.id:
        raise ForbiddenError("Feedback can only be given on your own training")
    if enrollment.status != COMPLETED:
        raise ValidationError("Feedback can only be given on completed training",
                              details={"status": enrollment.status})

    if TrainingFeedback.query.filter_by(enrollment_id=enrollment_id).first():
        raise ConflictError("TrainingFeedback", "enrollment_id", enrollment_id,
                            message="Feedback already submitted for this training")

    ratings = {f: _rating(data, f, required=True) for f in FEEDBACK_RATING_FIELDS}
    feedback = TrainingFeedback(
        enrollment_id=enrollment_id,
        session_id=enrollment.session_id,
        employee_id=actor.id,
        comments=data.get("comments") or None,
        suggestions=data.get("suggestions") or None,
        **ratings,
    )
    db.session.add(feedback)
    db_commit()
    logger.info("Feedback %s submitted for enrollment %s", feedback.id, enrollment_id,
                extra={"actor_id": actor.id, "entity_type": "training_feedback", "entity_id": feedback.id})
    return feedback.to_dict()


def list_feedback(actor, employee_id):
    """Feedback given by ``employee_id``; only self, managers and HR may look."""
    if actor.id != employee_id and actor.role not in (Role.MANAGER.value, Role.HR_ADMIN.value):
        raise ForbiddenError("Access denied")
    rows = (
        db.session.query(TrainingFeedback, TrainingSession.title)
        .outerjoin(TrainingSession, TrainingFeedback.session_id == TrainingSession.id)
        .filter(TrainingFeedback.employee_id == employee_id)
        .order_by(TrainingFeedback.submitted_at.desc())
        .all()
    )
    result = []
    for feedback, session_title in rows:
        d = feedback.to_dict()
        d["session_title"] = session_title
        result.append(d)
    return result


# ── Effectiveness evaluations ────────────────────────────────────────────


def pending_evaluations(actor, department=None):
    """
    Completed enrollments still awaiting an effectiveness evaluation.

    Managers see their own department; HR sees every department, or the one
    given in ``department``.
    """
    if actor.role == Role.MANAGER.value:
        department = actor.department
        if not department:
            return []
    elif actor.role != Role.HR_ADMIN.value:
        raise ForbiddenError("Access denied")

    evaluated = db.select(EffectivenessEvaluation.enrollment_id)
    q = (
        db.session.query(TrainingEnrollment, TrainingSession, Employee)
        .join(TrainingSession, TrainingEnrollment.session_id == TrainingSession.id)
        .join(Employee, TrainingEnrollment.employee_id == Employee.id)
        .filter(TrainingEnrollment.status == COMPLETED)
        .filter(~TrainingEnrollment.id.in_(evaluated))
    )
    if department:
        q = q.filter(Employee.department == department)

    result = []
    for enrollment, session, employee in q.order_by(TrainingEnrollment.completion_date.desc()).all():
        result.append({
            **enrollment.to_dict(),
            "session_title": session.title,
            "session_date": session.session_date.isoformat() if session.session_date else None,
            "duration_hours": session.duration_hours,
            "employee_name": employee.full_name,
            "department": employee.department,
            "employee_code": employee.employee_code,
        })
    return result


def create_evaluation(actor, data):
    if actor.role not in (Role.MANAGER.value, Role.HR_ADMIN.value):
        raise ForbiddenError("Only managers and HR can evaluate training effectiveness")

    enrollment_id = parse_int(data.get("enrollment_id"), "enrollment_id", required=True)
    enrollment = _completed_enrollment(enrollment_id)

    if EffectivenessEvaluation.query.filter_by(enrollment_id=enrollment_id).first():
        raise ConflictError("EffectivenessEvaluation", "enrollment_id", enrollment_id,
                            message="Evaluation already exists for this training")

    ratings = {
        f: _rating(data, f, required=(f == "overall_effectiveness"))
        for f in EVALUATION_RATING_FIELDS
    }
    follow_up_required = bool(data.get("follow_up_required", False))
    follow_up_date = parse_date(data.get("follow_up_date"))
    if data.get("follow_up_date") and follow_up_date is None:
        raise ValidationError("follow_up_date must be an ISO date", details={"follow_up_date": "date"})

    evaluation = EffectivenessEvaluation(
        enrollment_id=enrollment_id,
        employee_id=enrollment.employee_id,
        manager_id=actor.id,
        comments=data.get("comments") or None,
        action_plan=data.get("action_plan") or None,
        follow_up_required=follow_up_required,
        follow_up_date=follow_up_date if follow_up_required else None,
        **ratings,
    )
    evaluation_date = parse_datetime(data.get("evaluation_date"))
    if evaluation_date is not None:
        evaluation.evaluation_date = evaluation_date

    db.session.add(evaluation)
    db_commit()
    logger.info("Evaluation %s recorded for enrollment %s", evaluation.id, enrollment_id,
                extra={"actor_id": actor.id, "entity_type": "effectiveness_evaluation",
                       "entity_id": evaluation.id})
    return evaluation.to_dict()


def list_evaluations(actor, manager_id=None):
    """Evaluations written by ``manager_id`` (defaults to the actor)."""
    if actor.role not in (Role.MANAGER.value, Role.HR_ADMIN.value):
        raise ForbiddenError("Access denied")
    if actor.role == Role.MANAGER.value:
        manager_id = actor.id

    q = (
        db.session.query(EffectivenessEvaluation, TrainingSession.title, Employee)
        .join(TrainingEnrollment, EffectivenessEvaluation.enrollment_id == TrainingEnrollment.id)
        .outerjoin(TrainingSession, TrainingEnrollment.session_id == TrainingSession.id)
        .outerjoin(Employee, EffectivenessEvaluation.employee_id == Employee.id)
    )
    if manager_id:
        q = q.filter(EffectivenessEvaluation.manager_id == manager_id)

    result = []
    for evaluation, session_title, employee in q.order_by(EffectivenessEvaluation.id.desc()).all():
        d = evaluation.to_dict()
        d["session_title"] = session_title
        d["employee_name"] = employee.full_name if employee else None
        result.append(d)
    return result
