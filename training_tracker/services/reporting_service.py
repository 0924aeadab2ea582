"""Training-hours report: planned vs actual, by department and month.

Planned hours: every scheduled session contributes ``duration_hours`` once
per enrollee (once, with no department, when nobody is enrolled), bucketed
by the enrollee's department and the month of ``session_date``.

Actual hours: every *completed* enrollment contributes its session's
``duration_hours``, bucketed by department and month of ``completion_date``.

Aggregation is done in Python so the report works the same on SQLite and
PostgreSQL.
"""
import logging
from collections import defaultdict

from training_tracker.core.exceptions import ValidationError
from training_tracker.models import db
from training_tracker.models.catalog import TrainingEnrollment, TrainingSession
from training_tracker.models.employee import Employee
from training_tracker.utils.helpers import as_utc, parse_datetime

logger = logging.getLogger(__name__)


def _month(value):
    return as_utc(value).strftime("%Y-%m") if value else None


def _in_range(value, start, end):
    if start is None and end is None:
        return True
    if value is None:
        return False
    value = as_utc(value)
    return (start is None or value >= start) and (end is None or value <= end)


def _bucket_rows(buckets, key_name):
    return [
        {"department": dept, "month": month, key_name: hours}
        for (dept, month), hours in sorted(buckets.items(), key=lambda kv: (kv[0][1] or "", kv[0][0] or ""))
    ]


def training_hours_report(department=None, start_date=None, end_date=None):
    start = parse_datetime(start_date)
    end = parse_datetime(end_date)
    if start_date and start is None:
        raise ValidationError("start_date must be an ISO date", details={"start_date": start_date})
    if end_date and end is None:
        raise ValidationError("end_date must be an ISO date", details={"end_date": end_date})

    # ── Planned ──────────────────────────────────────────────────────
    planned = defaultdict(int)
    planned_rows = (
        db.session.query(TrainingSession, Employee.department)
        .outerjoin(TrainingEnrollment, TrainingEnrollment.session_id == TrainingSession.id)
        .outerjoin(Employee, TrainingEnrollment.employee_id == Employee.id)
        .all()
    )
    for session, dept in planned_rows:
        if department and dept != department:
            continue
        if not _in_range(session.session_date, start, end):
            continue
        planned[(dept, _month(session.session_date))] += session.duration_hours or 0

    # ── Actual ───────────────────────────────────────────────────────
    actual = defaultdict(int)
    actual_rows = (
        db.session.query(TrainingEnrollment, TrainingSession.duration_hours, Employee.department)
        .join(TrainingSession, TrainingEnrollment.session_id == TrainingSession.id)
        .outerjoin(Employee, TrainingEnrollment.employee_id == Employee.id)
        .filter(TrainingEnrollment.status == "completed")
        .all()
    )
    for enrollment, duration, dept in actual_rows:
        if department and dept != department:
            continue
        if not _in_range(enrollment.completion_date, start, end):
            continue
        actual[(dept, _month(enrollment.completion_date))] += duration or 0

    total_planned = sum(planned.values())
    total_actual = sum(actual.values())
    completion_rate = round(total_actual / total_planned * 100, 1) if total_planned > 0 else 0

    logger.debug("Training hours report: planned=%s actual=%s dept=%s", total_planned, total_actual, department)
    return {
        "planned_hours": _bucket_rows(planned, "total_planned_hours"),
        "actual_hours": _bucket_rows(actual, "total_actual_hours"),
        "summary": {
            "total_planned": total_planned,
            "total_actual": total_actual,
            "completion_rate": completion_rate,
        },
    }
