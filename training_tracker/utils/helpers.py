"""Shared utility functions for blueprints and services.

parse_date:      returns None on bad input
parse_datetime:  returns None on bad input, naive values taken as UTC
parse_int:       raises ValidationError on bad input
parse_text:      raises ValidationError on non-string input
normalize_email: raises ValidationError on a malformed address
db_commit:       commit, or rollback and raise ConflictError / StorageError
"""
import logging
from datetime import date, datetime, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from training_tracker.core.exceptions import ConflictError, StorageError, ValidationError
from training_tracker.models import db

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (→ .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_datetime(value):
    """Parse an ISO date or datetime string to an aware UTC datetime.

    A trailing ``Z`` is accepted.  A bare date becomes midnight UTC.
    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            d = parse_date(text)
            if d is None:
                return None
            parsed = datetime(d.year, d.month, d.day)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_utc(value):
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def parse_int(value, field, *, minimum=None, required=False):
    """Coerce a payload value to int or raise ValidationError.

    Empty values return None unless ``required``.
    """
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", details={field: "required"})
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={field: "integer"})
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: "integer"}) from exc
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", details={field: f"min {minimum}"})
    return number


def parse_text(value, field, *, required=False):
    """Strip a payload string.  None stays None unless ``required``."""
    if value is None:
        if required:
            raise ValidationError(f"{field} is required", details={field: "required"})
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "string"})
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value


def normalize_email(raw, field="email"):
    try:
        return validate_email(raw, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(str(exc), details={field: "invalid"}) from exc


def require_fields(data, *fields):
    """Raise ValidationError listing every missing/blank field."""
    missing = [f for f in fields if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            details={f: "required" for f in missing},
        )


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit():
    """Commit the current session, translating failures to domain exceptions.

    IntegrityError → ConflictError (duplicate / constraint violation)
    other SQLAlchemyError → StorageError

    The session is rolled back before raising.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise ConflictError("record", "constraint", message="Duplicate or constraint violation") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on commit")
        raise StorageError(str(exc)) from exc
