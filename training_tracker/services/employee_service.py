"""Employee directory: HR-facing listing, onboarding and departments."""
import logging

from training_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.employee import ROLES, Department, Employee, Role
from training_tracker.utils.helpers import db_commit, normalize_email, parse_int, parse_text, require_fields

logger = logging.getLogger(__name__)


def list_employees(department=None, role=None):
    q = Employee.query
    if department:
        q = q.filter(Employee.department == department)
    if role:
        q = q.filter(Employee.role == role)
    return [e.to_dict() for e in q.order_by(Employee.last_name, Employee.first_name, Employee.id).all()]


def _ensure_unique(field, value):
    if value and Employee.query.filter(getattr(Employee, field) == value).first():
        raise ConflictError("Employee", field, value)


def create_employee(data, performed_by=None):
    require_fields(data, "username", "email")
    username = parse_text(data["username"], "username", required=True)
    email = normalize_email(parse_text(data["email"], "email", required=True))

    role = (parse_text(data.get("role"), "role") or Role.EMPLOYEE.value).lower()
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}", details={"role": "invalid choice"})

    manager_id = parse_int(data.get("manager_id"), "manager_id")
    if manager_id is not None and db.session.get(Employee, manager_id) is None:
        raise NotFoundError(resource="Employee", resource_id=manager_id)

    employee_code = parse_text(data.get("employee_code"), "employee_code") or None
    _ensure_unique("username", username)
    _ensure_unique("email", email)
    _ensure_unique("employee_code", employee_code)

    employee = Employee(
        username=username,
        email=email,
        first_name=parse_text(data.get("first_name"), "first_name") or "",
        last_name=parse_text(data.get("last_name"), "last_name") or "",
        role=role,
        department=parse_text(data.get("department"), "department") or None,
        employee_code=employee_code,
        manager_id=manager_id,
    )
    db.session.add(employee)
    db.session.flush()
    write_audit(entity_type="employee", entity_id=employee.id, action="create",
                performed_by=performed_by, changes={"username": username, "role": role})
    db_commit()
    logger.info("Employee %s created", employee.id,
                extra={"actor_id": performed_by, "entity_type": "employee", "entity_id": employee.id})
    return employee.to_dict()


def list_departments():
    """Registered departments plus any department named on an employee, by name."""
    departments = {d.name: d.to_dict() for d in Department.query.all()}
    rows = (
        db.session.query(Employee.department)
        .filter(Employee.department.isnot(None), Employee.department != "")
        .distinct()
        .all()
    )
    for (name,) in rows:
        departments.setdefault(name, {"name": name, "description": "", "manager": None})
    return [departments[name] for name in sorted(departments)]


def create_department(data, performed_by=None):
    require_fields(data, "name")
    name = parse_text(data["name"], "name", required=True)
    if Department.query.filter(Department.name == name).first():
        raise ConflictError("Department", "name", name)

    manager_id = parse_int(data.get("manager_id"), "manager_id")
    if manager_id is not None and db.session.get(Employee, manager_id) is None:
        raise NotFoundError(resource="Employee", resource_id=manager_id)

    department = Department(name=name, description=parse_text(data.get("description"), "description") or "",
                            manager_id=manager_id)
    db.session.add(department)
    db.session.flush()
    write_audit(entity_type="department", entity_id=department.id, action="create",
                performed_by=performed_by, changes={"name": name})
    db_commit()
    logger.info("Department %s created", name, extra={"actor_id": performed_by, "entity_type": "department"})
    return department.to_dict()
