"""
Training Compliance Tracker
Employee directory models.

Models:
    - Employee: every person who can take training or act on the workflow
      (employee, manager, hr_admin).
    - Department: a registered department; the directory also treats any
      department named on an employee as existing.

Reporting line: Employee.manager_id → Employee.id.  "Manager of X" means
``X.manager_id == manager.id``; department membership alone does not grant
approval rights.
"""

from datetime import datetime, timezone
from enum import Enum

from training_tracker.models import db


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR_ADMIN = "hr_admin"


ROLES = frozenset(r.value for r in Role)


class Employee(db.Model):
    """A person in the organisation.  Owned by the directory, never by the workflow."""

    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    first_name = db.Column(db.String(100), default="")
    last_name = db.Column(db.String(100), default="")
    role = db.Column(db.String(20), nullable=False, default=Role.EMPLOYEE.value, index=True,
                     comment="employee | manager | hr_admin")
    department = db.Column(db.String(100), nullable=True, index=True)
    employee_code = db.Column(db.String(50), unique=True, nullable=True,
                              comment="HR personnel number")
    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    manager = db.relationship("Employee", remote_side=[id], backref="direct_reports")

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.username or f"Employee #{self.id}"

    def is_manager_of(self, other: "Employee | None") -> bool:
        """True when ``other`` reports directly to this employee."""
        return other is not None and self.id is not None and other.manager_id == self.id

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "role": self.role,
            "department": self.department,
            "employee_code": self.employee_code,
            "manager_id": self.manager_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Employee #{self.id} {self.username or ''} ({self.role})>"


class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, default="")
    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {"name": self.name, "description": self.description or "", "manager": self.manager_id}

    def __repr__(self):
        return f"<Department {self.name}>"
