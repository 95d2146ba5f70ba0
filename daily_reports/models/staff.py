"""
Daily Sales Report Platform
Staff master model.

Models:
    - StaffMember: a salesperson or manager; managers own a flat team of
      direct subordinates via ``manager_id``.

Hierarchy:
    StaffMember(manager) ──1:N──▶ StaffMember(staff)

    The graph is a forest of depth two. A member with a manager never has
    subordinates, and a manager referenced by ``manager_id`` never has a
    manager of their own. identity_service enforces this on every write.
"""

from datetime import datetime, timezone
from enum import Enum

from daily_reports.models import db


class StaffRole(str, Enum):
    STAFF = "staff"
    MANAGER = "manager"


STAFF_ROLES = frozenset(r.value for r in StaffRole)


class StaffMember(db.Model):
    __tablename__ = "staff_members"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    department = db.Column(db.String(100), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=StaffRole.STAFF.value)
    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("staff_members.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint("role IN ('staff', 'manager')", name="ck_staff_members_role"),
        db.CheckConstraint("manager_id IS NULL OR manager_id <> id", name="ck_staff_members_no_self_manager"),
    )

    manager = db.relationship("StaffMember", remote_side=[id], foreign_keys=[manager_id])

    @property
    def role_enum(self) -> StaffRole:
        return StaffRole(self.role)

    @property
    def is_manager(self) -> bool:
        return self.role == StaffRole.MANAGER.value

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "department": self.department,
            "role": self.role,
            "manager_id": self.manager_id,
            "manager_name": self.manager.name if self.manager else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<StaffMember {self.id}: {self.name} ({self.role})>"
