"""
Identity & Role Model: staff lookups and staff-master administration.

Read side:
    get_staff, role_of, manager_of, list_staff, get_staff_for

Write side (managers only):
    create_staff, update_staff, delete_staff

Hierarchy rules enforced on every write:
    - manager_id must reference an existing member whose role is 'manager'
    - nobody is their own manager
    - depth is exactly two: the referenced manager has no manager, and a
      member who has subordinates cannot be given a manager
    - a manager with subordinates cannot be demoted to 'staff'
    - email is unique
    - members owning reports, comments, approvals or subordinates are never
      hard-deleted (ConflictError)

Any change to manager_id or role invalidates the Hierarchy Resolver entries
of the member, the old manager and the new manager after commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import exists, func, or_, select

from daily_reports.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from daily_reports.models import db
from daily_reports.models.report import Comment, DailyReport
from daily_reports.models.staff import StaffMember, StaffRole
from daily_reports.services import hierarchy_resolver
from daily_reports.utils.helpers import commit_or_raise, get_or_404

logger = logging.getLogger(__name__)


# ── Read side ─────────────────────────────────────────────────────────────────


def get_staff(staff_id: int) -> StaffMember:
    return get_or_404(StaffMember, staff_id, label="StaffMember")


def role_of(staff_id: int) -> StaffRole:
    return get_staff(staff_id).role_enum


def manager_of(staff_id: int) -> int | None:
    return get_staff(staff_id).manager_id


def _forbidden(actor_id: int, operation: str, staff_id: int | None = None) -> ForbiddenError:
    logger.warning(
        "Access denied: %s on staff %s", operation, staff_id,
        extra={"actor_id": actor_id, "staff_id": staff_id, "event_type": operation},
    )
    return ForbiddenError(actor_id, operation, staff_id)


def _require_manager(actor_id: int, operation: str) -> StaffMember:
    actor = get_staff(actor_id)
    if not actor.is_manager:
        raise _forbidden(actor_id, operation)
    return actor


def list_staff(actor_id: int) -> list[StaffMember]:
    """Members visible to the actor: self, plus direct subordinates for managers."""
    stmt = (
        select(StaffMember)
        .where(hierarchy_resolver.visible_staff_clause(actor_id, StaffMember.id))
        .order_by(StaffMember.id)
    )
    return list(db.session.execute(stmt).scalars())


def list_unassigned_staff(actor_id: int) -> list[StaffMember]:
    """Staff-role members without a manager (candidates a manager may adopt)."""
    _require_manager(actor_id, "list_unassigned_staff")
    stmt = (
        select(StaffMember)
        .where(StaffMember.manager_id.is_(None), StaffMember.role == StaffRole.STAFF.value)
        .order_by(StaffMember.id)
    )
    return list(db.session.execute(stmt).scalars())


def get_staff_for(actor_id: int, staff_id: int) -> StaffMember:
    """Fetch a member the actor is allowed to see."""
    target = get_staff(staff_id)
    if not hierarchy_resolver.is_visible(actor_id, target.id):
        raise _forbidden(actor_id, "read_staff", staff_id)
    return target


# ── Invariant checks ──────────────────────────────────────────────────────────


def _has_subordinates(staff_id: int) -> bool:
    return db.session.execute(
        select(exists().where(StaffMember.manager_id == staff_id))
    ).scalar()


def _check_email_free(email: str, exclude_id: int | None = None) -> None:
    stmt = select(StaffMember.id).where(func.lower(StaffMember.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(StaffMember.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise ConflictError("StaffMember", "email", email)


def _check_manager_assignment(member_id: int | None, manager_id: int | None) -> None:
    if manager_id is None:
        return
    if member_id is not None and manager_id == member_id:
        raise ValidationError("Invalid manager", details={"manager_id": "a member cannot manage themselves"})

    manager = db.session.get(StaffMember, manager_id)
    if manager is None:
        raise ValidationError("Invalid manager", details={"manager_id": f"staff {manager_id} does not exist"})
    if not manager.is_manager:
        raise ValidationError("Invalid manager", details={"manager_id": "referenced member is not a manager"})
    if manager.manager_id is not None:
        raise ValidationError(
            "Invalid manager",
            details={"manager_id": "referenced manager reports to another manager"},
        )
    if member_id is not None and _has_subordinates(member_id):
        raise ValidationError(
            "Invalid manager",
            details={"manager_id": "a member with subordinates cannot have a manager"},
        )


def _can_administer(actor_id: int, target: StaffMember) -> bool:
    """Visible to the actor, or an unassigned staff member (both read live)."""
    if hierarchy_resolver.is_visible(actor_id, target.id):
        return True
    return db.session.execute(
        select(exists().where(
            StaffMember.id == target.id,
            StaffMember.manager_id.is_(None),
            StaffMember.role == StaffRole.STAFF.value,
        ))
    ).scalar()


# ── Write side ────────────────────────────────────────────────────────────────


def create_staff(
    actor_id: int,
    *,
    name: str,
    email: str,
    role: str = StaffRole.STAFF.value,
    department: str | None = None,
    manager_id: int | None = None,
) -> StaffMember:
    """Create a staff member. Only managers may do this."""
    _require_manager(actor_id, "create_staff")
    role = StaffRole(role).value
    _check_email_free(email)
    _check_manager_assignment(None, manager_id)

    member = StaffMember(
        name=name,
        email=email,
        role=role,
        department=department,
        manager_id=manager_id,
    )
    db.session.add(member)
    commit_or_raise("create_staff", actor_id=actor_id)

    hierarchy_resolver.invalidate(manager_id)
    logger.info(
        "Staff member created: id=%s role=%s manager=%s", member.id, role, manager_id,
        extra={"actor_id": actor_id, "staff_id": member.id},
    )
    return member


def update_staff(actor_id: int, staff_id: int, changes: dict) -> StaffMember:
    """Apply a partial update (keys: name, email, department, role, manager_id)."""
    _require_manager(actor_id, "update_staff")
    target = get_staff(staff_id)
    if not _can_administer(actor_id, target):
        raise _forbidden(actor_id, "update_staff", staff_id)

    old_manager_id = target.manager_id
    old_role = target.role

    if "email" in changes and changes["email"].lower() != target.email.lower():
        _check_email_free(changes["email"], exclude_id=target.id)

    new_role = StaffRole(changes.get("role", target.role)).value
    if new_role == StaffRole.STAFF.value and old_role == StaffRole.MANAGER.value and _has_subordinates(target.id):
        raise ConflictError(
            "StaffMember", "role", new_role,
            message="A manager with subordinates cannot be demoted",
        )

    if "manager_id" in changes and changes["manager_id"] != old_manager_id:
        _check_manager_assignment(target.id, changes["manager_id"])

    for field in ("name", "email", "department", "manager_id"):
        if field in changes:
            setattr(target, field, changes[field])
    target.role = new_role
    commit_or_raise("update_staff", actor_id=actor_id, staff_id=staff_id)

    if target.manager_id != old_manager_id or target.role != old_role:
        hierarchy_resolver.invalidate(old_manager_id)
        hierarchy_resolver.invalidate(target.manager_id)
        hierarchy_resolver.invalidate(target.id)
        logger.info(
            "Staff hierarchy changed: id=%s manager %s→%s role %s→%s",
            target.id, old_manager_id, target.manager_id, old_role, target.role,
            extra={"actor_id": actor_id, "staff_id": target.id},
        )
    return target


def delete_staff(actor_id: int, staff_id: int) -> None:
    """Hard-delete a member that owns nothing. Nobody deletes themselves."""
    _require_manager(actor_id, "delete_staff")
    if actor_id == staff_id:
        raise _forbidden(actor_id, "delete_self", staff_id)
    target = get_staff(staff_id)
    if not _can_administer(actor_id, target):
        raise _forbidden(actor_id, "delete_staff", staff_id)

    if _has_subordinates(staff_id):
        raise ConflictError("StaffMember", "subordinates", message="Staff member still has subordinates")
    in_use = db.session.execute(
        select(or_(
            exists().where(or_(DailyReport.staff_id == staff_id, DailyReport.approver_id == staff_id)),
            exists().where(Comment.author_id == staff_id),
        ))
    ).scalar()
    if in_use:
        raise ConflictError("StaffMember", "reports", message="Staff member is referenced by daily reports")

    manager_id = target.manager_id
    db.session.delete(target)
    commit_or_raise("delete_staff", actor_id=actor_id, staff_id=staff_id)

    hierarchy_resolver.invalidate(manager_id)
    hierarchy_resolver.invalidate(staff_id)
    logger.info("Staff member deleted: id=%s", staff_id, extra={"actor_id": actor_id, "staff_id": staff_id})
