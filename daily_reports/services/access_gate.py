"""
Access Control Gate: who may do what to a single report.

Rules, first match wins:
    1. owner            → READ, COMMENT, EDIT, DELETE, SUBMIT
                          (never APPROVE / REJECT, managers included)
    2. direct manager   → READ, COMMENT, APPROVE, REJECT
    3. anyone else      → ForbiddenError

Status legality is not checked here: approving an already approved report
passes the gate and fails in the workflow with InvalidTransitionError.
Missing reports or actors raise NotFoundError; existing but invisible
reports always raise ForbiddenError.

Lists never call this per row; they filter in SQL through
hierarchy_resolver.visible_staff_clause().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from daily_reports.core.exceptions import ForbiddenError
from daily_reports.models.report import DailyReport
from daily_reports.models.staff import StaffMember
from daily_reports.utils.helpers import get_or_404

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    READ = "read"
    COMMENT = "comment"
    EDIT = "edit"
    DELETE = "delete"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


OWNER_OPERATIONS = frozenset({
    Operation.READ, Operation.COMMENT, Operation.EDIT, Operation.DELETE, Operation.SUBMIT,
})
MANAGER_OPERATIONS = frozenset({
    Operation.READ, Operation.COMMENT, Operation.APPROVE, Operation.REJECT,
})


@dataclass(frozen=True)
class AccessGrant:
    actor: StaffMember
    report: DailyReport
    operation: Operation
    as_owner: bool


def _deny(actor: StaffMember, report: DailyReport, operation: Operation, reason: str):
    logger.warning(
        "Access denied: %s on report %s (%s)", operation.value, report.id, reason,
        extra={"actor_id": actor.id, "report_id": report.id, "event_type": operation.value},
    )
    raise ForbiddenError(actor.id, operation.value, report.id)


def authorize(actor: StaffMember, report: DailyReport, operation: Operation) -> AccessGrant:
    """Decide whether *actor* may perform *operation* on *report*."""
    if report.staff_id == actor.id:
        if operation in OWNER_OPERATIONS:
            return AccessGrant(actor, report, operation, as_owner=True)
        _deny(actor, report, operation, "self-approval")

    owner = report.owner
    if actor.is_manager and owner is not None and owner.manager_id == actor.id:
        if operation in MANAGER_OPERATIONS:
            return AccessGrant(actor, report, operation, as_owner=False)
        _deny(actor, report, operation, "owner-only operation")

    _deny(actor, report, operation, "outside hierarchy")


def load_and_authorize(actor_id: int, report_id: int, operation: Operation) -> AccessGrant:
    """Fetch actor and report by id, then authorize."""
    actor = get_or_404(StaffMember, actor_id, label="StaffMember")
    report = get_or_404(DailyReport, report_id, label="DailyReport")
    return authorize(actor, report, operation)
