"""
Daily Report Workflow: lifecycle transition rules.

    (new)      ──CREATE_DRAFT──────▶ draft
    (new)      ──CREATE_SUBMITTED──▶ submitted        requires ≥1 visit
    draft      ──SUBMIT────────────▶ submitted        requires ≥1 visit
    rejected   ──RESUBMIT──────────▶ submitted        requires ≥1 visit
    submitted  ──APPROVE───────────▶ approved         stamps approver / approved_at
    submitted  ──REJECT────────────▶ rejected         optional comment, same txn

'approved' is terminal. Every other (status, event) pair raises
InvalidTransitionError. This module only decides legality; the status
guarded UPDATEs that apply a transition live in report_service.

Usage:
    from daily_reports.services.report_workflow import ReportEvent, plan_transition

    t = plan_transition(report.status_enum, ReportEvent.APPROVE)
    t.target  # ReportStatus.APPROVED
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from daily_reports.core.exceptions import InvalidTransitionError
from daily_reports.models.report import ReportStatus


class ReportEvent(str, Enum):
    CREATE_DRAFT = "create_draft"
    CREATE_SUBMITTED = "create_submitted"
    SUBMIT = "submit"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class Transition:
    """Outcome of a legal (status, event) pair."""

    source: ReportStatus | None
    event: ReportEvent
    target: ReportStatus
    requires_visits: bool = False
    stamps_submitted: bool = False
    stamps_approval: bool = False
    clears_approval: bool = False
    accepts_comment: bool = False


def plan_transition(current: ReportStatus | None, event: ReportEvent) -> Transition:
    """Return the transition for *event* fired in *current*.

    ``current`` is None for a report that does not exist yet.

    Raises:
        InvalidTransitionError: the pair is not in the table.
    """
    match (current, event):
        case (None, ReportEvent.CREATE_DRAFT):
            return Transition(None, event, ReportStatus.DRAFT)
        case (None, ReportEvent.CREATE_SUBMITTED):
            return Transition(
                None, event, ReportStatus.SUBMITTED,
                requires_visits=True, stamps_submitted=True,
            )
        case (ReportStatus.DRAFT, ReportEvent.SUBMIT) | (ReportStatus.REJECTED, ReportEvent.RESUBMIT):
            return Transition(
                current, event, ReportStatus.SUBMITTED,
                requires_visits=True, stamps_submitted=True, clears_approval=True,
            )
        case (ReportStatus.SUBMITTED, ReportEvent.APPROVE):
            return Transition(current, event, ReportStatus.APPROVED, stamps_approval=True)
        case (ReportStatus.SUBMITTED, ReportEvent.REJECT):
            return Transition(
                current, event, ReportStatus.REJECTED,
                clears_approval=True, accepts_comment=True,
            )
        case _:
            raise InvalidTransitionError(
                getattr(event, "value", event), getattr(current, "value", current),
            )


def submit_event_for(current: ReportStatus) -> ReportEvent:
    """Pick SUBMIT or RESUBMIT for the owner's submit action."""
    return ReportEvent.RESUBMIT if current == ReportStatus.REJECTED else ReportEvent.SUBMIT


def sources_for(event: ReportEvent) -> frozenset[ReportStatus]:
    """All statuses from which *event* is legal."""
    legal = set()
    for status in ReportStatus:
        try:
            plan_transition(status, event)
        except InvalidTransitionError:
            continue
        legal.add(status)
    return frozenset(legal)


def is_terminal(status: ReportStatus) -> bool:
    return not any(_is_legal(status, e) for e in ReportEvent)


def _is_legal(status: ReportStatus, event: ReportEvent) -> bool:
    try:
        plan_transition(status, event)
    except InvalidTransitionError:
        return False
    return True


def available_events(report, actor) -> list[str]:
    """Events the actor could fire on the report right now (UI hints).

    Combines workflow legality with the ownership/manager rules of the
    access gate. Visit count is not checked here.
    """
    status = report.status_enum
    owner = report.owner
    events: list[str] = []
    if actor.id == report.staff_id:
        submit = submit_event_for(status)
        if _is_legal(status, submit):
            events.append(submit.value)
    elif actor.is_manager and owner is not None and owner.manager_id == actor.id:
        for event in (ReportEvent.APPROVE, ReportEvent.REJECT):
            if _is_legal(status, event):
                events.append(event.value)
    return events
