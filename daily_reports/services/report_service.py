"""
Daily Report Service: the report aggregate and its workflow executors.

Aggregate operations:
    create_report          optimistic insert, (staff_id, report_date) unique
    replace_content        problem/plan + full visit set, draft/rejected only
    replace_visits         delete-all-then-insert of a report's visits
    delete_report          drafts only, via delete_report_cascade
    get_report             gate-checked read of the full aggregate
    list_reports           hierarchy-scoped, filtered, paginated

Workflow executors:
    submit_report          draft → submitted / rejected → submitted
    approve_report         submitted → approved
    reject_report          submitted → rejected (+ optional comment)

Single-visit operations (parent must be draft/rejected):
    list_visits            gate-checked read of one report's visits
    add_visit / update_visit / delete_visit

Concurrency:
    Every state-dependent write is a conditional UPDATE/DELETE guarded by
    ``status`` (and, for submit, by the existence of a visit). A zero
    rowcount means another request got there first; the report is re-read
    and the matching domain error is raised. The unique constraint is the
    only duplicate-date check.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from daily_reports.core.exceptions import (
    DuplicateDateError,
    EmptyVisitsError,
    ForbiddenError,
    InvalidTransitionError,
    NotDeletableError,
    NotEditableError,
    NotFoundError,
    PersistenceError,
)
from daily_reports.models import db
from daily_reports.models.customer import Customer
from daily_reports.models.report import (
    EDITABLE_STATUSES,
    Comment,
    DailyReport,
    ReportStatus,
    Visit,
)
from daily_reports.models.staff import StaffMember
from daily_reports.services import hierarchy_resolver, identity_service
from daily_reports.services.access_gate import Operation, load_and_authorize
from daily_reports.services.report_workflow import (
    ReportEvent,
    Transition,
    plan_transition,
    submit_event_for,
)
from daily_reports.utils.helpers import get_or_404
from daily_reports.utils.validators import (
    VisitInput,
    validate_optional_comment,
    validate_report_text,
    validate_visits,
)

logger = logging.getLogger(__name__)

_DUPLICATE_MARKERS = ("uq_daily_reports_staff_date", "daily_reports.staff_id, daily_reports.report_date")


# ── Private helpers ──────────────────────────────────────────────────────────


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_duplicate_date(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _DUPLICATE_MARKERS)


def _check_customers(visits: tuple[VisitInput, ...]) -> None:
    wanted = {v.customer_id for v in visits}
    if not wanted:
        return
    found = set(db.session.execute(select(Customer.id).where(Customer.id.in_(wanted))).scalars())
    missing = sorted(wanted - found)
    if missing:
        raise NotFoundError(resource="Customer", resource_id=missing[0])


def _current_status(report_id: int) -> str | None:
    return db.session.execute(
        select(DailyReport.status).where(DailyReport.id == report_id)
    ).scalar_one_or_none()


def _log_transition(report_id: int, actor_id: int, transition: Transition) -> None:
    source = transition.source.value if transition.source is not None else None
    logger.info(
        "Report %s: %s → %s (%s)",
        report_id, source, transition.target.value, transition.event.value,
        extra={
            "report_id": report_id,
            "actor_id": actor_id,
            "event_type": transition.event.value,
            "from_status": source,
            "to_status": transition.target.value,
        },
    )


def _guarded_update(report_id: int, source: ReportStatus, values: dict, *extra_where) -> bool:
    """UPDATE daily_reports ... WHERE id=? AND status=source. True if a row changed."""
    stmt = (
        update(DailyReport)
        .where(DailyReport.id == report_id, DailyReport.status == source.value, *extra_where)
        .values(updated_at=_now(), **values)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def _lost_race(report_id: int, event: ReportEvent) -> InvalidTransitionError:
    db.session.rollback()
    return InvalidTransitionError(event.value, _current_status(report_id), report_id)


# ── Aggregate operations ─────────────────────────────────────────────────────


def create_report(
    actor_id: int,
    report_date: date,
    problem: str | None = None,
    plan: str | None = None,
    visits=(),
    as_draft: bool = True,
) -> DailyReport:
    """Create the actor's report for *report_date*.

    Raises:
        DuplicateDateError: a report already exists for that date.
        EmptyVisitsError:   as_draft=False with no visits.
        NotFoundError:      an unknown customer id, or an unknown actor.
    """
    identity_service.get_staff(actor_id)
    problem, plan = validate_report_text(problem, plan)
    visits = validate_visits(visits)

    event = ReportEvent.CREATE_DRAFT if as_draft else ReportEvent.CREATE_SUBMITTED
    transition = plan_transition(None, event)
    if transition.requires_visits and not visits:
        raise EmptyVisitsError()
    _check_customers(visits)

    report = DailyReport(
        staff_id=actor_id,
        report_date=report_date,
        problem=problem,
        plan=plan,
        status=transition.target.value,
        submitted_at=_now() if transition.stamps_submitted else None,
    )
    try:
        db.session.add(report)
        db.session.flush()
        _insert_visits(report.id, visits)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if _is_duplicate_date(exc):
            logger.info(
                "Duplicate report date %s", report_date,
                extra={"actor_id": actor_id, "staff_id": actor_id},
            )
            raise DuplicateDateError(actor_id, report_date) from None
        logger.exception("Integrity error creating report", extra={"actor_id": actor_id})
        raise PersistenceError("create_report") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error creating report", extra={"actor_id": actor_id})
        raise PersistenceError("create_report") from exc

    _log_transition(report.id, actor_id, transition)
    return report


def _insert_visits(report_id: int, visits: tuple[VisitInput, ...]) -> None:
    db.session.add_all([
        Visit(
            report_id=report_id,
            customer_id=v.customer_id,
            visit_time=v.visit_time,
            content=v.content,
        )
        for v in visits
    ])


def replace_visits(report_id: int, visits) -> None:
    """Swap the report's whole visit set. Runs in the caller's transaction."""
    visits = validate_visits(visits)
    _check_customers(visits)
    db.session.execute(
        delete(Visit).where(Visit.report_id == report_id).execution_options(synchronize_session=False)
    )
    _insert_visits(report_id, visits)


def replace_content(
    actor_id: int,
    report_id: int,
    problem: str | None,
    plan: str | None,
    visits,
) -> DailyReport:
    """Overwrite problem, plan and all visits of a draft or rejected report.

    The status guard and the visit swap share one transaction; on any
    failure the previous content stays intact.
    """
    grant = load_and_authorize(actor_id, report_id, Operation.EDIT)
    problem, plan = validate_report_text(problem, plan)
    visits = validate_visits(visits)
    _check_customers(visits)

    try:
        stmt = (
            update(DailyReport)
            .where(DailyReport.id == report_id, DailyReport.status.in_(EDITABLE_STATUSES))
            .values(problem=problem, plan=plan, updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        if db.session.execute(stmt).rowcount != 1:
            db.session.rollback()
            raise NotEditableError(report_id, _current_status(report_id))
        replace_visits(report_id, visits)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error replacing report content", extra={"report_id": report_id})
        raise PersistenceError("replace_content") from exc

    logger.info(
        "Report %s content replaced (%d visits)", report_id, len(visits),
        extra={"report_id": report_id, "actor_id": actor_id},
    )
    return grant.report


def delete_report_cascade(report_id: int) -> None:
    """Remove a draft report with its visits and comments in one transaction.

    Raises NotDeletableError if the report left 'draft' concurrently.
    """
    try:
        db.session.execute(
            delete(Visit).where(Visit.report_id == report_id).execution_options(synchronize_session=False)
        )
        db.session.execute(
            delete(Comment).where(Comment.report_id == report_id).execution_options(synchronize_session=False)
        )
        result = db.session.execute(
            delete(DailyReport)
            .where(DailyReport.id == report_id, DailyReport.status == ReportStatus.DRAFT.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise NotDeletableError(report_id, _current_status(report_id))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error deleting report", extra={"report_id": report_id})
        raise PersistenceError("delete_report") from exc


def delete_report(actor_id: int, report_id: int) -> None:
    grant = load_and_authorize(actor_id, report_id, Operation.DELETE)
    if grant.report.status != ReportStatus.DRAFT.value:
        raise NotDeletableError(report_id, grant.report.status)
    # Detach so the bulk DELETE below is not shadowed by a stale identity
    db.session.expunge(grant.report)
    delete_report_cascade(report_id)
    logger.info("Report %s deleted", report_id, extra={"report_id": report_id, "actor_id": actor_id})


def get_report(actor_id: int, report_id: int) -> DailyReport:
    """Gate-checked read. Never mutates anything."""
    return load_and_authorize(actor_id, report_id, Operation.READ).report


def list_reports(
    actor_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    status: str | None = None,
    staff_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[DailyReport], int]:
    """Reports the actor may see, newest date first. Returns (items, total)."""
    if staff_id is not None and not hierarchy_resolver.is_visible(actor_id, staff_id):
        logger.warning(
            "Access denied: list_reports for staff %s", staff_id,
            extra={"actor_id": actor_id, "staff_id": staff_id, "event_type": "list_reports"},
        )
        raise ForbiddenError(actor_id, "list_reports", None)

    stmt = (
        select(DailyReport)
        .join(StaffMember, StaffMember.id == DailyReport.staff_id)
        .where(hierarchy_resolver.visible_staff_clause(actor_id, DailyReport.staff_id))
    )
    if start_date is not None:
        stmt = stmt.where(DailyReport.report_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(DailyReport.report_date <= end_date)
    if status is not None:
        stmt = stmt.where(DailyReport.status == status)
    if staff_id is not None:
        stmt = stmt.where(DailyReport.staff_id == staff_id)

    total = db.session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    items = db.session.execute(
        stmt.order_by(DailyReport.report_date.desc(), DailyReport.id.desc()).limit(limit).offset(offset)
    ).scalars().all()
    return list(items), total


# ── Workflow executors ───────────────────────────────────────────────────────


def submit_report(actor_id: int, report_id: int) -> DailyReport:
    """Owner submits a draft or resubmits a rejected report.

    Raises:
        InvalidTransitionError: report is not draft/rejected (or changed concurrently).
        EmptyVisitsError:       report owns no visits at the time of the update.
    """
    grant = load_and_authorize(actor_id, report_id, Operation.SUBMIT)
    current = grant.report.status_enum
    event = submit_event_for(current)
    transition = plan_transition(current, event)

    try:
        changed = _guarded_update(
            report_id,
            transition.source,
            {
                "status": transition.target.value,
                "submitted_at": _now(),
                "approved_at": None,
                "approver_id": None,
            },
            exists().where(Visit.report_id == report_id),
        )
        if not changed:
            db.session.rollback()
            latest = _current_status(report_id)
            if latest != transition.source.value:
                raise InvalidTransitionError(event.value, latest, report_id)
            raise EmptyVisitsError(report_id)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error submitting report", extra={"report_id": report_id})
        raise PersistenceError("submit_report") from exc

    _log_transition(report_id, actor_id, transition)
    return grant.report


def approve_report(actor_id: int, report_id: int) -> DailyReport:
    """Direct manager approves a submitted report."""
    grant = load_and_authorize(actor_id, report_id, Operation.APPROVE)
    transition = plan_transition(grant.report.status_enum, ReportEvent.APPROVE)

    try:
        changed = _guarded_update(
            report_id,
            transition.source,
            {"status": transition.target.value, "approved_at": _now(), "approver_id": actor_id},
        )
        if not changed:
            raise _lost_race(report_id, ReportEvent.APPROVE)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error approving report", extra={"report_id": report_id})
        raise PersistenceError("approve_report") from exc

    _log_transition(report_id, actor_id, transition)
    return grant.report


def reject_report(actor_id: int, report_id: int, comment: str | None = None) -> DailyReport:
    """Direct manager rejects a submitted report, optionally with a comment.

    The status change and the comment are committed together.
    """
    grant = load_and_authorize(actor_id, report_id, Operation.REJECT)
    comment = validate_optional_comment(comment)
    transition = plan_transition(grant.report.status_enum, ReportEvent.REJECT)

    try:
        changed = _guarded_update(
            report_id,
            transition.source,
            {"status": transition.target.value, "approved_at": None, "approver_id": None},
        )
        if not changed:
            raise _lost_race(report_id, ReportEvent.REJECT)
        if comment:
            db.session.add(Comment(report_id=report_id, author_id=actor_id, content=comment))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error rejecting report", extra={"report_id": report_id})
        raise PersistenceError("reject_report") from exc

    _log_transition(report_id, actor_id, transition)
    return grant.report


# ── Single-visit operations ──────────────────────────────────────────────────


def _lock_editable(report_id: int) -> None:
    """Touch the parent report only while it is draft/rejected.

    Runs inside the caller's transaction, so the visit write that follows
    commits only if the report was still editable at that moment.
    """
    stmt = (
        update(DailyReport)
        .where(DailyReport.id == report_id, DailyReport.status.in_(EDITABLE_STATUSES))
        .values(updated_at=_now())
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        db.session.rollback()
        raise NotEditableError(report_id, _current_status(report_id))


def _load_visit_for_edit(actor_id: int, visit_id: int) -> Visit:
    visit = get_or_404(Visit, visit_id, label="Visit")
    load_and_authorize(actor_id, visit.report_id, Operation.EDIT)
    return visit


def list_visits(actor_id: int, report_id: int) -> list[Visit]:
    """Visits of a readable report, in time order."""
    load_and_authorize(actor_id, report_id, Operation.READ)
    stmt = select(Visit).where(Visit.report_id == report_id).order_by(Visit.visit_time, Visit.id)
    return list(db.session.execute(stmt).scalars())


def add_visit(actor_id: int, report_id: int, visit: VisitInput) -> Visit:
    load_and_authorize(actor_id, report_id, Operation.EDIT)
    (visit,) = validate_visits((visit,))
    _check_customers((visit,))

    row = Visit(
        report_id=report_id,
        customer_id=visit.customer_id,
        visit_time=visit.visit_time,
        content=visit.content,
    )
    try:
        _lock_editable(report_id)
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error adding visit", extra={"report_id": report_id})
        raise PersistenceError("add_visit") from exc

    logger.info("Visit %s added", row.id, extra={"report_id": report_id, "actor_id": actor_id})
    return row


def update_visit(actor_id: int, visit_id: int, visit: VisitInput) -> Visit:
    row = _load_visit_for_edit(actor_id, visit_id)
    (visit,) = validate_visits((visit,))
    _check_customers((visit,))
    report_id = row.report_id

    try:
        _lock_editable(report_id)
        row.customer_id = visit.customer_id
        row.visit_time = visit.visit_time
        row.content = visit.content
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error updating visit", extra={"report_id": report_id})
        raise PersistenceError("update_visit") from exc

    logger.info("Visit %s updated", visit_id, extra={"report_id": report_id, "actor_id": actor_id})
    return row


def delete_visit(actor_id: int, visit_id: int) -> None:
    row = _load_visit_for_edit(actor_id, visit_id)
    report_id = row.report_id

    try:
        _lock_editable(report_id)
        db.session.delete(row)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error deleting visit", extra={"report_id": report_id})
        raise PersistenceError("delete_visit") from exc

    logger.info("Visit %s deleted", visit_id, extra={"report_id": report_id, "actor_id": actor_id})
