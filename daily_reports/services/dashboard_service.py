"""
Dashboard queries: read-only summaries for the landing page.

pending_approvals:  submitted reports from the manager's direct
                    subordinates, oldest submission first
dashboard_summary:  today's report, own counts per status and, for
                    managers, the number of reports awaiting approval
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select

from daily_reports.models import db
from daily_reports.models.report import DailyReport, ReportStatus
from daily_reports.models.staff import StaffMember
from daily_reports.services import hierarchy_resolver, identity_service


def _pending_stmt(manager_id: int):
    return (
        select(DailyReport)
        .join(StaffMember, StaffMember.id == DailyReport.staff_id)
        .where(
            hierarchy_resolver.visible_staff_clause(manager_id, DailyReport.staff_id),
            StaffMember.manager_id == manager_id,
            DailyReport.staff_id != manager_id,
            DailyReport.status == ReportStatus.SUBMITTED.value,
        )
    )


def pending_approvals(actor_id: int) -> list[DailyReport]:
    """Empty for non-managers."""
    actor = identity_service.get_staff(actor_id)
    if not actor.is_manager:
        return []
    stmt = _pending_stmt(actor_id).order_by(DailyReport.submitted_at, DailyReport.id)
    return list(db.session.execute(stmt).scalars())


def dashboard_summary(actor_id: int, today: date) -> dict:
    actor = identity_service.get_staff(actor_id)

    today_report = db.session.execute(
        select(DailyReport).where(DailyReport.staff_id == actor_id, DailyReport.report_date == today)
    ).scalar_one_or_none()

    rows = db.session.execute(
        select(DailyReport.status, func.count(DailyReport.id))
        .where(DailyReport.staff_id == actor_id)
        .group_by(DailyReport.status)
    ).all()
    counts = {status.value: 0 for status in ReportStatus}
    counts.update({status: n for status, n in rows})

    summary = {
        "staff": actor.to_dict(),
        "today": today.isoformat(),
        "today_report": today_report.to_dict() if today_report else None,
        "own_counts": counts,
        "pending_approval_count": None,
    }
    if actor.is_manager:
        summary["pending_approval_count"] = db.session.execute(
            select(func.count()).select_from(_pending_stmt(actor_id).subquery())
        ).scalar_one()
    return summary
