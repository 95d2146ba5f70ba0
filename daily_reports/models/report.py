"""
Daily Sales Report Platform
Daily report aggregate models.

Models:
    - DailyReport: one report per (staff member, calendar date)
    - Visit:       customer visit record owned by a report
    - Comment:     append-only remark thread on a report

Architecture:
    StaffMember ──1:N──▶ DailyReport ──1:N──▶ Visit ──N:1──▶ Customer
                                     ──1:N──▶ Comment ──N:1──▶ StaffMember

Lifecycle states:
    DailyReport:  draft → submitted → approved
                  submitted → rejected → submitted

Children are written only through report_service (replace_visits,
delete_report_cascade). The relationships below are read-only views.
"""

from datetime import datetime, timezone
from enum import Enum

from daily_reports.models import db


# ── Constants ────────────────────────────────────────────────────────────────

class ReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


REPORT_STATUSES = frozenset(s.value for s in ReportStatus)
EDITABLE_STATUSES = frozenset({ReportStatus.DRAFT.value, ReportStatus.REJECTED.value})

PROBLEM_MAX_LENGTH = 2000
PLAN_MAX_LENGTH = 2000
VISIT_CONTENT_MAX_LENGTH = 1000
COMMENT_MAX_LENGTH = 1000


class DailyReport(db.Model):
    __tablename__ = "daily_reports"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(
        db.Integer, db.ForeignKey("staff_members.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    report_date = db.Column(db.Date, nullable=False)
    problem = db.Column(db.Text, nullable=True)
    plan = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ReportStatus.DRAFT.value, index=True)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approver_id = db.Column(
        db.Integer, db.ForeignKey("staff_members.id", ondelete="RESTRICT"), nullable=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("staff_id", "report_date", name="uq_daily_reports_staff_date"),
        db.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_daily_reports_status",
        ),
        db.Index("ix_daily_reports_staff_status", "staff_id", "status"),
    )

    owner = db.relationship("StaffMember", foreign_keys=[staff_id])
    approver = db.relationship("StaffMember", foreign_keys=[approver_id])
    visits = db.relationship(
        "Visit",
        viewonly=True,
        order_by=lambda: [Visit.visit_time, Visit.id],
    )
    comments = db.relationship(
        "Comment",
        viewonly=True,
        order_by=lambda: [Comment.created_at.desc(), Comment.id.desc()],
    )

    @property
    def status_enum(self) -> ReportStatus:
        return ReportStatus(self.status)

    def to_dict(self, include_children: bool = False) -> dict:
        data = {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_name": self.owner.name if self.owner else None,
            "department": self.owner.department if self.owner else None,
            "report_date": self.report_date.isoformat() if self.report_date else None,
            "problem": self.problem,
            "plan": self.plan,
            "status": self.status,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "approver_id": self.approver_id,
            "approver_name": self.approver.name if self.approver else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_children:
            data["visits"] = [v.to_dict() for v in self.visits]
            data["comments"] = [c.to_dict() for c in self.comments]
        return data

    def __repr__(self):
        return f"<DailyReport {self.id}: staff={self.staff_id} {self.report_date} [{self.status}]>"


class Visit(db.Model):
    __tablename__ = "visits"

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("daily_reports.id"), nullable=False, index=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    visit_time = db.Column(db.Time, nullable=False, comment="Time of day; date comes from the parent report")
    content = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    customer = db.relationship("Customer")

    def to_dict(self):
        return {
            "id": self.id,
            "report_id": self.report_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.customer_name if self.customer else None,
            "company_name": self.customer.company_name if self.customer else None,
            "visit_time": self.visit_time.strftime("%H:%M") if self.visit_time else None,
            "content": self.content,
        }

    def __repr__(self):
        return f"<Visit {self.id}: report={self.report_id} {self.visit_time}>"


class Comment(db.Model):
    """
    Remark on a daily report.

    Append-only: the authenticated surface exposes no update or delete.
    Rows disappear only with their report (draft deletion).
    """

    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("daily_reports.id"), nullable=False, index=True)
    author_id = db.Column(
        db.Integer, db.ForeignKey("staff_members.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    author = db.relationship("StaffMember")

    def to_dict(self):
        return {
            "id": self.id,
            "report_id": self.report_id,
            "author_id": self.author_id,
            "author_name": self.author.name if self.author else None,
            "author_role": self.author.role if self.author else None,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Comment {self.id}: report={self.report_id} author={self.author_id}>"
