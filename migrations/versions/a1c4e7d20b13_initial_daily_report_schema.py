"""Initial daily report schema: staff, customers, reports, visits, comments

Revision ID: a1c4e7d20b13
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "a1c4e7d20b13"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "staff_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("department", sa.String(100)),
        sa.Column("role", sa.String(20), nullable=False, server_default="staff"),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("staff_members.id", ondelete="RESTRICT")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('staff', 'manager')", name="ck_staff_members_role"),
        sa.CheckConstraint("manager_id IS NULL OR manager_id <> id", name="ck_staff_members_no_self_manager"),
    )
    op.create_index("ix_staff_members_email", "staff_members", ["email"], unique=True)
    op.create_index("ix_staff_members_manager_id", "staff_members", ["manager_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_name", sa.String(100), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("industry", sa.String(30)),
        sa.Column("phone", sa.String(20)),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.String(500)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_customers_company_name", "customers", ["company_name"])

    op.create_table(
        "daily_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff_members.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("problem", sa.Text()),
        sa.Column("plan", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("approver_id", sa.Integer(), sa.ForeignKey("staff_members.id", ondelete="RESTRICT")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("staff_id", "report_date", name="uq_daily_reports_staff_date"),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_daily_reports_status",
        ),
    )
    op.create_index("ix_daily_reports_staff_id", "daily_reports", ["staff_id"])
    op.create_index("ix_daily_reports_status", "daily_reports", ["status"])
    op.create_index("ix_daily_reports_staff_status", "daily_reports", ["staff_id", "status"])

    op.create_table(
        "visits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("daily_reports.id"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("visit_time", sa.Time(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_visits_report_id", "visits", ["report_id"])
    op.create_index("ix_visits_customer_id", "visits", ["customer_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("daily_reports.id"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("staff_members.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_report_id", "comments", ["report_id"])
    op.create_index("ix_comments_author_id", "comments", ["author_id"])


def downgrade():
    op.drop_index("ix_comments_author_id", table_name="comments")
    op.drop_index("ix_comments_report_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_visits_customer_id", table_name="visits")
    op.drop_index("ix_visits_report_id", table_name="visits")
    op.drop_table("visits")
    op.drop_index("ix_daily_reports_staff_status", table_name="daily_reports")
    op.drop_index("ix_daily_reports_status", table_name="daily_reports")
    op.drop_index("ix_daily_reports_staff_id", table_name="daily_reports")
    op.drop_table("daily_reports")
    op.drop_index("ix_customers_company_name", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_staff_members_manager_id", table_name="staff_members")
    op.drop_index("ix_staff_members_email", table_name="staff_members")
    op.drop_table("staff_members")
