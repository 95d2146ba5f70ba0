"""
Shared pytest fixtures for the Daily Sales Report Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_staff / make_customer / make_report: factories (flush + commit)
    - team: two managers, each with direct subordinates, plus a customer
    - auth_headers: bearer-token headers for a staff member
"""

from datetime import date, datetime, time, timezone

import pytest

from daily_reports import create_app
from daily_reports.models import db as _db
from daily_reports.models.customer import Customer
from daily_reports.models.report import DailyReport, ReportStatus, Visit
from daily_reports.models.staff import StaffMember
from daily_reports.services.hierarchy_resolver import invalidate_all
from daily_reports.services.jwt_service import generate_access_token


def _drop_all_without_fk_checks():
    """SQLite checks RESTRICT per row during DROP TABLE; switch FKs off for teardown."""
    sqlite = _db.engine.dialect.name == "sqlite"
    if sqlite:
        with _db.engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
    try:
        _db.drop_all()
    finally:
        if sqlite:
            with _db.engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA foreign_keys=ON")


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _drop_all_without_fk_checks()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Ids are reused after recreate; cached subordinate sets must not leak.
        invalidate_all()
        yield
        invalidate_all()
        _db.session.rollback()
        _drop_all_without_fk_checks()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_staff():
    counter = {"n": 0}

    def _make(name=None, role="staff", manager=None, department="Sales"):
        counter["n"] += 1
        member = StaffMember(
            name=name or f"Staff {counter['n']}",
            email=f"staff{counter['n']}@example.com",
            role=role,
            department=department,
            manager_id=manager.id if manager is not None else None,
        )
        _db.session.add(member)
        _db.session.commit()
        return member

    return _make


@pytest.fixture()
def make_customer():
    def _make(company_name="Acme Corp", customer_name="Taro Yamada", **kwargs):
        customer = Customer(company_name=company_name, customer_name=customer_name, **kwargs)
        _db.session.add(customer)
        _db.session.commit()
        return customer

    return _make


@pytest.fixture()
def make_report():
    """Insert a report directly in any status (bypasses the workflow)."""

    def _make(owner, report_date=date(2026, 10, 1), status=ReportStatus.DRAFT, customer=None,
              visits=1, approver=None):
        report = DailyReport(staff_id=owner.id, report_date=report_date, status=ReportStatus(status).value)
        if report.status != ReportStatus.DRAFT.value:
            report.submitted_at = datetime.now(timezone.utc)
        if approver is not None:
            report.approver_id = approver.id
        _db.session.add(report)
        _db.session.flush()
        for i in range(visits if customer is not None else 0):
            _db.session.add(Visit(
                report_id=report.id,
                customer_id=customer.id,
                visit_time=time(9 + i, 0),
                content=f"Visit {i + 1}",
            ))
        _db.session.commit()
        return report

    return _make


class Team:
    """A: manager of B and C.  D: manager of E.  F: unassigned staff."""

    def __init__(self, make_staff, make_customer):
        self.a = make_staff("Manager A", role="manager")
        self.b = make_staff("Sales B", manager=self.a)
        self.c = make_staff("Sales C", manager=self.a)
        self.d = make_staff("Manager D", role="manager")
        self.e = make_staff("Sales E", manager=self.d)
        self.f = make_staff("Sales F")
        self.customer = make_customer()


@pytest.fixture()
def team(make_staff, make_customer):
    return Team(make_staff, make_customer)


@pytest.fixture()
def auth_headers():
    def _headers(member):
        token = generate_access_token(member.id, member.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
