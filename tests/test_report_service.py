"""
Report aggregate & workflow executor tests (service layer).

Tests cover:
  - create_report: draft / submitted, duplicate date, empty visits, unknown customer
  - replace_content: round-trip, status guard, rollback keeps old visits
  - delete_report: drafts only, cascade removes children
  - submit / resubmit / approve / reject executors and their timestamps
  - get_report read idempotence, list_reports scoping + filters
  - single-visit add / update / delete / list under the parent status guard
  - competing writes committed between the gate check and the guarded UPDATE
"""

from datetime import date, time

import pytest
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError

from daily_reports.core.exceptions import (
    DuplicateDateError,
    EmptyVisitsError,
    ForbiddenError,
    InvalidTransitionError,
    NotDeletableError,
    NotEditableError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from daily_reports.models import db
from daily_reports.models.report import Comment, DailyReport, Visit
from daily_reports.services import report_service
from daily_reports.utils.validators import VisitInput

DAY = date(2026, 10, 5)


def _visit(customer, hh=10, content="Product demo"):
    return VisitInput(customer_id=customer.id, visit_time=time(hh, 0), content=content)


def _count(model, **filters):
    stmt = select(func.count()).select_from(model)
    for key, value in filters.items():
        stmt = stmt.where(getattr(model, key) == value)
    return db.session.execute(stmt).scalar_one()


def _interleave(monkeypatch, target, stmt):
    """Commit *stmt* from "another request" right before report_service.<target> runs."""
    original = getattr(report_service, target)

    def _wrapped(*args, **kwargs):
        db.session.execute(stmt)
        db.session.commit()
        return original(*args, **kwargs)

    monkeypatch.setattr(report_service, target, _wrapped)


def _set_status(report_id, status):
    return update(DailyReport).where(DailyReport.id == report_id).values(status=status)


# ═════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════

class TestCreateReport:
    def test_create_draft_without_visits(self, team):
        report = report_service.create_report(team.b.id, DAY)
        assert report.status == "draft"
        assert report.submitted_at is None
        assert report.staff_id == team.b.id

    def test_create_submitted_with_visits(self, team):
        report = report_service.create_report(
            team.b.id, DAY, problem="Price", plan="Follow up",
            visits=[_visit(team.customer)], as_draft=False,
        )
        assert report.status == "submitted"
        assert report.submitted_at is not None
        assert [v.content for v in report.visits] == ["Product demo"]

    def test_create_submitted_without_visits(self, team):
        with pytest.raises(EmptyVisitsError):
            report_service.create_report(team.b.id, DAY, as_draft=False)
        assert _count(DailyReport) == 0

    def test_duplicate_date(self, team):
        report_service.create_report(team.b.id, DAY)
        with pytest.raises(DuplicateDateError):
            report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        assert _count(DailyReport, staff_id=team.b.id) == 1
        assert _count(Visit) == 0

    def test_same_date_different_staff(self, team):
        report_service.create_report(team.b.id, DAY)
        report_service.create_report(team.c.id, DAY)
        assert _count(DailyReport) == 2

    def test_unknown_customer(self, team):
        bogus = VisitInput(customer_id=9999, visit_time=time(9, 0), content="x")
        with pytest.raises(NotFoundError):
            report_service.create_report(team.b.id, DAY, visits=[bogus])

    def test_blank_text_becomes_null(self, team):
        report = report_service.create_report(team.b.id, DAY, problem="   ", plan="")
        assert report.problem is None
        assert report.plan is None

    def test_problem_too_long(self, team):
        with pytest.raises(ValidationError) as exc:
            report_service.create_report(team.b.id, DAY, problem="x" * 2001)
        assert "problem" in exc.value.details

    def test_visit_content_limits(self, team):
        with pytest.raises(ValidationError):
            report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer, content="x" * 1001)])
        with pytest.raises(ValidationError):
            report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer, content="  ")])


# ═════════════════════════════════════════════════════════════════════════
# REPLACE CONTENT
# ═════════════════════════════════════════════════════════════════════════

class TestReplaceContent:
    def test_round_trip(self, team, make_customer):
        other = make_customer(company_name="Beta Ltd")
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])

        report_service.replace_content(
            team.b.id, report.id, "New problem", "New plan",
            [_visit(other, hh=15, content="Second"), _visit(team.customer, hh=9, content="First")],
        )
        fresh = report_service.get_report(team.b.id, report.id)
        assert fresh.problem == "New problem"
        assert fresh.plan == "New plan"
        assert [(v.visit_time, v.content) for v in fresh.visits] == [
            (time(9, 0), "First"),
            (time(15, 0), "Second"),
        ]
        assert _count(Visit, report_id=report.id) == 2

    def test_rejected_report_is_editable(self, team, make_report):
        report = make_report(team.b, status="rejected", customer=team.customer)
        report_service.replace_content(team.b.id, report.id, None, None, [_visit(team.customer, hh=11)])
        assert _count(Visit, report_id=report.id) == 1

    @pytest.mark.parametrize("status", ["submitted", "approved"])
    def test_not_editable(self, team, make_report, status):
        report = make_report(team.b, status=status, customer=team.customer)
        with pytest.raises(NotEditableError) as exc:
            report_service.replace_content(team.b.id, report.id, "p", "p", [_visit(team.customer)])
        assert exc.value.status == status
        assert _count(Visit, report_id=report.id) == 1

    def test_unknown_customer_keeps_old_visits(self, team):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        bogus = VisitInput(customer_id=9999, visit_time=time(9, 0), content="x")
        with pytest.raises(NotFoundError):
            report_service.replace_content(team.b.id, report.id, None, None, [bogus])
        assert _count(Visit, report_id=report.id) == 1

    def test_failure_after_visit_delete_rolls_back(self, team, monkeypatch):
        report = report_service.create_report(team.b.id, DAY, problem="Old", visits=[_visit(team.customer)])
        # Let the bad id through to the INSERT so the FK fails after the DELETE ran
        monkeypatch.setattr(report_service, "_check_customers", lambda visits: None)
        bogus = VisitInput(customer_id=9999, visit_time=time(9, 0), content="x")

        with pytest.raises(PersistenceError):
            report_service.replace_content(team.b.id, report.id, "New", None, [bogus])

        visits = db.session.execute(select(Visit).where(Visit.report_id == report.id)).scalars().all()
        assert [(v.customer_id, v.content) for v in visits] == [(team.customer.id, "Product demo")]
        assert db.session.get(DailyReport, report.id).problem == "Old"

    def test_submitted_between_check_and_update(self, team, monkeypatch):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        _interleave(monkeypatch, "_check_customers", _set_status(report.id, "submitted"))

        with pytest.raises(NotEditableError) as exc:
            report_service.replace_content(team.b.id, report.id, "p", "p", [_visit(team.customer, hh=16)])
        assert exc.value.status == "submitted"
        assert db.session.get(DailyReport, report.id).problem is None
        assert [v.visit_time for v in report_service.list_visits(team.b.id, report.id)] == [time(10, 0)]

    def test_manager_cannot_edit(self, team):
        report = report_service.create_report(team.b.id, DAY)
        with pytest.raises(ForbiddenError):
            report_service.replace_content(team.a.id, report.id, None, None, [])


# ═════════════════════════════════════════════════════════════════════════
# DELETE
# ═════════════════════════════════════════════════════════════════════════

class TestDeleteReport:
    def test_delete_draft_cascades(self, team):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        db.session.add(Comment(report_id=report.id, author_id=team.b.id, content="note"))
        db.session.commit()
        report_id = report.id

        report_service.delete_report(team.b.id, report_id)

        assert _count(DailyReport) == 0
        assert _count(Visit) == 0
        assert _count(Comment) == 0
        with pytest.raises(NotFoundError):
            report_service.get_report(team.b.id, report_id)

    @pytest.mark.parametrize("status", ["submitted", "approved", "rejected"])
    def test_only_drafts(self, team, make_report, status):
        report = make_report(team.b, status=status, customer=team.customer)
        with pytest.raises(NotDeletableError):
            report_service.delete_report(team.b.id, report.id)
        assert _count(DailyReport) == 1

    def test_manager_cannot_delete(self, team):
        report = report_service.create_report(team.b.id, DAY)
        with pytest.raises(ForbiddenError):
            report_service.delete_report(team.a.id, report.id)

    def test_date_reusable_after_delete(self, team):
        report = report_service.create_report(team.b.id, DAY)
        report_service.delete_report(team.b.id, report.id)
        assert report_service.create_report(team.b.id, DAY).status == "draft"


# ═════════════════════════════════════════════════════════════════════════
# WORKFLOW EXECUTORS
# ═════════════════════════════════════════════════════════════════════════

class TestSubmit:
    def test_submit_draft(self, team):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        submitted = report_service.submit_report(team.b.id, report.id)
        assert submitted.status == "submitted"
        assert submitted.submitted_at is not None

    def test_submit_without_visits(self, team):
        report = report_service.create_report(team.b.id, DAY)
        with pytest.raises(EmptyVisitsError):
            report_service.submit_report(team.b.id, report.id)
        assert report_service.get_report(team.b.id, report.id).status == "draft"

    def test_resubmit_rejected_clears_approval_fields(self, team, make_report):
        report = make_report(team.b, status="rejected", customer=team.customer)
        first_submitted_at = report.submitted_at
        resubmitted = report_service.submit_report(team.b.id, report.id)
        assert resubmitted.status == "submitted"
        assert resubmitted.approver_id is None
        assert resubmitted.approved_at is None
        assert resubmitted.submitted_at >= first_submitted_at

    @pytest.mark.parametrize("status", ["submitted", "approved"])
    def test_submit_from_wrong_status(self, team, make_report, status):
        report = make_report(team.b, status=status, customer=team.customer)
        with pytest.raises(InvalidTransitionError):
            report_service.submit_report(team.b.id, report.id)

    def test_status_changed_before_update(self, team, make_report, monkeypatch):
        report = make_report(team.b, customer=team.customer)
        _interleave(monkeypatch, "_guarded_update", _set_status(report.id, "submitted"))
        with pytest.raises(InvalidTransitionError) as exc:
            report_service.submit_report(team.b.id, report.id)
        assert exc.value.current_status == "submitted"

    def test_visits_removed_before_update(self, team, make_report, monkeypatch):
        report = make_report(team.b, customer=team.customer)
        _interleave(monkeypatch, "_guarded_update", delete(Visit).where(Visit.report_id == report.id))
        with pytest.raises(EmptyVisitsError):
            report_service.submit_report(team.b.id, report.id)
        assert db.session.get(DailyReport, report.id).status == "draft"

    def test_manager_cannot_submit_for_subordinate(self, team, make_report):
        report = make_report(team.b, customer=team.customer)
        with pytest.raises(ForbiddenError):
            report_service.submit_report(team.a.id, report.id)


class TestApproveReject:
    def test_approve(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        approved = report_service.approve_report(team.a.id, report.id)
        assert approved.status == "approved"
        assert approved.approver_id == team.a.id
        assert approved.approved_at is not None

    def test_approve_twice(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        report_service.approve_report(team.a.id, report.id)
        with pytest.raises(InvalidTransitionError):
            report_service.approve_report(team.a.id, report.id)

    def test_approve_draft(self, team, make_report):
        report = make_report(team.b, customer=team.customer)
        with pytest.raises(InvalidTransitionError):
            report_service.approve_report(team.a.id, report.id)

    def test_other_manager_cannot_approve(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        with pytest.raises(ForbiddenError):
            report_service.approve_report(team.d.id, report.id)
        assert report_service.get_report(team.b.id, report.id).status == "submitted"

    def test_self_approval_by_manager(self, team, make_report):
        report = make_report(team.a, status="submitted", customer=team.customer)
        with pytest.raises(ForbiddenError):
            report_service.approve_report(team.a.id, report.id)

    def test_reject_with_comment(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        rejected = report_service.reject_report(team.a.id, report.id, "Add more detail")
        assert rejected.status == "rejected"
        assert [c.content for c in rejected.comments] == ["Add more detail"]
        assert rejected.comments[0].author_id == team.a.id

    def test_reject_without_comment(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        report_service.reject_report(team.a.id, report.id)
        assert _count(Comment, report_id=report.id) == 0

    def test_reject_approved_report(self, team, make_report):
        report = make_report(team.b, status="approved", customer=team.customer, approver=team.a)
        with pytest.raises(InvalidTransitionError):
            report_service.reject_report(team.a.id, report.id, "too late")
        assert _count(Comment) == 0

    def test_approve_loses_to_concurrent_reject(self, team, make_report, monkeypatch):
        report = make_report(team.b, status="submitted", customer=team.customer)
        _interleave(monkeypatch, "_guarded_update", _set_status(report.id, "rejected"))
        with pytest.raises(InvalidTransitionError) as exc:
            report_service.approve_report(team.a.id, report.id)
        assert exc.value.current_status == "rejected"
        fresh = db.session.get(DailyReport, report.id)
        assert fresh.status == "rejected"
        assert fresh.approver_id is None

    def test_reject_loses_to_concurrent_approve(self, team, make_report, monkeypatch):
        report = make_report(team.b, status="submitted", customer=team.customer)
        _interleave(monkeypatch, "_guarded_update", _set_status(report.id, "approved"))
        with pytest.raises(InvalidTransitionError) as exc:
            report_service.reject_report(team.a.id, report.id, "Needs numbers")
        assert exc.value.current_status == "approved"
        assert _count(Comment, report_id=report.id) == 0

    def test_commit_failure_is_persistence_error(self, team, make_report, monkeypatch):
        report = make_report(team.b, status="submitted", customer=team.customer)

        def _fail():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db.session, "commit", _fail)
        with pytest.raises(PersistenceError):
            report_service.approve_report(team.a.id, report.id)
        monkeypatch.undo()
        assert db.session.get(DailyReport, report.id).status == "submitted"

    def test_reject_comment_too_long(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        with pytest.raises(ValidationError):
            report_service.reject_report(team.a.id, report.id, "x" * 1001)
        assert report_service.get_report(team.b.id, report.id).status == "submitted"


# ═════════════════════════════════════════════════════════════════════════
# READ
# ═════════════════════════════════════════════════════════════════════════

class TestReadAndList:
    def test_get_is_idempotent(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        first = report_service.get_report(team.a.id, report.id).to_dict(include_children=True)
        second = report_service.get_report(team.a.id, report.id).to_dict(include_children=True)
        assert first == second

    def test_get_forbidden_for_other_manager(self, team, make_report):
        report = make_report(team.b, customer=team.customer)
        with pytest.raises(ForbiddenError):
            report_service.get_report(team.d.id, report.id)

    def test_list_scoped_to_hierarchy(self, team, make_report):
        make_report(team.a, date(2026, 10, 1))
        make_report(team.b, date(2026, 10, 2))
        make_report(team.c, date(2026, 10, 3))
        make_report(team.e, date(2026, 10, 4))

        items, total = report_service.list_reports(team.a.id)
        assert total == 3
        assert {r.staff_id for r in items} == {team.a.id, team.b.id, team.c.id}

        items, total = report_service.list_reports(team.b.id)
        assert total == 1
        assert items[0].staff_id == team.b.id

    def test_list_filters_and_paging(self, team, make_report):
        for day in range(1, 6):
            make_report(team.b, date(2026, 10, day), status="submitted" if day % 2 else "draft",
                        customer=team.customer)

        items, total = report_service.list_reports(team.a.id, status="submitted")
        assert total == 3

        items, total = report_service.list_reports(
            team.a.id, start_date=date(2026, 10, 2), end_date=date(2026, 10, 4),
        )
        assert total == 3
        assert [r.report_date.day for r in items] == [4, 3, 2]

        items, total = report_service.list_reports(team.a.id, limit=2, offset=2)
        assert total == 5
        assert [r.report_date.day for r in items] == [3, 2]

    def test_list_by_staff_id(self, team, make_report):
        make_report(team.b, date(2026, 10, 1))
        make_report(team.c, date(2026, 10, 1))
        items, total = report_service.list_reports(team.a.id, staff_id=team.c.id)
        assert total == 1
        assert items[0].staff_id == team.c.id

    def test_list_by_foreign_staff_id(self, team):
        with pytest.raises(ForbiddenError):
            report_service.list_reports(team.a.id, staff_id=team.e.id)


# ═════════════════════════════════════════════════════════════════════════
# SINGLE VISITS
# ═════════════════════════════════════════════════════════════════════════

class TestSingleVisit:
    def test_add_to_draft(self, team):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        added = report_service.add_visit(team.b.id, report.id, _visit(team.customer, hh=8, content=" Early call "))
        assert added.id is not None
        assert added.content == "Early call"
        assert [v.visit_time for v in report_service.list_visits(team.b.id, report.id)] == [time(8, 0), time(10, 0)]

    def test_add_to_rejected(self, team, make_report):
        report = make_report(team.b, status="rejected", customer=team.customer)
        report_service.add_visit(team.b.id, report.id, _visit(team.customer, hh=14))
        assert _count(Visit, report_id=report.id) == 2

    @pytest.mark.parametrize("status", ["submitted", "approved"])
    def test_add_to_locked_report(self, team, make_report, status):
        report = make_report(team.b, status=status, customer=team.customer)
        with pytest.raises(NotEditableError) as exc:
            report_service.add_visit(team.b.id, report.id, _visit(team.customer, hh=14))
        assert exc.value.status == status
        assert _count(Visit, report_id=report.id) == 1

    def test_add_unknown_customer(self, team):
        report = report_service.create_report(team.b.id, DAY)
        with pytest.raises(NotFoundError):
            report_service.add_visit(team.b.id, report.id, VisitInput(9999, time(9, 0), "x"))
        assert _count(Visit, report_id=report.id) == 0

    def test_manager_cannot_add(self, team):
        report = report_service.create_report(team.b.id, DAY)
        with pytest.raises(ForbiddenError):
            report_service.add_visit(team.a.id, report.id, _visit(team.customer))

    def test_add_after_concurrent_submit(self, team, monkeypatch):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        _interleave(monkeypatch, "_lock_editable", _set_status(report.id, "submitted"))
        with pytest.raises(NotEditableError):
            report_service.add_visit(team.b.id, report.id, _visit(team.customer, hh=15))
        assert _count(Visit, report_id=report.id) == 1

    def test_update(self, team, make_customer):
        other = make_customer(company_name="Beta Ltd")
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer)])
        visit_id = report_service.list_visits(team.b.id, report.id)[0].id

        report_service.update_visit(team.b.id, visit_id, _visit(other, hh=11, content="Moved"))
        fresh = db.session.get(Visit, visit_id)
        assert (fresh.customer_id, fresh.visit_time, fresh.content) == (other.id, time(11, 0), "Moved")

    def test_update_locked_report(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer)
        visit_id = report_service.list_visits(team.b.id, report.id)[0].id
        with pytest.raises(NotEditableError):
            report_service.update_visit(team.b.id, visit_id, _visit(team.customer, hh=16, content="Changed"))
        assert db.session.get(Visit, visit_id).content == "Visit 1"

    def test_delete(self, team):
        report = report_service.create_report(team.b.id, DAY, visits=[_visit(team.customer), _visit(team.customer, hh=11)])
        first = report_service.list_visits(team.b.id, report.id)[0]
        report_service.delete_visit(team.b.id, first.id)
        assert [v.visit_time for v in report_service.list_visits(team.b.id, report.id)] == [time(11, 0)]

    def test_delete_locked_report(self, team, make_report):
        report = make_report(team.b, status="approved", customer=team.customer, approver=team.a)
        visit_id = report_service.list_visits(team.b.id, report.id)[0].id
        with pytest.raises(NotEditableError):
            report_service.delete_visit(team.b.id, visit_id)
        assert _count(Visit, report_id=report.id) == 1

    def test_manager_cannot_delete(self, team, make_report):
        report = make_report(team.b, customer=team.customer)
        visit_id = report_service.list_visits(team.b.id, report.id)[0].id
        with pytest.raises(ForbiddenError):
            report_service.delete_visit(team.a.id, visit_id)

    def test_unknown_visit(self, team):
        with pytest.raises(NotFoundError):
            report_service.update_visit(team.b.id, 9999, _visit(team.customer))

    def test_list_readable_by_direct_manager_only(self, team, make_report):
        report = make_report(team.b, status="submitted", customer=team.customer, visits=2)
        assert len(report_service.list_visits(team.a.id, report.id)) == 2
        with pytest.raises(ForbiddenError):
            report_service.list_visits(team.d.id, report.id)
