"""
Comment thread tests.

Tests cover:
  - Owner and direct manager may comment; outsiders may not
  - Content is stripped and length-checked
  - Listing is newest first
"""

import pytest

from daily_reports.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from daily_reports.services import comment_service


@pytest.fixture()
def report(team, make_report):
    return make_report(team.b, status="submitted", customer=team.customer)


class TestPostComment:
    def test_owner_comments(self, team, report):
        comment = comment_service.post_comment(team.b.id, report.id, "  Will call again  ")
        assert comment.content == "Will call again"
        assert comment.author_id == team.b.id
        assert comment.created_at is not None

    def test_manager_comments(self, team, report):
        comment = comment_service.post_comment(team.a.id, report.id, "Good work")
        assert comment.author_id == team.a.id

    def test_comment_on_approved_report(self, team, make_report):
        approved = make_report(team.c, status="approved", customer=team.customer, approver=team.a)
        assert comment_service.post_comment(team.a.id, approved.id, "Noted").id

    def test_outsider_cannot_comment(self, team, report):
        with pytest.raises(ForbiddenError):
            comment_service.post_comment(team.d.id, report.id, "Hello")

    @pytest.mark.parametrize("content", ["", "   ", None, "x" * 1001])
    def test_invalid_content(self, team, report, content):
        with pytest.raises(ValidationError):
            comment_service.post_comment(team.b.id, report.id, content)

    def test_max_length_accepted(self, team, report):
        assert len(comment_service.post_comment(team.b.id, report.id, "x" * 1000).content) == 1000

    def test_missing_report(self, team):
        with pytest.raises(NotFoundError):
            comment_service.post_comment(team.b.id, 9999, "Hello")


class TestListComments:
    def test_newest_first(self, team, report):
        first = comment_service.post_comment(team.b.id, report.id, "first")
        second = comment_service.post_comment(team.a.id, report.id, "second")
        third = comment_service.post_comment(team.b.id, report.id, "third")

        ids = [c.id for c in comment_service.list_comments(team.b.id, report.id)]
        assert ids == [third.id, second.id, first.id]

    def test_outsider_cannot_list(self, team, report):
        with pytest.raises(ForbiddenError):
            comment_service.list_comments(team.e.id, report.id)
