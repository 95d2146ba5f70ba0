"""
Comment Thread: append-only remarks on a daily report.

Anyone who may read a report may comment on it. The author is always the
acting staff member and the timestamp is assigned server-side. There is no
update or delete.
"""

import logging

from sqlalchemy import select

from daily_reports.models import db
from daily_reports.models.report import Comment
from daily_reports.services.access_gate import Operation, load_and_authorize
from daily_reports.utils.helpers import commit_or_raise
from daily_reports.utils.validators import validate_comment_content

logger = logging.getLogger(__name__)


def post_comment(actor_id: int, report_id: int, content: str) -> Comment:
    """Append a comment (1..1000 chars after stripping)."""
    load_and_authorize(actor_id, report_id, Operation.COMMENT)
    content = validate_comment_content(content)

    comment = Comment(report_id=report_id, author_id=actor_id, content=content)
    db.session.add(comment)
    commit_or_raise("post_comment", report_id=report_id, actor_id=actor_id)

    logger.info(
        "Comment %s posted on report %s", comment.id, report_id,
        extra={"report_id": report_id, "actor_id": actor_id},
    )
    return comment


def list_comments(actor_id: int, report_id: int) -> list[Comment]:
    """Newest first."""
    load_and_authorize(actor_id, report_id, Operation.READ)
    stmt = (
        select(Comment)
        .where(Comment.report_id == report_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return list(db.session.execute(stmt).scalars())
