"""Shared utility functions.

get_or_404:      raising lookup used by services (NotFoundError, not abort)
commit_or_raise: commit the session, rolling back and wrapping failures
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from daily_reports.core.exceptions import NotFoundError, PersistenceError
from daily_reports.models import db

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(context: str, **log_extra):
    """Commit the current SQLAlchemy session.

    On failure the session is rolled back, the error is logged with full
    context and a PersistenceError is raised so the caller sees a generic
    internal error. IntegrityErrors that carry business meaning must be
    caught by the caller *before* reaching this helper.

    Usage::

        commit_or_raise("post_comment", report_id=report.id)
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error during %s", context, extra=log_extra)
        raise PersistenceError(context) from exc
