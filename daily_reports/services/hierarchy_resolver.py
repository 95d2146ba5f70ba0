"""
Hierarchy Resolver: the set of staff ids an actor may see.

    manager      → {self} ∪ direct subordinates
    anyone else  → {self}

Results are cached in-process per actor for HIERARCHY_CACHE_TTL seconds
(default 300). identity_service invalidates the affected entries on every
manager_id / role change, so a stale entry only survives for writes that
happen outside this process.

Queries that list data also AND ``visible_staff_clause()`` into their SQL,
and single-member checks go through ``is_visible()``. Both re-check the
live ``manager_id`` column, so a stale cache can narrow a result but never
widen it.
"""

import logging
import threading
import time

from flask import current_app, has_app_context
from sqlalchemy import and_, or_, select

from daily_reports.core.exceptions import NotFoundError
from daily_reports.models import db
from daily_reports.models.staff import StaffMember, StaffRole

logger = logging.getLogger(__name__)

CACHE_TTL = 300  # 5 minutes

# Cache key: actor staff id
_allowed_cache: dict[int, tuple[float, frozenset[int]]] = {}
_cache_lock = threading.Lock()


def _ttl() -> int:
    if has_app_context():
        return current_app.config.get("HIERARCHY_CACHE_TTL", CACHE_TTL)
    return CACHE_TTL


def _get_cached(actor_id: int) -> frozenset[int] | None:
    with _cache_lock:
        entry = _allowed_cache.get(actor_id)
        if entry is None:
            return None
        cached_at, ids = entry
        if time.monotonic() - cached_at > _ttl():
            del _allowed_cache[actor_id]
            return None
        return ids


def _set_cached(actor_id: int, ids: frozenset[int]) -> None:
    with _cache_lock:
        _allowed_cache[actor_id] = (time.monotonic(), ids)


def invalidate(staff_id: int | None) -> None:
    """Drop the cached set for one actor (no-op for None)."""
    if staff_id is None:
        return
    with _cache_lock:
        _allowed_cache.pop(staff_id, None)


def invalidate_all() -> None:
    with _cache_lock:
        _allowed_cache.clear()


def _resolve(actor_id: int) -> frozenset[int]:
    role = db.session.execute(
        select(StaffMember.role).where(StaffMember.id == actor_id)
    ).scalar_one_or_none()
    if role is None:
        raise NotFoundError(resource="StaffMember", resource_id=actor_id)
    if role != StaffRole.MANAGER.value:
        return frozenset({actor_id})

    subordinate_ids = db.session.execute(
        select(StaffMember.id).where(StaffMember.manager_id == actor_id)
    ).scalars().all()
    return frozenset({actor_id, *subordinate_ids})


def allowed_staff_ids(actor_id: int) -> frozenset[int]:
    """Return the ids whose reports *actor_id* may see.

    Raises:
        NotFoundError: the actor does not exist.
    """
    cached = _get_cached(actor_id)
    if cached is not None:
        return cached

    ids = _resolve(actor_id)
    _set_cached(actor_id, ids)
    logger.debug("Resolved %d visible staff ids", len(ids), extra={"actor_id": actor_id})
    return ids


def subordinate_ids(manager_id: int) -> frozenset[int]:
    """Direct subordinates only (the actor's own id excluded)."""
    return allowed_staff_ids(manager_id) - {manager_id}


def visible_staff_clause(actor_id: int, column):
    """SQL filter limiting *column* (a staff-id column) to the actor's view.

    Combines the cached allowed set with a live check against
    ``staff_members.manager_id``. The caller must join StaffMember on
    *column*.
    """
    allowed = allowed_staff_ids(actor_id)
    return and_(
        column.in_(allowed),
        or_(StaffMember.id == actor_id, StaffMember.manager_id == actor_id),
    )


def is_visible(actor_id: int, staff_id: int) -> bool:
    """True if *staff_id* is in the actor's view, confirmed against live rows.

    The cached set can only veto; a positive answer always comes from the
    current ``manager_id`` column.
    """
    if staff_id not in allowed_staff_ids(actor_id):
        return False
    stmt = select(StaffMember.id).where(
        StaffMember.id == staff_id,
        visible_staff_clause(actor_id, StaffMember.id),
    )
    return db.session.execute(stmt).first() is not None
