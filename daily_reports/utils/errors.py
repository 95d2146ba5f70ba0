"""Standardised API error responses.

Usage
-----
    from daily_reports.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Report not found")
    return api_error(E.VALIDATION_INVALID, "Invalid input", details={"plan": "..."})

``register_error_handlers(app)`` maps the domain exceptions from
``daily_reports.core.exceptions`` onto the same JSON body shape.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from daily_reports.core.exceptions import (
    ConflictError,
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

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_DUPLICATE_DATE = "ERR_CONFLICT_DUPLICATE_DATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    NOT_EDITABLE = "ERR_NOT_EDITABLE"
    NOT_DELETABLE = "ERR_NOT_DELETABLE"
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"

    # Business rule – HTTP 422
    EMPTY_VISITS = "ERR_EMPTY_VISITS"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_DUPLICATE_DATE: 409,
    E.CONFLICT_STATE: 409,
    E.NOT_EDITABLE: 409,
    E.NOT_DELETABLE: 409,
    E.INVALID_TRANSITION: 409,
    E.EMPTY_VISITS: 422,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (per-field validation messages, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app):
    """Map domain exceptions to JSON responses for every blueprint."""

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ForbiddenError)
    def _forbidden(e: ForbiddenError):
        # Logged where it is raised
        return api_error(E.FORBIDDEN, "You do not have permission to perform this action")

    @app.errorhandler(DuplicateDateError)
    def _duplicate_date(e: DuplicateDateError):
        return api_error(E.CONFLICT_DUPLICATE_DATE, str(e))

    @app.errorhandler(EmptyVisitsError)
    def _empty_visits(e: EmptyVisitsError):
        return api_error(E.EMPTY_VISITS, str(e))

    @app.errorhandler(NotEditableError)
    def _not_editable(e: NotEditableError):
        return api_error(E.NOT_EDITABLE, str(e), details={"status": e.status})

    @app.errorhandler(NotDeletableError)
    def _not_deletable(e: NotDeletableError):
        return api_error(E.NOT_DELETABLE, str(e), details={"status": e.status})

    @app.errorhandler(InvalidTransitionError)
    def _invalid_transition(e: InvalidTransitionError):
        return api_error(
            E.INVALID_TRANSITION, str(e),
            details={"event": e.event, "status": e.current_status},
        )

    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(ConflictError)
    def _conflict(e: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(e), details={"field": e.field})

    @app.errorhandler(PersistenceError)
    def _persistence(e: PersistenceError):
        # Context was logged where the failure happened.
        return api_error(E.DATABASE, "Internal server error")

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        if not request.path.startswith("/api/"):
            return e
        code = {
            400: E.VALIDATION_INVALID,
            401: E.UNAUTHORIZED,
            403: E.FORBIDDEN,
            404: E.NOT_FOUND,
        }.get(e.code, E.INTERNAL)
        return api_error(code, e.description or e.name, status=e.code)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error(E.INTERNAL, "Internal server error")
