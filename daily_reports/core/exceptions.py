"""
Platform-wide exception hierarchy.

Services raise these types; app-level handlers in
``daily_reports.utils.errors`` map each one to a status code and a stable
machine-readable error code. Blueprints never translate them by hand.

Usage:
    from daily_reports.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="DailyReport", resource_id=42)
    raise ValidationError("Invalid input", details={"plan": "must be <= 2000 chars"})
"""


class DomainError(Exception):
    """Base class for every expected, recoverable business error."""


class NotFoundError(DomainError):
    """Raised when a referenced report, staff member or customer does not exist.

    Only genuinely missing ids produce this error. A record that exists but
    is outside the actor's visibility raises ForbiddenError instead.

    Args:
        resource: Human-readable entity name (e.g. "DailyReport", "Customer").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ForbiddenError(DomainError):
    """Raised when the actor lacks visibility or transition rights.

    Args:
        actor_id: Acting staff member.
        operation: The denied operation name (e.g. "read", "approve").
        resource_id: Target entity id, logged but never echoed to clients.
    """

    def __init__(self, actor_id: int | None, operation: str, resource_id: int | None = None) -> None:
        self.actor_id = actor_id
        self.operation = operation
        self.resource_id = resource_id
        super().__init__(f"Staff {actor_id} is not allowed to {operation}")


class DuplicateDateError(DomainError):
    """Raised when (staff_id, report_date) already has a report."""

    def __init__(self, staff_id: int, report_date) -> None:
        self.staff_id = staff_id
        self.report_date = report_date
        super().__init__(f"A report for {report_date} already exists")


class EmptyVisitsError(DomainError):
    """Raised when a report would enter 'submitted' without any visit."""

    def __init__(self, report_id: int | None = None) -> None:
        self.report_id = report_id
        super().__init__("At least one visit record is required to submit a report")


class NotEditableError(DomainError):
    """Raised when report content is edited outside draft/rejected."""

    def __init__(self, report_id: int, status: str) -> None:
        self.report_id = report_id
        self.status = status
        super().__init__(f"Report {report_id} cannot be edited in status '{status}'")


class NotDeletableError(DomainError):
    """Raised when a report that is no longer a draft is deleted."""

    def __init__(self, report_id: int, status: str) -> None:
        self.report_id = report_id
        self.status = status
        super().__init__(f"Report {report_id} cannot be deleted in status '{status}'")


class InvalidTransitionError(DomainError):
    """Raised for any (status, event) pair outside the workflow table."""

    def __init__(self, event: str, current: str | None, report_id: int | None = None) -> None:
        self.event = event
        self.current_status = current
        self.report_id = report_id
        super().__init__(f"Cannot '{event}' a report in status '{current}'")


class ValidationError(DomainError):
    """Raised when input violates field-level constraints (length, format).

    Args:
        message: Human-readable summary.
        details: Field-level breakdown. Keys are field names; values are
                 error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(DomainError):
    """Raised when a write would break a uniqueness or in-use rule.

    Args:
        resource: Model name.
        field: The field or relation that conflicts.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class PersistenceError(Exception):
    """Unexpected storage failure, surfaced to clients as a generic 500."""
