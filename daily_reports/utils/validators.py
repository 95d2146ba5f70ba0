"""
Input validation for request payloads.

Two layers:
    parse_*      JSON dict → typed input objects (used by blueprints)
    validate_*   field rules on typed values (used by services, so direct
                 service callers get the same guarantees)

Every failure raises ValidationError with a per-field ``details`` dict.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time

from email_validator import EmailNotValidError, validate_email

from daily_reports.core.exceptions import ValidationError
from daily_reports.models.customer import INDUSTRIES
from daily_reports.models.report import (
    COMMENT_MAX_LENGTH,
    PLAN_MAX_LENGTH,
    PROBLEM_MAX_LENGTH,
    REPORT_STATUSES,
    VISIT_CONTENT_MAX_LENGTH,
    ReportStatus,
)
from daily_reports.models.staff import STAFF_ROLES

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_PHONE_RE = re.compile(r"^[0-9-]+$")

NAME_MAX_LENGTH = 100
COMPANY_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255
DEPARTMENT_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 20
ADDRESS_MAX_LENGTH = 500


@dataclass(frozen=True)
class VisitInput:
    """One visit line as supplied by the client."""

    customer_id: int
    visit_time: time
    content: str


@dataclass(frozen=True)
class ReportInput:
    report_date: date
    problem: str | None
    plan: str | None
    visits: tuple[VisitInput, ...]
    as_draft: bool = True


# ── Primitive parsers ─────────────────────────────────────────────────────────


def parse_iso_date(value, field: str = "report_date") -> date:
    """Strict ``YYYY-MM-DD`` parsing."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date", details={field: "required (YYYY-MM-DD)"})
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Invalid date", details={field: "must be YYYY-MM-DD"}) from None


def parse_visit_time(value, field: str = "visit_time") -> time:
    """Strict ``HH:MM`` (24h) parsing."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValidationError("Invalid time", details={field: "required (HH:MM)"})
    m = _TIME_RE.match(value.strip())
    if not m:
        raise ValidationError("Invalid time", details={field: "must be HH:MM"})
    return time(int(m.group(1)), int(m.group(2)))


def parse_positive_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError("Invalid id", details={field: "must be a positive integer"})
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid id", details={field: "must be a positive integer"}) from None
    if number <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("Invalid id", details={field: "must be a positive integer"})
    return number


def _optional_text(value, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Invalid input", details={field: "must be a string"})
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValidationError("Invalid input", details={field: f"must be at most {max_length} characters"})
    return value


def _required_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid input", details={field: "required"})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError("Invalid input", details={field: f"must be at most {max_length} characters"})
    return value


# ── Report content ────────────────────────────────────────────────────────────


def validate_report_text(problem: str | None, plan: str | None) -> tuple[str | None, str | None]:
    """Normalise problem/plan: blanks become None, lengths capped."""
    return (
        _optional_text(problem, "problem", PROBLEM_MAX_LENGTH),
        _optional_text(plan, "plan", PLAN_MAX_LENGTH),
    )


def validate_visits(visits) -> tuple[VisitInput, ...]:
    """Check every visit line; returns them normalised (content stripped)."""
    checked = []
    for idx, visit in enumerate(visits or ()):
        prefix = f"visits[{idx}]"
        if not isinstance(visit, VisitInput):
            raise ValidationError("Invalid visit", details={prefix: "malformed visit"})
        content = _required_text(visit.content, f"{prefix}.content", VISIT_CONTENT_MAX_LENGTH)
        if not isinstance(visit.visit_time, time):
            raise ValidationError("Invalid visit", details={f"{prefix}.visit_time": "must be HH:MM"})
        customer_id = parse_positive_int(visit.customer_id, f"{prefix}.customer_id")
        checked.append(VisitInput(customer_id=customer_id, visit_time=visit.visit_time, content=content))
    return tuple(checked)


def validate_comment_content(content) -> str:
    return _required_text(content, "content", COMMENT_MAX_LENGTH)


def validate_optional_comment(content) -> str | None:
    """Reject-reason style comment: may be absent, capped when present."""
    return _optional_text(content, "comment", COMMENT_MAX_LENGTH)


def _parse_visit_item(item, prefix: str) -> VisitInput:
    if not isinstance(item, dict):
        raise ValidationError("Invalid visit", details={prefix.rstrip(".") or "body": "must be an object"})
    return VisitInput(
        customer_id=parse_positive_int(item.get("customer_id"), f"{prefix}customer_id"),
        visit_time=parse_visit_time(item.get("visit_time"), f"{prefix}visit_time"),
        content=_required_text(item.get("content"), f"{prefix}content", VISIT_CONTENT_MAX_LENGTH),
    )


def parse_visits_payload(raw) -> tuple[VisitInput, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError("Invalid input", details={"visits": "must be a list"})
    return tuple(_parse_visit_item(item, f"visits[{idx}].") for idx, item in enumerate(raw))


def parse_visit_payload(data) -> VisitInput:
    """Body of a single-visit add/update."""
    return _parse_visit_item(data, "")


def parse_report_payload(data: dict, *, require_date: bool = True) -> ReportInput:
    """Parse a create/replace body.

    ``status`` may be ``draft`` (default) or ``submitted``; other values are
    rejected because approval state is never client-settable.
    """
    status = data.get("status") or ReportStatus.DRAFT.value
    if status not in (ReportStatus.DRAFT.value, ReportStatus.SUBMITTED.value):
        raise ValidationError("Invalid status", details={"status": "must be 'draft' or 'submitted'"})

    report_date = parse_iso_date(data.get("report_date")) if require_date else None
    problem, plan = validate_report_text(data.get("problem"), data.get("plan"))
    return ReportInput(
        report_date=report_date,
        problem=problem,
        plan=plan,
        visits=parse_visits_payload(data.get("visits")),
        as_draft=status == ReportStatus.DRAFT.value,
    )


def parse_status_filter(value) -> str | None:
    if not value:
        return None
    if value not in REPORT_STATUSES:
        raise ValidationError("Invalid status", details={"status": f"must be one of {sorted(REPORT_STATUSES)}"})
    return value


# ── Staff master ──────────────────────────────────────────────────────────────


def normalise_email(value, field: str = "email") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid email", details={field: "required"})
    if len(value.strip()) > EMAIL_MAX_LENGTH:
        raise ValidationError("Invalid email", details={field: f"must be at most {EMAIL_MAX_LENGTH} characters"})
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError("Invalid email", details={field: str(e)}) from None


def parse_staff_payload(data: dict, *, partial: bool = False) -> dict:
    """Return only the fields present (all required ones when not partial)."""
    fields: dict = {}
    if not partial or "name" in data:
        fields["name"] = _required_text(data.get("name"), "name", NAME_MAX_LENGTH)
    if not partial or "email" in data:
        fields["email"] = normalise_email(data.get("email"))
    if "department" in data:
        fields["department"] = _optional_text(data.get("department"), "department", DEPARTMENT_MAX_LENGTH)
    if "role" in data or not partial:
        role = data.get("role") or "staff"
        if role not in STAFF_ROLES:
            raise ValidationError("Invalid role", details={"role": f"must be one of {sorted(STAFF_ROLES)}"})
        fields["role"] = role
    if "manager_id" in data:
        raw = data.get("manager_id")
        fields["manager_id"] = None if raw in (None, "") else parse_positive_int(raw, "manager_id")
    return fields


# ── Customer master ───────────────────────────────────────────────────────────


def parse_customer_payload(data: dict, *, partial: bool = False) -> dict:
    fields: dict = {}
    if not partial or "customer_name" in data:
        fields["customer_name"] = _required_text(data.get("customer_name"), "customer_name", NAME_MAX_LENGTH)
    if not partial or "company_name" in data:
        fields["company_name"] = _required_text(data.get("company_name"), "company_name", COMPANY_MAX_LENGTH)
    if "industry" in data:
        industry = data.get("industry") or None
        if industry is not None and industry not in INDUSTRIES:
            raise ValidationError("Invalid industry", details={"industry": f"must be one of {list(INDUSTRIES)}"})
        fields["industry"] = industry
    if "phone" in data:
        phone = _optional_text(data.get("phone"), "phone", PHONE_MAX_LENGTH)
        if phone is not None and not _PHONE_RE.match(phone):
            raise ValidationError("Invalid phone", details={"phone": "digits and hyphens only"})
        fields["phone"] = phone
    if "email" in data:
        raw = data.get("email")
        fields["email"] = normalise_email(raw) if raw else None
    if "address" in data:
        fields["address"] = _optional_text(data.get("address"), "address", ADDRESS_MAX_LENGTH)
    return fields
