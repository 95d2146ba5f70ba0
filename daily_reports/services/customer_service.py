"""
Customer master service.

Any authenticated staff member may list, create, update and delete
customers. A customer referenced by a visit record cannot be deleted.
"""

import logging

from sqlalchemy import exists, func, select

from daily_reports.core.exceptions import ConflictError
from daily_reports.models import db
from daily_reports.models.customer import Customer
from daily_reports.models.report import Visit
from daily_reports.utils.helpers import commit_or_raise, get_or_404

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("customer_name", "company_name", "industry", "phone", "email", "address")


def list_customers(
    *,
    company_name: str | None = None,
    industry: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Customer], int]:
    """Filter by company name (substring, case-insensitive) and industry."""
    stmt = select(Customer)
    if company_name:
        stmt = stmt.where(func.lower(Customer.company_name).contains(company_name.lower()))
    if industry:
        stmt = stmt.where(Customer.industry == industry)

    total = db.session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    items = db.session.execute(
        stmt.order_by(Customer.company_name, Customer.id).limit(limit).offset(offset)
    ).scalars().all()
    return list(items), total


def get_customer(customer_id: int) -> Customer:
    return get_or_404(Customer, customer_id, label="Customer")


def create_customer(actor_id: int, fields: dict) -> Customer:
    customer = Customer(**{k: fields.get(k) for k in _MUTABLE_FIELDS if k in fields})
    db.session.add(customer)
    commit_or_raise("create_customer", actor_id=actor_id)
    logger.info("Customer %s created", customer.id, extra={"actor_id": actor_id})
    return customer


def update_customer(actor_id: int, customer_id: int, fields: dict) -> Customer:
    customer = get_customer(customer_id)
    for key in _MUTABLE_FIELDS:
        if key in fields:
            setattr(customer, key, fields[key])
    commit_or_raise("update_customer", actor_id=actor_id)
    return customer


def delete_customer(actor_id: int, customer_id: int) -> None:
    customer = get_customer(customer_id)
    referenced = db.session.execute(
        select(exists().where(Visit.customer_id == customer_id))
    ).scalar()
    if referenced:
        raise ConflictError(
            "Customer", "visits", str(customer_id),
            message="Customer is referenced by visit records and cannot be deleted",
        )
    db.session.delete(customer)
    commit_or_raise("delete_customer", actor_id=actor_id)
    logger.info("Customer %s deleted", customer_id, extra={"actor_id": actor_id})
