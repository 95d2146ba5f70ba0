"""
Daily Sales Report Platform
Customer master model.

Models:
    - Customer: a client contact that visit records point at.
"""

from datetime import datetime, timezone

from daily_reports.models import db


# ── Constants ────────────────────────────────────────────────────────────────

INDUSTRIES = ("it", "manufacturing", "finance", "retail", "service", "other")


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(100), nullable=False)
    company_name = db.Column(db.String(255), nullable=False, index=True)
    industry = db.Column(db.String(30), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "company_name": self.company_name,
            "industry": self.industry,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Customer {self.id}: {self.company_name} / {self.customer_name}>"
