#!/usr/bin/env python3
"""
Daily Sales Report Platform: Demo Data Seed Script.

Creates two sales teams, a handful of customers and five days of daily
reports in every workflow status. Everything after the first manager is
created through the service layer, so the workflow and hierarchy rules
apply exactly as they do for API calls.

Usage:
    python scripts/seed_demo_data.py              # reset DB + seed
    python scripts/seed_demo_data.py --no-reset   # keep existing data
"""

import argparse
import sys
from datetime import date, time, timedelta

sys.path.insert(0, ".")

from daily_reports import create_app
from daily_reports.models import db
from daily_reports.models.staff import StaffMember, StaffRole
from daily_reports.services import comment_service, customer_service, identity_service, report_service
from daily_reports.utils.validators import VisitInput

CUSTOMERS = [
    {"customer_name": "Taro Yamada", "company_name": "Yamada Manufacturing", "industry": "manufacturing",
     "phone": "03-1111-2222"},
    {"customer_name": "Hanako Sato", "company_name": "Sato Retail", "industry": "retail"},
    {"customer_name": "Ken Suzuki", "company_name": "Suzuki Finance", "industry": "finance",
     "email": "ken.suzuki@example.com"},
    {"customer_name": "Yui Tanaka", "company_name": "Tanaka Systems", "industry": "it"},
]

TEAMS = {
    "Tokyo Sales": ("Aiko Manager", "aiko@example.com", [
        ("Daichi Ito", "daichi@example.com"),
        ("Emi Kato", "emi@example.com"),
    ]),
    "Osaka Sales": ("Kenji Manager", "kenji@example.com", [
        ("Mika Mori", "mika@example.com"),
    ]),
}


def seed_staff():
    """First manager is inserted directly; the rest go through identity_service."""
    managers, members = {}, []
    bootstrap = None
    for department, (mgr_name, mgr_email, subordinates) in TEAMS.items():
        if bootstrap is None:
            manager = StaffMember(
                name=mgr_name, email=mgr_email, role=StaffRole.MANAGER.value, department=department,
            )
            db.session.add(manager)
            db.session.commit()
            bootstrap = manager
        else:
            manager = identity_service.create_staff(
                bootstrap.id, name=mgr_name, email=mgr_email,
                role=StaffRole.MANAGER.value, department=department,
            )
        managers[department] = manager
        for name, email in subordinates:
            members.append(identity_service.create_staff(
                manager.id, name=name, email=email, department=department, manager_id=manager.id,
            ))
    print(f"   👥 {len(managers)} managers, {len(members)} sales staff")
    return bootstrap, members


def seed_customers(actor_id):
    customers = [customer_service.create_customer(actor_id, data) for data in CUSTOMERS]
    print(f"   🏢 {len(customers)} customers")
    return customers


def seed_reports(members, customers, today):
    """Five days per member: approved, rejected, submitted, draft, empty draft."""
    counts = {"approved": 0, "rejected": 0, "submitted": 0, "draft": 0}
    for member in members:
        manager_id = member.manager_id
        for offset in range(5):
            day = today - timedelta(days=4 - offset)
            customer = customers[(member.id + offset) % len(customers)]
            visits = () if offset == 4 else (
                VisitInput(customer.id, time(10, 0), f"Introduced product line to {customer.company_name}"),
                VisitInput(customer.id, time(15, 30), "Follow-up on pricing"),
            )
            report = report_service.create_report(
                member.id, day,
                problem="Competitor discount pressure" if offset % 2 else None,
                plan="Prepare revised quote",
                visits=visits,
                as_draft=offset >= 3,
            )
            if offset == 0:
                report_service.approve_report(manager_id, report.id)
                comment_service.post_comment(manager_id, report.id, "Good progress, keep it up.")
                counts["approved"] += 1
            elif offset == 1:
                report_service.reject_report(manager_id, report.id, "Please add the quote amounts.")
                counts["rejected"] += 1
            elif offset == 2:
                counts["submitted"] += 1
            else:
                counts["draft"] += 1
    print("   📝 reports: " + ", ".join(f"{k}={v}" for k, v in counts.items()))


def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--no-reset", action="store_true", help="Don't clear existing data")
    args = parser.parse_args()

    app = create_app()
    print(f"🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        if not args.no_reset:
            db.drop_all()
            db.create_all()
            print("   ♻️  Database reset complete")

        first_manager, members = seed_staff()
        customers = seed_customers(first_manager.id)
        seed_reports(members, customers, date.today())

        print(f"\n🎉 Seed complete. Token for the first manager: flask issue-token {first_manager.id}")


if __name__ == "__main__":
    main()
