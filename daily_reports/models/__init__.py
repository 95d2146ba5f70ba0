"""
Daily Sales Report Platform
SQLAlchemy models package.

All model modules import ``db`` from here:

    from daily_reports.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def load_all():
    """Import every model module so metadata is complete for create_all / Alembic."""
    from daily_reports.models import customer as _customer_models  # noqa: F401
    from daily_reports.models import report as _report_models      # noqa: F401
    from daily_reports.models import staff as _staff_models        # noqa: F401
