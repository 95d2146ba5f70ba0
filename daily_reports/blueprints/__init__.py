"""
Daily Sales Report Platform
Blueprint registry.
"""

from flask import current_app, request


def page_params():
    """Read limit/offset query params.

    Query params:
        limit   max items (default DEFAULT_PAGE_SIZE, capped at MAX_PAGE_SIZE)
        offset  starting position (default 0)

    Returns:
        (limit, offset)
    """
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return limit, offset


def page_body(items, total, limit, offset):
    return {
        "items": [i.to_dict() for i in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def all_blueprints():
    from daily_reports.blueprints.customers_bp import customers_bp
    from daily_reports.blueprints.dashboard_bp import dashboard_bp
    from daily_reports.blueprints.health_bp import health_bp
    from daily_reports.blueprints.reports_bp import reports_bp
    from daily_reports.blueprints.staff_bp import staff_bp

    return (health_bp, reports_bp, staff_bp, customers_bp, dashboard_bp)
