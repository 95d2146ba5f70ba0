"""
Dashboard Blueprint.

Endpoints:
    GET /api/v1/dashboard                     ?today=YYYY-MM-DD (defaults to server date)
    GET /api/v1/dashboard/pending-approvals   manager's queue, oldest first
"""

from datetime import date

from flask import Blueprint, g, jsonify, request

from daily_reports.services import dashboard_service
from daily_reports.utils.validators import parse_iso_date

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")


@dashboard_bp.route("/dashboard", methods=["GET"])
def summary():
    raw = request.args.get("today")
    today = parse_iso_date(raw, "today") if raw else date.today()
    return jsonify(dashboard_service.dashboard_summary(g.actor_id, today))


@dashboard_bp.route("/dashboard/pending-approvals", methods=["GET"])
def pending_approvals():
    reports = dashboard_service.pending_approvals(g.actor_id)
    return jsonify({"items": [r.to_dict() for r in reports], "total": len(reports)})
