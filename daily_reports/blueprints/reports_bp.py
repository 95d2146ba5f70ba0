"""
Daily Report Blueprint.

Endpoints:
    GET    /api/v1/reports                       list (start_date, end_date, status, staff_id, limit, offset)
    POST   /api/v1/reports                       create; body status 'draft' (default) or 'submitted'
    GET    /api/v1/reports/<id>                  full aggregate + available events
    PUT    /api/v1/reports/<id>                  replace problem/plan/visits (draft, rejected)
    DELETE /api/v1/reports/<id>                  drafts only
    POST   /api/v1/reports/<id>/submit           owner: draft/rejected → submitted
    POST   /api/v1/reports/<id>/approve          direct manager: submitted → approved
    POST   /api/v1/reports/<id>/reject           direct manager: submitted → rejected, body {"comment"}
    GET    /api/v1/reports/<id>/comments         newest first
    POST   /api/v1/reports/<id>/comments         body {"content"}
    GET    /api/v1/reports/<id>/visits           visits of one report
    POST   /api/v1/reports/<id>/visits           add one visit (draft, rejected)
    PUT    /api/v1/visits/<id>                   update one visit (draft, rejected)
    DELETE /api/v1/visits/<id>                   delete one visit (draft, rejected)

Layer contract:
    - Blueprint: parse input, pass g.actor_id explicitly, return JSON.
    - NO db.session calls and NO permission checks here; domain errors are
      mapped to responses by the app-level handlers.
"""

import logging

from flask import Blueprint, g, jsonify, request

from daily_reports.blueprints import page_body, page_params
from daily_reports.services import comment_service, identity_service, report_service
from daily_reports.services.report_workflow import available_events
from daily_reports.utils.validators import (
    parse_iso_date,
    parse_positive_int,
    parse_report_payload,
    parse_status_filter,
    parse_visit_payload,
)

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/v1")


def _report_detail(report):
    data = report.to_dict(include_children=True)
    data["available_events"] = available_events(report, identity_service.get_staff(g.actor_id))
    return data


@reports_bp.route("/reports", methods=["GET"])
def list_reports():
    args = request.args
    start_date = parse_iso_date(args["start_date"], "start_date") if args.get("start_date") else None
    end_date = parse_iso_date(args["end_date"], "end_date") if args.get("end_date") else None
    staff_id = parse_positive_int(args["staff_id"], "staff_id") if args.get("staff_id") else None
    limit, offset = page_params()

    items, total = report_service.list_reports(
        g.actor_id,
        start_date=start_date,
        end_date=end_date,
        status=parse_status_filter(args.get("status")),
        staff_id=staff_id,
        limit=limit,
        offset=offset,
    )
    return jsonify(page_body(items, total, limit, offset))


@reports_bp.route("/reports", methods=["POST"])
def create_report():
    payload = parse_report_payload(request.get_json(silent=True) or {})
    report = report_service.create_report(
        g.actor_id,
        payload.report_date,
        problem=payload.problem,
        plan=payload.plan,
        visits=payload.visits,
        as_draft=payload.as_draft,
    )
    return jsonify(_report_detail(report)), 201


@reports_bp.route("/reports/<int:report_id>", methods=["GET"])
def get_report(report_id):
    report = report_service.get_report(g.actor_id, report_id)
    return jsonify(_report_detail(report))


@reports_bp.route("/reports/<int:report_id>", methods=["PUT"])
def replace_report(report_id):
    payload = parse_report_payload(request.get_json(silent=True) or {}, require_date=False)
    report = report_service.replace_content(
        g.actor_id, report_id, payload.problem, payload.plan, payload.visits,
    )
    return jsonify(_report_detail(report))


@reports_bp.route("/reports/<int:report_id>", methods=["DELETE"])
def delete_report(report_id):
    report_service.delete_report(g.actor_id, report_id)
    return jsonify({"deleted": True, "id": report_id})


@reports_bp.route("/reports/<int:report_id>/submit", methods=["POST"])
def submit_report(report_id):
    report = report_service.submit_report(g.actor_id, report_id)
    return jsonify(_report_detail(report))


@reports_bp.route("/reports/<int:report_id>/approve", methods=["POST"])
def approve_report(report_id):
    report = report_service.approve_report(g.actor_id, report_id)
    return jsonify(_report_detail(report))


@reports_bp.route("/reports/<int:report_id>/reject", methods=["POST"])
def reject_report(report_id):
    data = request.get_json(silent=True) or {}
    report = report_service.reject_report(g.actor_id, report_id, data.get("comment"))
    return jsonify(_report_detail(report))


@reports_bp.route("/reports/<int:report_id>/comments", methods=["GET"])
def list_comments(report_id):
    comments = comment_service.list_comments(g.actor_id, report_id)
    return jsonify({"items": [c.to_dict() for c in comments], "total": len(comments)})


@reports_bp.route("/reports/<int:report_id>/comments", methods=["POST"])
def post_comment(report_id):
    data = request.get_json(silent=True) or {}
    comment = comment_service.post_comment(g.actor_id, report_id, data.get("content"))
    return jsonify(comment.to_dict()), 201


@reports_bp.route("/reports/<int:report_id>/visits", methods=["GET"])
def list_visits(report_id):
    visits = report_service.list_visits(g.actor_id, report_id)
    return jsonify({"items": [v.to_dict() for v in visits], "total": len(visits)})


@reports_bp.route("/reports/<int:report_id>/visits", methods=["POST"])
def add_visit(report_id):
    visit = parse_visit_payload(request.get_json(silent=True) or {})
    row = report_service.add_visit(g.actor_id, report_id, visit)
    return jsonify(row.to_dict()), 201


@reports_bp.route("/visits/<int:visit_id>", methods=["PUT"])
def update_visit(visit_id):
    visit = parse_visit_payload(request.get_json(silent=True) or {})
    row = report_service.update_visit(g.actor_id, visit_id, visit)
    return jsonify(row.to_dict())


@reports_bp.route("/visits/<int:visit_id>", methods=["DELETE"])
def delete_visit(visit_id):
    report_service.delete_visit(g.actor_id, visit_id)
    return jsonify({"deleted": True, "id": visit_id})
