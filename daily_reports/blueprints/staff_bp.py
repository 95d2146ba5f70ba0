"""
Staff Master Blueprint.

Endpoints:
    GET    /api/v1/staff                 members visible to the caller (?unassigned=1 for adoptable staff)
    POST   /api/v1/staff                 managers only
    GET    /api/v1/staff/<id>
    PUT    /api/v1/staff/<id>            partial update, managers only
    DELETE /api/v1/staff/<id>            managers only; rejected while referenced
"""

from flask import Blueprint, g, jsonify, request

from daily_reports.services import identity_service
from daily_reports.utils.validators import parse_staff_payload

staff_bp = Blueprint("staff", __name__, url_prefix="/api/v1")


@staff_bp.route("/staff", methods=["GET"])
def list_staff():
    if request.args.get("unassigned") in ("1", "true"):
        members = identity_service.list_unassigned_staff(g.actor_id)
    else:
        members = identity_service.list_staff(g.actor_id)
    return jsonify({"items": [m.to_dict() for m in members], "total": len(members)})


@staff_bp.route("/staff", methods=["POST"])
def create_staff():
    fields = parse_staff_payload(request.get_json(silent=True) or {})
    member = identity_service.create_staff(g.actor_id, **fields)
    return jsonify(member.to_dict()), 201


@staff_bp.route("/staff/<int:staff_id>", methods=["GET"])
def get_staff(staff_id):
    return jsonify(identity_service.get_staff_for(g.actor_id, staff_id).to_dict())


@staff_bp.route("/staff/<int:staff_id>", methods=["PUT"])
def update_staff(staff_id):
    changes = parse_staff_payload(request.get_json(silent=True) or {}, partial=True)
    member = identity_service.update_staff(g.actor_id, staff_id, changes)
    return jsonify(member.to_dict())


@staff_bp.route("/staff/<int:staff_id>", methods=["DELETE"])
def delete_staff(staff_id):
    identity_service.delete_staff(g.actor_id, staff_id)
    return jsonify({"deleted": True, "id": staff_id})
