"""
Customer Master Blueprint.

Endpoints:
    GET    /api/v1/customers             ?company_name=&industry=&limit=&offset=
    POST   /api/v1/customers
    GET    /api/v1/customers/<id>
    PUT    /api/v1/customers/<id>        partial update
    DELETE /api/v1/customers/<id>        rejected while referenced by a visit
"""

from flask import Blueprint, g, jsonify, request

from daily_reports.blueprints import page_body, page_params
from daily_reports.services import customer_service
from daily_reports.utils.validators import parse_customer_payload

customers_bp = Blueprint("customers", __name__, url_prefix="/api/v1")


@customers_bp.route("/customers", methods=["GET"])
def list_customers():
    limit, offset = page_params()
    items, total = customer_service.list_customers(
        company_name=request.args.get("company_name"),
        industry=request.args.get("industry"),
        limit=limit,
        offset=offset,
    )
    return jsonify(page_body(items, total, limit, offset))


@customers_bp.route("/customers", methods=["POST"])
def create_customer():
    fields = parse_customer_payload(request.get_json(silent=True) or {})
    return jsonify(customer_service.create_customer(g.actor_id, fields).to_dict()), 201


@customers_bp.route("/customers/<int:customer_id>", methods=["GET"])
def get_customer(customer_id):
    return jsonify(customer_service.get_customer(customer_id).to_dict())


@customers_bp.route("/customers/<int:customer_id>", methods=["PUT"])
def update_customer(customer_id):
    fields = parse_customer_payload(request.get_json(silent=True) or {}, partial=True)
    return jsonify(customer_service.update_customer(g.actor_id, customer_id, fields).to_dict())


@customers_bp.route("/customers/<int:customer_id>", methods=["DELETE"])
def delete_customer(customer_id):
    customer_service.delete_customer(g.actor_id, customer_id)
    return jsonify({"deleted": True, "id": customer_id})
