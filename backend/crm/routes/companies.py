# Overview: Flask API routes for the partner's companies.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import partner_service


companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")


@companies_bp.get("")
@require_partner_context
@handle_ledger_errors
def list_companies_route():
    """
    Query parameters:
    - include_inactive: Include inactive companies (default: true)
    - search: Name fragment
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    companies = partner_service.list_companies(
        g.partner_id,
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify({
        "items": [c.to_dict() for c in companies],
        "count": len(companies),
    })


@companies_bp.post("")
@require_partner_context
@handle_ledger_errors
def create_company_route():
    data = request.get_json(silent=True) or {}
    company = partner_service.create_company(
        partner_id=g.partner_id,
        name=data.get("name"),
        credit_value_cents=data.get("credit_value_cents", 0),
    )
    return jsonify(company.to_dict()), 201


@companies_bp.get("/<int:company_id>")
@require_partner_context
@handle_ledger_errors
def get_company_route(company_id: int):
    return jsonify(partner_service.get_company(g.partner_id, company_id).to_dict())


@companies_bp.put("/<int:company_id>")
@require_partner_context
@handle_ledger_errors
def update_company_route(company_id: int):
    data = request.get_json(silent=True) or {}
    company = partner_service.update_company(
        g.partner_id,
        company_id,
        name=data.get("name"),
        credit_value_cents=data.get("credit_value_cents"),
    )
    return jsonify(company.to_dict())


@companies_bp.post("/<int:company_id>/toggle-active")
@require_partner_context
@handle_ledger_errors
def toggle_company_route(company_id: int):
    return jsonify(partner_service.toggle_company_active(g.partner_id, company_id).to_dict())


@companies_bp.delete("/<int:company_id>")
@require_partner_context
@handle_ledger_errors
def delete_company_route(company_id: int):
    return jsonify(partner_service.soft_delete_company(g.partner_id, company_id).to_dict())
