# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

Vendors are scoped to partners (multi-tenant) through the X-Partner-Id
header. amount_cents can be set at creation only; afterwards the ledger
moves it.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import vendor_service


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_partner_context
@handle_ledger_errors
def list_vendors_route():
    """
    List vendors for the current partner.

    Query parameters:
    - include_inactive: Include inactive vendors (default: true)
    - search: Name fragment

    Returns:
        {items: Vendor[], count: int}
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    vendors = vendor_service.list_vendors(
        g.partner_id,
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify({
        "items": [v.to_dict() for v in vendors],
        "count": len(vendors),
    })


@vendors_bp.post("")
@require_partner_context
@handle_ledger_errors
def create_vendor_route():
    """
    Create a new vendor.

    Request body:
    {
        "name": "Vendor Name",   // required, unique within partner
        "amount_cents": 0        // optional opening balance
    }
    """
    data = request.get_json(silent=True) or {}

    vendor = vendor_service.create_vendor(
        partner_id=g.partner_id,
        name=data.get("name"),
        amount_cents=data.get("amount_cents", 0),
    )
    return jsonify(vendor.to_dict()), 201


@vendors_bp.get("/<int:vendor_id>")
@require_partner_context
@handle_ledger_errors
def get_vendor_route(vendor_id: int):
    return jsonify(vendor_service.get_vendor(g.partner_id, vendor_id).to_dict())


@vendors_bp.put("/<int:vendor_id>")
@require_partner_context
@handle_ledger_errors
def update_vendor_route(vendor_id: int):
    data = request.get_json(silent=True) or {}
    if "amount_cents" in data:
        return jsonify({
            "error": "amount_cents is changed by transactions only",
            "kind": "validation",
        }), 400

    vendor = vendor_service.update_vendor(g.partner_id, vendor_id, name=data.get("name"))
    return jsonify(vendor.to_dict())


@vendors_bp.post("/<int:vendor_id>/toggle-active")
@require_partner_context
@handle_ledger_errors
def toggle_vendor_route(vendor_id: int):
    return jsonify(vendor_service.toggle_vendor_active(g.partner_id, vendor_id).to_dict())


@vendors_bp.delete("/<int:vendor_id>")
@require_partner_context
@handle_ledger_errors
def delete_vendor_route(vendor_id: int):
    vendor = vendor_service.soft_delete_vendor(g.partner_id, vendor_id)
    return jsonify(vendor.to_dict())
