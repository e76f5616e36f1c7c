# Overview: Flask API routes for device operations; parses input and returns JSON responses.

"""
Device Routes

A device's sell history and lifecycle state are read-only here; they
change only when sell/return transactions are recorded. Deleting a device
reverses the vendor balance of its last sale.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import device_service


devices_bp = Blueprint("devices", __name__, url_prefix="/api/devices")


@devices_bp.get("")
@require_partner_context
@handle_ledger_errors
def list_devices_route():
    """
    Query parameters:
    - company_id: Only devices of this company
    - code: Look up a single device by its DEV- code
    """
    code = request.args.get("code")
    if code:
        devices = [device_service.get_device_by_code(g.partner_id, code)]
    else:
        devices = device_service.list_devices(
            g.partner_id,
            company_id=request.args.get("company_id") or None,
        )
    return jsonify({
        "items": [d.to_dict(include_history=False) for d in devices],
        "count": len(devices),
    })


@devices_bp.post("")
@require_partner_context
@handle_ledger_errors
def create_device_route():
    data = request.get_json(silent=True) or {}
    device = device_service.create_device(
        partner_id=g.partner_id,
        author_type=g.author_type,
        author_id=g.author_id,
        payload=data,
    )
    return jsonify(device.to_dict()), 201


@devices_bp.get("/<int:device_id>")
@require_partner_context
@handle_ledger_errors
def get_device_route(device_id: int):
    return jsonify(device_service.get_device(g.partner_id, device_id).to_dict())


@devices_bp.put("/<int:device_id>")
@require_partner_context
@handle_ledger_errors
def update_device_route(device_id: int):
    data = request.get_json(silent=True) or {}
    device = device_service.update_device(g.partner_id, device_id, data)
    return jsonify(device.to_dict())


@devices_bp.post("/<int:device_id>/toggle-active")
@require_partner_context
@handle_ledger_errors
def toggle_device_route(device_id: int):
    return jsonify(device_service.toggle_device_active(g.partner_id, device_id).to_dict())


@devices_bp.delete("/<int:device_id>")
@require_partner_context
@handle_ledger_errors
def delete_device_route(device_id: int):
    device = device_service.soft_delete_device(g.partner_id, device_id)
    return jsonify(device.to_dict())
