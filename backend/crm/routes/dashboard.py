# Overview: Flask API route for the partner dashboard.

from flask import Blueprint, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import dashboard_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_partner_context
@handle_ledger_errors
def dashboard_route():
    return jsonify(dashboard_service.get_dashboard_stats(g.partner_id))
