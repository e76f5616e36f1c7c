# Overview: Flask API routes for ledger transactions; parses input and returns JSON responses.

"""
Transaction Routes

Tenant context comes from the X-Partner-Id header; an X-Employee-Id header
makes the employee the author of recorded transactions.

Transactions are append-only: there is no update or delete route.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import transaction_service


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _filters_from_args() -> dict:
    return {
        "vendor_id": request.args.get("vendor_id") or None,
        "transaction_type": request.args.get("type") or request.args.get("transaction_type") or None,
        "search": request.args.get("search") or None,
        "start_date": request.args.get("start_date") or None,
        "end_date": request.args.get("end_date") or None,
    }


@transactions_bp.post("")
@require_partner_context
@handle_ledger_errors
def record_transaction_route():
    """
    Record a transaction and apply its balance effects.

    Request body:
    {
        "type": "sell",            // sell|return|investment|credit|debit
        "amount_cents": 50000,     // required, > 0
        "payment_mode": "cash",    // cash|upi|card (sell/return/investment)
        "vendor_id": 1,            // sell/return/investment
        "device_id": 7,            // return (optional for sell)
        "note": "...",             // optional
        "date": "2025-03-01T10:00:00Z"  // optional, defaults to now
    }

    Returns:
        201 with the Transaction
    """
    data = request.get_json(silent=True) or {}

    txn = transaction_service.record_transaction(
        partner_id=g.partner_id,
        author_type=g.author_type,
        author_id=g.author_id,
        transaction_type=data.get("type") or data.get("transaction_type"),
        amount_cents=data.get("amount_cents"),
        payment_mode=data.get("payment_mode"),
        vendor_id=data.get("vendor_id"),
        device_id=data.get("device_id"),
        note=data.get("note"),
        date=data.get("date"),
    )
    return jsonify(txn.to_dict()), 201


@transactions_bp.get("")
@require_partner_context
@handle_ledger_errors
def list_transactions_route():
    """
    Query parameters: vendor_id, type, search, start_date, end_date.

    Returns:
        {items: Transaction[], count: int}
    """
    transactions = transaction_service.get_transactions(g.partner_id, **_filters_from_args())
    return jsonify({
        "items": [t.to_dict() for t in transactions],
        "count": len(transactions),
    })


@transactions_bp.get("/export")
@require_partner_context
@handle_ledger_errors
def export_transactions_route():
    records = transaction_service.export_transactions(g.partner_id, **_filters_from_args())
    return jsonify({"items": records, "count": len(records)})


@transactions_bp.get("/<int:transaction_id>")
@require_partner_context
@handle_ledger_errors
def get_transaction_route(transaction_id: int):
    txn = transaction_service.get_transaction(g.partner_id, transaction_id)
    return jsonify(txn.to_dict())
