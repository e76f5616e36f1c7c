# Overview: Ledger engine. Records transactions and propagates their balance effects atomically.

"""
Transaction Service (ledger engine)

WHY: A transaction is the only thing allowed to move money between a
vendor's balance and the partner's cash. Recording one must update up to
four rows (Transaction, Vendor, Partner, Device log) consistently.

DESIGN PRINCIPLES:
- Validation against the policy table happens before any query or write.
- The whole of record_transaction is one DB transaction run under
  run_with_retry: either every row is written or none is.
- The return apportionment reads Vendor.amount_cents and decides inside
  that transaction. Vendor and Partner are versioned rows, so a concurrent
  writer that changed the balance in between makes this attempt fail at
  flush and the decision is recomputed from fresh rows.
- Transactions are append-only; corrections are new transactions.
"""

from __future__ import annotations

from typing import Optional

from flask import current_app
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Transaction, Employee, Partner, AUTHOR_TYPES
from ..validation import (
    ValidationError,
    NotFoundError,
    coerce_amount_cents,
    coerce_datetime,
    coerce_int,
)
from ..time_utils import parse_date_bound, to_utc_z, utcnow
from . import device_service
from .balance_service import REASON_TRANSACTION, apply_partner_delta, apply_vendor_delta
from .concurrency import run_with_retry
from .tenant_service import (
    require_device_in_partner,
    require_employee_in_partner,
    require_partner,
    require_vendor_in_partner,
)
from .transaction_policy import get_policy, plan_effects, validate_payment_mode


AUTHOR_PARTNER = "partner"
AUTHOR_EMPLOYEE = "employee"


def record_transaction(
    *,
    partner_id: int,
    author_type: str,
    author_id: int,
    transaction_type: str,
    amount_cents,
    payment_mode: Optional[str] = None,
    vendor_id: Optional[int] = None,
    device_id: Optional[int] = None,
    note: Optional[str] = None,
    date=None,
) -> Transaction:
    """
    Record a transaction and apply its balance effects.

    Args:
        partner_id: Tenant the transaction belongs to
        author_type: "partner" or "employee"
        author_id: Partner id (must equal partner_id) or employee id
        transaction_type: sell, return, investment, credit or debit
        amount_cents: Positive integer amount in minor units
        payment_mode: cash, upi or card (required for sell/return/investment)
        vendor_id: Counterparty (required for sell/return/investment)
        device_id: Device (required for return; optional for sell)
        note: Free text
        date: Business date (datetime or ISO-8601); defaults to now

    Returns:
        The persisted Transaction

    Raises:
        ValidationError: missing/invalid fields; nothing is written
        NotFoundError: partner, vendor, device or employee author missing
        ConcurrencyError: conflicting writers outlasted every retry
    """
    missing = [
        name for name, value in (
            ("partner_id", partner_id),
            ("author_type", author_type),
            ("author_id", author_id),
            ("transaction_type", transaction_type),
            ("amount_cents", amount_cents),
        )
        if value is None or value == ""
    ]
    policy = get_policy(transaction_type) if transaction_type else None
    if policy is not None:
        missing.extend(policy.missing_fields(
            vendor_id=vendor_id, device_id=device_id, payment_mode=payment_mode,
        ))
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    amount = coerce_amount_cents("amount_cents", amount_cents)
    if author_type not in AUTHOR_TYPES:
        raise ValidationError(
            f"Invalid author_type '{author_type}'. Must be one of: {', '.join(AUTHOR_TYPES)}"
        )
    validate_payment_mode(payment_mode)

    partner_id = coerce_int("partner_id", partner_id)
    author_id = coerce_int("author_id", author_id)
    if vendor_id is not None:
        vendor_id = coerce_int("vendor_id", vendor_id)
    if device_id is not None:
        device_id = coerce_int("device_id", device_id)

    if author_type == AUTHOR_PARTNER and author_id != partner_id:
        raise ValidationError("author_id must be the partner's own id for partner-authored transactions")

    business_date = coerce_datetime("date", date) if date not in (None, "") else utcnow()
    note = (note or "").strip()

    def _op():
        partner = require_partner(partner_id, for_update=True)
        if author_type == AUTHOR_EMPLOYEE:
            require_employee_in_partner(author_id, partner.id)

        vendor = None
        if vendor_id is not None:
            vendor = require_vendor_in_partner(vendor_id, partner.id, for_update=True)
        device = None
        if device_id is not None:
            device = require_device_in_partner(device_id, partner.id, for_update=True)

        effects = plan_effects(
            policy.transaction_type,
            amount_cents=amount,
            payment_mode=payment_mode,
            vendor_owed_cents=vendor.amount_cents if vendor is not None else 0,
        )

        txn = Transaction(
            partner_id=partner.id,
            author_type=author_type,
            author_id=author_id,
            vendor_id=vendor.id if vendor is not None else None,
            device_id=device.id if device is not None else None,
            amount_cents=amount,
            note=note,
            payment_mode=payment_mode,
            transaction_type=policy.transaction_type,
            date=business_date,
        )
        db.session.add(txn)
        db.session.flush()  # assigns txn.id for the journal rows

        if vendor is not None and policy.moves_vendor_balance:
            apply_vendor_delta(
                vendor, effects.vendor_delta_cents,
                reason=REASON_TRANSACTION, transaction_id=txn.id,
            )
        apply_partner_delta(
            partner, effects.cash_delta_cents,
            reason=REASON_TRANSACTION, transaction_id=txn.id,
        )

        if device is not None and policy.device_event_type is not None:
            device_service.append_sell_event(
                device,
                event_type=policy.device_event_type,
                vendor_id=vendor.id,
                amount_cents=effects.sell_event_amount_cents,
                transaction_id=txn.id,
            )

        db.session.flush()
        return txn, effects

    txn, effects = run_with_retry(_op)

    current_app.logger.info(
        "Recorded %s transaction %s for partner %s: amount_cents=%s vendor_delta=%s cash_delta=%s",
        txn.transaction_type, txn.id, partner_id, amount,
        effects.vendor_delta_cents, effects.cash_delta_cents,
    )
    return txn


def get_transaction(partner_id: int, transaction_id: int) -> Transaction:
    txn = db.session.query(Transaction).filter_by(id=transaction_id).first()
    if not txn or txn.partner_id != partner_id:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return txn


def get_transactions(
    partner_id: int,
    *,
    vendor_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    search: Optional[str] = None,
    start_date=None,
    end_date=None,
) -> list[Transaction]:
    """
    List a partner's transactions, newest first (date desc, then id desc).

    Date bounds are inclusive; a date-only end_date covers that whole day.
    search is a case-insensitive substring match applied after the fetch
    against vendor name, device code/brand/model, note and type.
    """
    require_partner(partner_id)

    query = (
        db.session.query(Transaction)
        .options(joinedload(Transaction.vendor), joinedload(Transaction.device))
        .filter(Transaction.partner_id == partner_id)
    )

    if vendor_id is not None:
        query = query.filter(Transaction.vendor_id == coerce_int("vendor_id", vendor_id))
    if transaction_type:
        query = query.filter(Transaction.transaction_type == get_policy(transaction_type).transaction_type)

    try:
        start_dt = parse_date_bound(start_date)
        end_dt = parse_date_bound(end_date, end_of_day=True)
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates or datetimes")
    if start_dt:
        query = query.filter(Transaction.date >= start_dt)
    if end_dt:
        query = query.filter(Transaction.date <= end_dt)

    transactions = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()

    if search and search.strip():
        term = search.strip().lower()
        transactions = [t for t in transactions if _matches_search(t, term)]

    return transactions


def _matches_search(txn: Transaction, term: str) -> bool:
    haystack = [txn.note, txn.transaction_type]
    if txn.vendor is not None:
        haystack.append(txn.vendor.name)
    if txn.device is not None:
        haystack.extend([txn.device.device_code, txn.device.brand, txn.device.model])
    return any(term in value.lower() for value in haystack if value)


def export_transactions(partner_id: int, **filters) -> list[dict]:
    """
    Flat, populated records for spreadsheet export.

    Formatting (column titles, currency rendering, file type) belongs to
    the caller; this only resolves references to plain values.
    """
    transactions = get_transactions(partner_id, **filters)

    partner = db.session.query(Partner).filter_by(id=partner_id).first()
    employee_ids = {t.author_id for t in transactions if t.author_type == AUTHOR_EMPLOYEE}
    employee_names = {}
    if employee_ids:
        employee_names = dict(
            db.session.query(Employee.id, Employee.name).filter(Employee.id.in_(employee_ids)).all()
        )

    records = []
    for t in transactions:
        if t.author_type == AUTHOR_EMPLOYEE:
            author_name = employee_names.get(t.author_id)
        else:
            author_name = partner.name if partner else None
        records.append({
            "id": t.id,
            "date": to_utc_z(t.date),
            "type": t.transaction_type,
            "amount_cents": t.amount_cents,
            "payment_mode": t.payment_mode,
            "vendor_name": t.vendor.name if t.vendor else None,
            "device_code": t.device.device_code if t.device else None,
            "device_brand": t.device.brand if t.device else None,
            "device_model": t.device.model if t.device else None,
            "note": t.note,
            "author_type": t.author_type,
            "author_name": author_name,
        })
    return records
