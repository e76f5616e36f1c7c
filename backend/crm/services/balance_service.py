# Overview: The single primitive that moves money on Vendor and Partner balances.

"""
Balance Service

Vendor.amount_cents and Partner.cash_amount_cents are shared mutable state.
Every write to them goes through apply_vendor_delta / apply_partner_delta:

- No commit here. Callers run inside run_with_retry, which owns the DB
  transaction, so the balance change lands together with the Transaction
  (or device soft-delete) that caused it, or not at all.
- Each non-zero delta appends a BalanceEvent journal row.
- The account row is always touched, even for a zero delta, so its
  version_id moves and any concurrent writer that decided on the old
  balance fails its flush with StaleDataError.
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    Partner,
    Vendor,
    BalanceEvent,
    ACCOUNT_KIND_PARTNER,
    ACCOUNT_KIND_VENDOR,
)
from ..time_utils import utcnow


REASON_OPENING = "opening"
REASON_TRANSACTION = "transaction"
REASON_DEVICE_SOFT_DELETE = "device_soft_delete"


def apply_vendor_delta(
    vendor: Vendor,
    delta_cents: int,
    *,
    reason: str,
    transaction_id: int | None = None,
    device_id: int | None = None,
) -> BalanceEvent | None:
    vendor.amount_cents = (vendor.amount_cents or 0) + delta_cents
    vendor.updated_at = utcnow()
    return _journal(
        partner_id=vendor.partner_id,
        account_kind=ACCOUNT_KIND_VENDOR,
        account_id=vendor.id,
        delta_cents=delta_cents,
        balance_after_cents=vendor.amount_cents,
        reason=reason,
        transaction_id=transaction_id,
        device_id=device_id,
    )


def apply_partner_delta(
    partner: Partner,
    delta_cents: int,
    *,
    reason: str,
    transaction_id: int | None = None,
    device_id: int | None = None,
) -> BalanceEvent | None:
    partner.cash_amount_cents = (partner.cash_amount_cents or 0) + delta_cents
    partner.updated_at = utcnow()
    return _journal(
        partner_id=partner.id,
        account_kind=ACCOUNT_KIND_PARTNER,
        account_id=partner.id,
        delta_cents=delta_cents,
        balance_after_cents=partner.cash_amount_cents,
        reason=reason,
        transaction_id=transaction_id,
        device_id=device_id,
    )


def record_opening_balance(*, partner_id: int, account_kind: str, account_id: int, amount_cents: int) -> BalanceEvent | None:
    """Journal the balance an account was created with."""
    return _journal(
        partner_id=partner_id,
        account_kind=account_kind,
        account_id=account_id,
        delta_cents=amount_cents,
        balance_after_cents=amount_cents,
        reason=REASON_OPENING,
    )


def _journal(**fields) -> BalanceEvent | None:
    if not fields["delta_cents"]:
        return None
    ev = BalanceEvent(**fields)
    db.session.add(ev)
    return ev


def journal_totals(partner_id: int | None = None) -> dict[tuple[str, int], int]:
    """Sum of journaled deltas per (account_kind, account_id)."""
    query = db.session.query(
        BalanceEvent.account_kind,
        BalanceEvent.account_id,
        db.func.coalesce(db.func.sum(BalanceEvent.delta_cents), 0),
    )
    if partner_id is not None:
        query = query.filter(BalanceEvent.partner_id == partner_id)
    rows = query.group_by(BalanceEvent.account_kind, BalanceEvent.account_id).all()
    return {(kind, account_id): int(total) for kind, account_id, total in rows}


def reconcile_balances(partner_id: int | None = None) -> list[dict]:
    """
    Compare stored balances with the journal.

    Returns one entry per account whose stored balance differs from the
    sum of its BalanceEvent deltas. An empty list means the books agree.
    """
    totals = journal_totals(partner_id)
    drift = []

    partners = db.session.query(Partner)
    vendors = db.session.query(Vendor)
    if partner_id is not None:
        partners = partners.filter(Partner.id == partner_id)
        vendors = vendors.filter(Vendor.partner_id == partner_id)

    for partner in partners.order_by(Partner.id).all():
        expected = totals.get((ACCOUNT_KIND_PARTNER, partner.id), 0)
        if expected != partner.cash_amount_cents:
            drift.append({
                "account_kind": ACCOUNT_KIND_PARTNER,
                "account_id": partner.id,
                "partner_id": partner.id,
                "stored_cents": partner.cash_amount_cents,
                "journal_cents": expected,
            })

    for vendor in vendors.order_by(Vendor.id).all():
        expected = totals.get((ACCOUNT_KIND_VENDOR, vendor.id), 0)
        if expected != vendor.amount_cents:
            drift.append({
                "account_kind": ACCOUNT_KIND_VENDOR,
                "account_id": vendor.id,
                "partner_id": vendor.partner_id,
                "stored_cents": vendor.amount_cents,
                "journal_cents": expected,
            })

    return drift
