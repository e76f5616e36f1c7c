from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z
from .inventory import AppendOnlyViolation


TRANSACTION_TYPES = ("sell", "return", "credit", "debit", "investment")
PAYMENT_MODES = ("cash", "upi", "card")
AUTHOR_TYPES = ("partner", "employee")

ACCOUNT_KIND_VENDOR = "vendor"
ACCOUNT_KIND_PARTNER = "partner"


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Transaction(db.Model):
    """
    Immutable record of one financial event.

    Ledger invariants:
    - Append-only: created once, never updated or deleted (guarded below).
    - Every balance mutation made by the ledger engine is caused by exactly
      one Transaction and is written in the same DB transaction.
    - date is business time; created_at is system time (DB default).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_partner_date", "partner_id", "date"),
        db.Index("ix_transactions_partner_type", "partner_id", "transaction_type"),
        db.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
        db.CheckConstraint(_in_list("transaction_type", TRANSACTION_TYPES), name="ck_transactions_type"),
        db.CheckConstraint(
            "payment_mode IS NULL OR " + _in_list("payment_mode", PAYMENT_MODES),
            name="ck_transactions_payment_mode",
        ),
        db.CheckConstraint(_in_list("author_type", AUTHOR_TYPES), name="ck_transactions_author_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)

    author_type = db.Column(db.String(16), nullable=False)
    author_id = db.Column(db.Integer, nullable=False)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=True, index=True)

    amount_cents = db.Column(db.BigInteger, nullable=False)
    note = db.Column(db.Text, nullable=False, default="")
    payment_mode = db.Column(db.String(8), nullable=True)
    transaction_type = db.Column(db.String(16), nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    partner = db.relationship("Partner")
    vendor = db.relationship("Vendor")
    device = db.relationship("Device")

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.transaction_type} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "author": {"author_type": self.author_type, "author_id": self.author_id},
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "device_id": self.device_id,
            "device_code": self.device.device_code if self.device else None,
            "amount_cents": self.amount_cents,
            "note": self.note,
            "payment_mode": self.payment_mode,
            "type": self.transaction_type,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
        }


class BalanceEvent(db.Model):
    """
    Journal of every change to a balance-bearing field.

    One row per non-zero delta applied to Vendor.amount_cents or
    Partner.cash_amount_cents, written in the same DB transaction as the
    change. Summing delta_cents per account must reproduce the stored
    balance; `flask ledger reconcile` checks exactly that.
    """
    __tablename__ = "balance_events"
    __table_args__ = (
        db.Index("ix_balance_events_account", "account_kind", "account_id"),
        db.CheckConstraint(
            _in_list("account_kind", (ACCOUNT_KIND_VENDOR, ACCOUNT_KIND_PARTNER)),
            name="ck_balance_events_account_kind",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)

    account_kind = db.Column(db.String(16), nullable=False)
    account_id = db.Column(db.Integer, nullable=False)

    delta_cents = db.Column(db.BigInteger, nullable=False)
    balance_after_cents = db.Column(db.BigInteger, nullable=False)

    # opening, transaction, device_soft_delete
    reason = db.Column(db.String(32), nullable=False)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "account_kind": self.account_kind,
            "account_id": self.account_id,
            "delta_cents": self.delta_cents,
            "balance_after_cents": self.balance_after_cents,
            "reason": self.reason,
            "transaction_id": self.transaction_id,
            "device_id": self.device_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(Transaction, "before_update")
def _transaction_no_update(mapper, connection, target):
    raise AppendOnlyViolation(f"Transaction {target.id} is immutable")


@event.listens_for(Transaction, "before_delete")
def _transaction_no_delete(mapper, connection, target):
    raise AppendOnlyViolation(f"Transaction {target.id} is immutable")


@event.listens_for(BalanceEvent, "before_update")
def _balance_event_no_update(mapper, connection, target):
    raise AppendOnlyViolation(f"BalanceEvent {target.id} is append-only")


@event.listens_for(BalanceEvent, "before_delete")
def _balance_event_no_delete(mapper, connection, target):
    raise AppendOnlyViolation(f"BalanceEvent {target.id} is append-only")
