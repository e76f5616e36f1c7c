# Overview: Declarative per-type policy for transactions: required fields and balance effects.

"""
Transaction Policy Table

One TransactionPolicy per transaction type is the single source of truth
for:
- which references are required (vendor, device, payment mode)
- which balances move, and by how much (a pure function of the request
  and the vendor's current balance)
- which sell event, if any, is appended to the device's log

Nothing here touches the database, so every rule can be exercised
directly by tests.

    type        vendor  device  payment  vendor delta          cash delta
    sell        req     opt     req      -a                    +a if cash
    return      req     req     req      -min(a, max(owed,0))  -(a - that) if cash
    investment  req     -       req      -a                    +a if cash
    credit      -       -       -        0                     +a
    debit       -       -       -        0                     -a
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..lifecycle import SELL_EVENT_RETURN, SELL_EVENT_SELL
from ..models import PAYMENT_MODES, TRANSACTION_TYPES
from ..validation import ValidationError


TYPE_SELL = "sell"
TYPE_RETURN = "return"
TYPE_INVESTMENT = "investment"
TYPE_CREDIT = "credit"
TYPE_DEBIT = "debit"

PAYMENT_CASH = "cash"
PAYMENT_UPI = "upi"
PAYMENT_CARD = "card"


@dataclass(frozen=True)
class BalanceEffects:
    """What one transaction does to the books."""
    vendor_delta_cents: int = 0
    cash_delta_cents: int = 0
    sell_event_type: Optional[str] = None
    sell_event_amount_cents: Optional[int] = None


@dataclass(frozen=True)
class TransactionPolicy:
    transaction_type: str
    vendor_required: bool
    device_required: bool
    payment_mode_required: bool
    moves_vendor_balance: bool
    device_event_type: Optional[str]
    effects: Callable[[int, Optional[str], int], BalanceEffects]

    def missing_fields(self, *, vendor_id, device_id, payment_mode) -> list[str]:
        missing = []
        if self.vendor_required and vendor_id is None:
            missing.append("vendor_id")
        if self.device_required and device_id is None:
            missing.append("device_id")
        if self.payment_mode_required and not payment_mode:
            missing.append("payment_mode")
        return missing


def _sell_effects(amount: int, payment_mode: Optional[str], vendor_owed: int) -> BalanceEffects:
    # upi/card money lands outside the cash balance
    return BalanceEffects(
        vendor_delta_cents=-amount,
        cash_delta_cents=amount if payment_mode == PAYMENT_CASH else 0,
        sell_event_type=SELL_EVENT_SELL,
        sell_event_amount_cents=amount,
    )


def _return_effects(amount: int, payment_mode: Optional[str], vendor_owed: int) -> BalanceEffects:
    deduct_from_vendor = min(amount, max(vendor_owed, 0))
    remaining = amount - deduct_from_vendor
    cash_delta = 0
    # Non-cash remainders are settled outside the system: no balance moves.
    if remaining > 0 and payment_mode == PAYMENT_CASH:
        cash_delta = -remaining
    return BalanceEffects(
        vendor_delta_cents=-deduct_from_vendor,
        cash_delta_cents=cash_delta,
        sell_event_type=SELL_EVENT_RETURN,
        sell_event_amount_cents=amount,
    )


def _investment_effects(amount: int, payment_mode: Optional[str], vendor_owed: int) -> BalanceEffects:
    return BalanceEffects(
        vendor_delta_cents=-amount,
        cash_delta_cents=amount if payment_mode == PAYMENT_CASH else 0,
    )


def _credit_effects(amount: int, payment_mode: Optional[str], vendor_owed: int) -> BalanceEffects:
    return BalanceEffects(cash_delta_cents=amount)


def _debit_effects(amount: int, payment_mode: Optional[str], vendor_owed: int) -> BalanceEffects:
    return BalanceEffects(cash_delta_cents=-amount)


POLICIES: dict[str, TransactionPolicy] = {
    TYPE_SELL: TransactionPolicy(
        transaction_type=TYPE_SELL,
        vendor_required=True,
        device_required=False,
        payment_mode_required=True,
        moves_vendor_balance=True,
        device_event_type=SELL_EVENT_SELL,
        effects=_sell_effects,
    ),
    TYPE_RETURN: TransactionPolicy(
        transaction_type=TYPE_RETURN,
        vendor_required=True,
        device_required=True,
        payment_mode_required=True,
        moves_vendor_balance=True,
        device_event_type=SELL_EVENT_RETURN,
        effects=_return_effects,
    ),
    TYPE_INVESTMENT: TransactionPolicy(
        transaction_type=TYPE_INVESTMENT,
        vendor_required=True,
        device_required=False,
        payment_mode_required=True,
        moves_vendor_balance=True,
        device_event_type=None,
        effects=_investment_effects,
    ),
    TYPE_CREDIT: TransactionPolicy(
        transaction_type=TYPE_CREDIT,
        vendor_required=False,
        device_required=False,
        payment_mode_required=False,
        moves_vendor_balance=False,
        device_event_type=None,
        effects=_credit_effects,
    ),
    TYPE_DEBIT: TransactionPolicy(
        transaction_type=TYPE_DEBIT,
        vendor_required=False,
        device_required=False,
        payment_mode_required=False,
        moves_vendor_balance=False,
        device_event_type=None,
        effects=_debit_effects,
    ),
}


def get_policy(transaction_type: str) -> TransactionPolicy:
    try:
        return POLICIES[transaction_type]
    except (KeyError, TypeError):
        raise ValidationError(
            f"Invalid transaction type '{transaction_type}'. "
            f"Must be one of: {', '.join(TRANSACTION_TYPES)}"
        )


def validate_payment_mode(payment_mode: Optional[str]) -> None:
    if payment_mode is not None and payment_mode not in PAYMENT_MODES:
        raise ValidationError(
            f"Invalid payment_mode '{payment_mode}'. Must be one of: {', '.join(PAYMENT_MODES)}"
        )


def plan_effects(
    transaction_type: str,
    *,
    amount_cents: int,
    payment_mode: Optional[str],
    vendor_owed_cents: int = 0,
) -> BalanceEffects:
    """Balance effects of a validated transaction; pure."""
    return get_policy(transaction_type).effects(amount_cents, payment_mode, vendor_owed_cents)
