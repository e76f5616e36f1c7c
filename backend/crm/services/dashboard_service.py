# Overview: Read-only dashboard aggregation over devices, vendors and transactions.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..lifecycle import DeviceLifecycle
from ..models import (
    Company,
    Device,
    DeviceSellEvent,
    Employee,
    Transaction,
    Vendor,
    PAYMENT_MODES,
)
from .tenant_service import require_partner
from .transaction_policy import (
    TYPE_CREDIT,
    TYPE_DEBIT,
    TYPE_INVESTMENT,
    TYPE_RETURN,
    TYPE_SELL,
)


def _count(model, partner_id: int, *, non_deleted: bool = True) -> int:
    query = db.session.query(func.count(model.id)).filter(model.partner_id == partner_id)
    if non_deleted:
        query = query.filter(model.is_deleted.is_(False))
    return int(query.scalar() or 0)


def _top(rows) -> dict | None:
    """Pick the (id, name, count) row with the highest count, lowest id on ties."""
    best = None
    for row_id, name, count in rows:
        if row_id is None:
            continue
        key = (-int(count), row_id)
        if best is None or key < best[0]:
            best = (key, {"id": row_id, "name": name, "count": int(count)})
    return best[1] if best else None


def _most_used(partner_id: int) -> dict:
    company_rows = (
        db.session.query(Company.id, Company.name, func.count(Device.id))
        .join(Device, Device.company_id == Company.id)
        .filter(Device.partner_id == partner_id, Device.is_deleted.is_(False))
        .group_by(Company.id, Company.name)
        .all()
    )
    employee_rows = (
        db.session.query(Employee.id, Employee.name, func.count(Device.id))
        .join(Device, Device.picked_by_id == Employee.id)
        .filter(Device.partner_id == partner_id, Device.is_deleted.is_(False))
        .group_by(Employee.id, Employee.name)
        .all()
    )
    vendor_rows = (
        db.session.query(Vendor.id, Vendor.name, func.count(DeviceSellEvent.id))
        .join(DeviceSellEvent, DeviceSellEvent.vendor_id == Vendor.id)
        .join(Device, Device.id == DeviceSellEvent.device_id)
        .filter(Device.partner_id == partner_id, Device.is_deleted.is_(False))
        .group_by(Vendor.id, Vendor.name)
        .all()
    )
    return {
        "company": _top(company_rows),
        "vendor": _top(vendor_rows),
        "employee": _top(employee_rows),
    }


def _device_stats(partner_id: int) -> dict:
    devices = (
        db.session.query(Device)
        .options(selectinload(Device.sell_history))
        .filter(Device.partner_id == partner_id, Device.is_deleted.is_(False))
        .all()
    )
    sold = returned = 0
    total_profit = 0
    for device in devices:
        state = device.lifecycle_state
        if state == DeviceLifecycle.SOLD:
            sold += 1
        elif state == DeviceLifecycle.RETURNED:
            returned += 1
        total_profit += device.profit_cents or 0
    return {
        "total_devices": len(devices),
        "sold_devices": sold,
        "returned_devices": returned,
        "total_profit_cents": total_profit,
    }


def _payment_modes(partner_id: int) -> dict:
    received = {mode: 0 for mode in PAYMENT_MODES}
    returned = {mode: 0 for mode in PAYMENT_MODES}
    rows = (
        db.session.query(
            Transaction.transaction_type,
            Transaction.payment_mode,
            func.coalesce(func.sum(Transaction.amount_cents), 0),
        )
        .filter(Transaction.partner_id == partner_id, Transaction.payment_mode.isnot(None))
        .group_by(Transaction.transaction_type, Transaction.payment_mode)
        .all()
    )
    for txn_type, mode, total in rows:
        bucket = returned if txn_type == TYPE_RETURN else received
        if mode in bucket:
            bucket[mode] += int(total)
    return {"received": received, "returned": returned}


def _financial(partner) -> dict:
    totals = dict(
        db.session.query(
            Transaction.transaction_type,
            func.coalesce(func.sum(Transaction.amount_cents), 0),
        )
        .filter(Transaction.partner_id == partner.id)
        .group_by(Transaction.transaction_type)
        .all()
    )
    return {
        "total_investment_cents": int(totals.get(TYPE_INVESTMENT, 0)),
        "total_sales_cents": int(totals.get(TYPE_SELL, 0)),
        "total_returns_cents": int(totals.get(TYPE_RETURN, 0)),
        "total_credit_cents": int(totals.get(TYPE_CREDIT, 0)),
        "total_debit_cents": int(totals.get(TYPE_DEBIT, 0)),
        "current_cash_cents": partner.cash_amount_cents or 0,
    }


def get_dashboard_stats(partner_id: int) -> dict:
    """
    Dashboard numbers for one partner. Read-only.

    Deleted companies, vendors, employees and devices are excluded from the
    counts; every transaction counts. Device sold/returned totals follow
    each device's last sell event.
    """
    partner = require_partner(partner_id)

    return {
        "counts": {
            "companies": _count(Company, partner.id),
            "vendors": _count(Vendor, partner.id),
            "employees": _count(Employee, partner.id),
            "devices": _count(Device, partner.id),
            "transactions": _count(Transaction, partner.id, non_deleted=False),
        },
        "most_used": _most_used(partner.id),
        "device_stats": _device_stats(partner.id),
        "payment_modes": _payment_modes(partner.id),
        "financial": _financial(partner),
    }
