# Overview: Service-layer operations for devices; CRUD plus the sell-history append used by the ledger.

"""
Device Service

WHY: Devices are the inventory the partner resells. Their ownership trail
(sell_history) is only ever appended by the ledger; this module owns the
append primitive and the soft delete, which must compensate the vendor
balance of the last sale.

MULTI-TENANT: Every lookup is scoped by partner_id through tenant_service.
"""

from __future__ import annotations

import secrets
import string

from flask import current_app

from ..extensions import db
from ..lifecycle import SELL_EVENT_SELL, SELL_EVENT_TYPES, last_sell_event
from ..models import Device, DeviceSellEvent, Vendor, AUTHOR_TYPES
from ..validation import (
    ValidationError,
    NotFoundError,
    ModelValidationPolicy,
    coerce_int,
    enforce_rules_device,
    validate_payload,
)
from ..time_utils import utcnow
from .balance_service import REASON_DEVICE_SOFT_DELETE, apply_vendor_delta
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import (
    require_company_in_partner,
    require_device_in_partner,
    require_employee_in_partner,
    require_partner,
)


DEVICE_CODE_PREFIX = "DEV-"
DEVICE_CODE_ALPHABET = string.digits + string.ascii_uppercase
DEVICE_CODE_LENGTH = 8

DEVICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "company_id",
        "picked_by_id",
        "date",
        "service_number",
        "brand",
        "model",
        "imei1",
        "imei2",
        "initial_cost_cents",
        "cost_cents",
        "extra_amount_cents",
        "credit_cents",
        "per_credit_cents",
        "commission_cents",
        "gst_cents",
        "total_cost_cents",
        "profit_cents",
        "box",
        "warranty",
        "issues",
    },
    required_on_create={"company_id", "brand", "model", "imei1"},
)


def generate_device_code() -> str:
    return DEVICE_CODE_PREFIX + "".join(
        secrets.choice(DEVICE_CODE_ALPHABET) for _ in range(DEVICE_CODE_LENGTH)
    )


def _unique_device_code(max_tries: int = 10) -> str:
    for _ in range(max_tries):
        code = generate_device_code()
        if not db.session.query(Device.id).filter_by(device_code=code).first():
            return code
    raise RuntimeError("Could not generate a unique device code")


def _check_references(partner_id: int, patch: dict) -> None:
    if patch.get("company_id") is not None:
        require_company_in_partner(patch["company_id"], partner_id)
    if patch.get("picked_by_id") is not None:
        require_employee_in_partner(patch["picked_by_id"], partner_id)


def create_device(*, partner_id: int, author_type: str, author_id: int, payload: dict) -> Device:
    """
    Create a device with a fresh DEV-XXXXXXXX code and an empty sell history.

    Vendor balances are not touched here; money only moves through the
    ledger.
    """
    if author_type not in AUTHOR_TYPES:
        raise ValidationError(
            f"Invalid author_type '{author_type}'. Must be one of: {', '.join(AUTHOR_TYPES)}"
        )
    patch = validate_payload(model=Device, payload=payload, policy=DEVICE_POLICY, partial=False)
    enforce_rules_device(patch)

    partner = require_partner(partner_id)
    _check_references(partner.id, patch)
    if author_type == "employee":
        require_employee_in_partner(author_id, partner.id)

    device = Device(
        partner_id=partner.id,
        device_code=_unique_device_code(),
        author_type=author_type,
        author_id=author_id,
        **patch,
    )
    if device.date is None:
        device.date = utcnow()
    db.session.add(device)
    db.session.commit()

    current_app.logger.info("Created device %s (%s) for partner %s", device.id, device.device_code, partner.id)
    return device


def get_device(partner_id: int, device_id: int) -> Device:
    return require_device_in_partner(device_id, partner_id)


def get_device_by_code(partner_id: int, device_code: str) -> Device:
    code = (device_code or "").strip().upper()
    device = db.session.query(Device).filter_by(device_code=code).first()
    if not device or device.is_deleted or device.partner_id != partner_id:
        raise NotFoundError(f"Device {device_code} not found")
    return device


def list_devices(
    partner_id: int,
    *,
    company_id: int | None = None,
    include_inactive: bool = True,
) -> list[Device]:
    require_partner(partner_id)
    query = db.session.query(Device).filter(
        Device.partner_id == partner_id,
        Device.is_deleted.is_(False),
    )
    if company_id is not None:
        query = query.filter(Device.company_id == coerce_int("company_id", company_id))
    if not include_inactive:
        query = query.filter(Device.is_active.is_(True))
    return query.order_by(Device.date.desc(), Device.id.desc()).all()


def update_device(partner_id: int, device_id: int, payload: dict) -> Device:
    """Apply a validated patch. profit_cents is a plain snapshot field here."""
    patch = validate_payload(model=Device, payload=payload, policy=DEVICE_POLICY, partial=True)
    enforce_rules_device(patch)

    device = require_device_in_partner(device_id, partner_id)
    _check_references(partner_id, patch)

    for key, value in patch.items():
        setattr(device, key, value)
    device.updated_at = utcnow()
    db.session.commit()
    return device


def toggle_device_active(partner_id: int, device_id: int) -> Device:
    device = require_device_in_partner(device_id, partner_id)
    device.is_active = not device.is_active
    device.updated_at = utcnow()
    db.session.commit()
    return device


def append_sell_event(
    device: Device,
    *,
    event_type: str,
    vendor_id: int,
    amount_cents: int,
    transaction_id: int | None = None,
) -> DeviceSellEvent:
    """
    Append one event to the device's ownership log.

    Caller owns the DB transaction. The device row is touched so its
    version_id moves; two writers appending to the same log cannot both
    commit.
    """
    if event_type not in SELL_EVENT_TYPES:
        raise ValidationError(f"Invalid sell event type '{event_type}'")

    ev = DeviceSellEvent(
        sequence=len(device.sell_history),
        event_type=event_type,
        vendor_id=vendor_id,
        transaction_id=transaction_id,
    )
    if event_type == SELL_EVENT_SELL:
        ev.selling_cents = amount_cents
    else:
        ev.return_amount_cents = amount_cents
    device.sell_history.append(ev)
    device.updated_at = utcnow()
    return ev


def soft_delete_device(partner_id: int, device_id: int) -> Device:
    """
    Mark a device deleted and reverse the vendor debt of its last sale.

    If the device was ever sold, the vendor of the most recent sell event
    gets Vendor.amount -= selling through the balance primitive, in the
    same DB transaction as the delete.

    Raises:
        ValidationError: device already deleted
        NotFoundError: device missing or owned by another partner
    """
    def _op():
        device = lock_for_update(db.session.query(Device).filter_by(id=device_id)).first()
        if not device or device.partner_id != partner_id:
            raise NotFoundError(f"Device {device_id} not found")
        if device.is_deleted:
            raise ValidationError(f"Device {device_id} is already deleted")

        adjustment = None
        last_sell = last_sell_event(device.sell_history)
        if last_sell is not None:
            # The vendor may itself be soft-deleted by now; its balance still moves.
            vendor = lock_for_update(db.session.query(Vendor).filter_by(id=last_sell.vendor_id)).one()
            apply_vendor_delta(
                vendor, -last_sell.selling_cents,
                reason=REASON_DEVICE_SOFT_DELETE, device_id=device.id,
            )
            adjustment = (vendor.id, -last_sell.selling_cents)

        device.is_deleted = True
        device.updated_at = utcnow()
        db.session.flush()
        return device, adjustment

    device, adjustment = run_with_retry(_op)

    if adjustment is not None:
        current_app.logger.info(
            "Soft-deleted device %s; vendor %s adjusted by %s",
            device_id, adjustment[0], adjustment[1],
        )
    else:
        current_app.logger.info("Soft-deleted device %s; no sale to reverse", device_id)
    return device
