# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

WHY: Vendors are the counterparties of every sell, return and investment.
Their amount_cents is the running balance the ledger moves.

MULTI-TENANT: Vendors are scoped to partners via partner_id.
Vendor names are unique within a partner (case-insensitive) among
non-deleted vendors.

DESIGN:
- amount_cents is not writable through update_vendor; after creation it
  only moves through the ledger (balance_service).
- An opening balance given at creation is journaled, so reconciliation
  sees it.
- Inactive vendors still take part in transactions; deleted ones do not.
"""

from flask import current_app

from ..extensions import db
from ..models import Vendor, ACCOUNT_KIND_VENDOR
from ..validation import ConflictError, ValidationError, coerce_int, MAX_AMOUNT_CENTS
from ..time_utils import utcnow
from .balance_service import record_opening_balance
from .tenant_service import require_partner, require_vendor_in_partner


def _normalize_name(name: str | None) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Vendor name is required")
    name = str(name).strip()
    if len(name) > 255:
        raise ValidationError("Vendor name exceeds max length 255")
    return name


def _ensure_unique_name(partner_id: int, name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Vendor).filter(
        Vendor.partner_id == partner_id,
        Vendor.is_deleted.is_(False),
        db.func.lower(Vendor.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Vendor.id != exclude_id)
    if query.first():
        raise ConflictError(f"Vendor '{name}' already exists")


def create_vendor(*, partner_id: int, name: str, amount_cents=0) -> Vendor:
    """
    Create a new vendor.

    Args:
        partner_id: Owning partner
        name: Vendor name (unique per partner, case-insensitive)
        amount_cents: Opening balance (signed; positive means the vendor owes the partner)

    Raises:
        ValidationError: blank name or bad amount
        ConflictError: duplicate name
        NotFoundError: partner missing
    """
    partner = require_partner(partner_id)
    name = _normalize_name(name)
    opening = coerce_int("amount_cents", amount_cents if amount_cents not in (None, "") else 0)
    if abs(opening) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"amount_cents cannot exceed {MAX_AMOUNT_CENTS}")

    _ensure_unique_name(partner.id, name)

    vendor = Vendor(partner_id=partner.id, name=name, amount_cents=opening, is_active=True)
    db.session.add(vendor)
    db.session.flush()

    record_opening_balance(
        partner_id=partner.id,
        account_kind=ACCOUNT_KIND_VENDOR,
        account_id=vendor.id,
        amount_cents=opening,
    )

    db.session.commit()
    current_app.logger.info("Created vendor %s for partner %s (opening %s)", vendor.id, partner.id, opening)
    return vendor


def update_vendor(partner_id: int, vendor_id: int, *, name: str | None = None) -> Vendor:
    vendor = require_vendor_in_partner(vendor_id, partner_id)

    if name is not None:
        name = _normalize_name(name)
        _ensure_unique_name(partner_id, name, exclude_id=vendor.id)
        vendor.name = name

    vendor.updated_at = utcnow()
    db.session.commit()
    return vendor


def get_vendor(partner_id: int, vendor_id: int) -> Vendor:
    return require_vendor_in_partner(vendor_id, partner_id)


def list_vendors(
    partner_id: int,
    *,
    include_inactive: bool = True,
    search: str | None = None,
) -> list[Vendor]:
    """
    List a partner's non-deleted vendors ordered by name.

    Args:
        partner_id: Owning partner
        include_inactive: If False, only active vendors are returned
        search: Optional case-insensitive name fragment
    """
    require_partner(partner_id)
    query = db.session.query(Vendor).filter(
        Vendor.partner_id == partner_id,
        Vendor.is_deleted.is_(False),
    )

    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True))

    if search:
        query = query.filter(Vendor.name.ilike(f"%{search.strip()}%"))

    return query.order_by(Vendor.name.asc(), Vendor.id.asc()).all()


def toggle_vendor_active(partner_id: int, vendor_id: int) -> Vendor:
    vendor = require_vendor_in_partner(vendor_id, partner_id)
    vendor.is_active = not vendor.is_active
    vendor.updated_at = utcnow()
    db.session.commit()
    return vendor


def soft_delete_vendor(partner_id: int, vendor_id: int) -> Vendor:
    """
    Soft delete a vendor. Its balance and history are kept as-is; the name
    becomes available again for a new vendor.
    """
    vendor = require_vendor_in_partner(vendor_id, partner_id)
    vendor.is_deleted = True
    vendor.updated_at = utcnow()
    db.session.commit()
    current_app.logger.info(
        "Soft-deleted vendor %s of partner %s (balance %s)",
        vendor.id, partner_id, vendor.amount_cents,
    )
    return vendor
