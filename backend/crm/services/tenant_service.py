"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Every ledger operation is scoped to one partner, and references taken
from client input (vendor, device, employee ids) must be validated against
that partner before anything is written.

SECURITY INVARIANTS:
1. Soft-deleted rows behave as missing.
2. A row that exists under another partner is reported as "not found",
   never as "forbidden", so ids of other tenants are not revealed.
3. Cross-tenant attempts are logged at WARNING.

USAGE:
    from crm.services.tenant_service import require_partner, require_vendor_in_partner

    partner = require_partner(partner_id)
    vendor = require_vendor_in_partner(vendor_id, partner.id)
"""

from flask import current_app

from ..extensions import db
from ..models import Partner, Vendor, Device, Employee, Company
from ..validation import NotFoundError
from .concurrency import lock_for_update


def require_partner(partner_id: int, *, for_update: bool = False) -> Partner:
    query = db.session.query(Partner).filter_by(id=partner_id)
    if for_update:
        query = lock_for_update(query)
    partner = query.first()
    if not partner or partner.is_deleted:
        raise NotFoundError(f"Partner {partner_id} not found")
    return partner


def require_vendor_in_partner(vendor_id: int, partner_id: int, *, for_update: bool = False) -> Vendor:
    query = db.session.query(Vendor).filter_by(id=vendor_id)
    if for_update:
        query = lock_for_update(query)
    return _require_owned(query.first(), "Vendor", vendor_id, partner_id)


def require_device_in_partner(device_id: int, partner_id: int, *, for_update: bool = False) -> Device:
    query = db.session.query(Device).filter_by(id=device_id)
    if for_update:
        query = lock_for_update(query)
    return _require_owned(query.first(), "Device", device_id, partner_id)


def require_employee_in_partner(employee_id: int, partner_id: int) -> Employee:
    employee = db.session.query(Employee).filter_by(id=employee_id).first()
    return _require_owned(employee, "Employee", employee_id, partner_id)


def require_company_in_partner(company_id: int, partner_id: int) -> Company:
    company = db.session.query(Company).filter_by(id=company_id).first()
    return _require_owned(company, "Company", company_id, partner_id)


def _require_owned(row, label: str, row_id: int, partner_id: int):
    if row is None or row.is_deleted:
        raise NotFoundError(f"{label} {row_id} not found")

    if row.partner_id != partner_id:
        # CRITICAL: Cross-tenant access attempt
        current_app.logger.warning(
            "Cross-tenant reference denied: %s %s belongs to partner %s, not %s",
            label, row_id, row.partner_id, partner_id,
        )
        raise NotFoundError(f"{label} {row_id} not found")  # Don't reveal it exists for another partner

    return row
