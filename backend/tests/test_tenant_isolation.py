# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant references are denied.

Two partners are created; references owned by Partner B must look exactly
like missing rows to Partner A (NotFoundError, never a distinct
"forbidden"), and every denial is logged.
"""

import logging

import pytest

from crm.services import device_service, partner_service, vendor_service
from crm.services.tenant_service import (
    require_company_in_partner,
    require_device_in_partner,
    require_employee_in_partner,
    require_partner,
    require_vendor_in_partner,
)
from crm.validation import NotFoundError


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_vendor_in_own_partner(self, partner, vendor):
        assert require_vendor_in_partner(vendor.id, partner.id).id == vendor.id

    def test_vendor_cross_tenant(self, other_partner, vendor):
        with pytest.raises(NotFoundError) as exc:
            require_vendor_in_partner(vendor.id, other_partner.id)
        # Same message as a missing row
        assert str(exc.value) == f"Vendor {vendor.id} not found"

    def test_nonexistent_rows(self, partner):
        for helper in (
            require_vendor_in_partner,
            require_device_in_partner,
            require_employee_in_partner,
            require_company_in_partner,
        ):
            with pytest.raises(NotFoundError):
                helper(99999, partner.id)

    def test_deleted_partner_is_missing(self, partner, db_session):
        partner.is_deleted = True
        db_session.commit()
        with pytest.raises(NotFoundError):
            require_partner(partner.id)

    def test_cross_tenant_access_is_logged(self, app, other_partner, device, caplog):
        with caplog.at_level(logging.WARNING):
            with pytest.raises(NotFoundError):
                require_device_in_partner(device.id, other_partner.id)

        assert "Cross-tenant reference denied" in caplog.text


class TestCrossTenantOperations:

    def test_device_reads_blocked(self, other_partner, device):
        with pytest.raises(NotFoundError):
            device_service.get_device(other_partner.id, device.id)
        assert device_service.list_devices(other_partner.id) == []

    def test_device_employee_of_other_partner_rejected(self, other_partner, make_device):
        foreign_employee = partner_service.create_employee(partner_id=other_partner.id, name="Outsider")
        with pytest.raises(NotFoundError):
            make_device(picked_by_id=foreign_employee.id)

    def test_vendor_writes_blocked(self, other_partner, vendor):
        with pytest.raises(NotFoundError):
            vendor_service.update_vendor(other_partner.id, vendor.id, name="Hijacked")
        with pytest.raises(NotFoundError):
            vendor_service.soft_delete_vendor(other_partner.id, vendor.id)
