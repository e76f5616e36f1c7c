"""
Pytest fixtures for the partner CRM backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

import pytest
from crm import create_app
from crm.extensions import db
from crm.services import device_service, partner_service, vendor_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF_SECONDS': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def partner(db_session):
    """Partner A (first tenant) with zero cash."""
    return partner_service.create_partner(email="owner@acme.test", name="Acme Phones")


@pytest.fixture(scope='function')
def other_partner(db_session):
    """Partner B (second tenant)."""
    return partner_service.create_partner(email="owner@beta.test", name="Beta Mobiles")


@pytest.fixture(scope='function')
def company(db_session, partner):
    return partner_service.create_company(partner_id=partner.id, name="Acme Corp")


@pytest.fixture(scope='function')
def employee(db_session, partner):
    return partner_service.create_employee(partner_id=partner.id, name="Ravi")


@pytest.fixture(scope='function')
def vendor(db_session, partner):
    """Vendor with a zero balance."""
    return vendor_service.create_vendor(partner_id=partner.id, name="Metro Traders")


@pytest.fixture(scope='function')
def make_device(db_session, partner, company):
    """Factory for devices owned by Partner A."""
    def _make(**overrides):
        payload = {
            "company_id": company.id,
            "brand": "Samsung",
            "model": "Galaxy S21",
            "imei1": "356789012345678",
        }
        payload.update(overrides)
        return device_service.create_device(
            partner_id=partner.id,
            author_type="partner",
            author_id=partner.id,
            payload=payload,
        )
    return _make


@pytest.fixture(scope='function')
def device(make_device):
    return make_device()


@pytest.fixture(scope='function')
def headers(partner):
    """Tenant context headers for Partner A."""
    return {'X-Partner-Id': str(partner.id)}


@pytest.fixture(scope='function')
def employee_headers(partner, employee):
    """Tenant context headers for an employee of Partner A."""
    return {'X-Partner-Id': str(partner.id), 'X-Employee-Id': str(employee.id)}
