# Overview: Pytest coverage for concurrent ledger writes and the optimistic retry loop.

"""
Concurrency Tests

Concurrent writers need a real file-backed database: every thread gets its
own app context, session and connection. The in-memory database used by
the other tests is a single shared connection and cannot show races.
"""

import threading

import pytest
from sqlalchemy.orm.exc import StaleDataError

from crm import create_app
from crm.extensions import db
from crm.models import Partner, Transaction, Vendor
from crm.services import device_service, partner_service, vendor_service
from crm.services.balance_service import reconcile_balances
from crm.services.concurrency import run_with_retry
from crm.services.transaction_service import record_transaction
from crm.validation import ConcurrencyError


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 30}},
        'LEDGER_RETRY_ATTEMPTS': 25,
        'LEDGER_RETRY_BACKOFF_SECONDS': 0.01,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _run_concurrently(app, jobs):
    """Start every job at once, each in its own thread and app context."""
    barrier = threading.Barrier(len(jobs))
    errors = []

    def worker(job):
        with app.app_context():
            barrier.wait()
            try:
                job()
            except Exception as exc:  # collected and asserted by the caller
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


class TestConcurrentReturns:

    def test_scenario_d_two_returns_against_owed_vendor(self, file_app):
        with file_app.app_context():
            partner = partner_service.create_partner(email="race@shop.test")
            company = partner_service.create_company(partner_id=partner.id, name="Race Co")
            vendor = vendor_service.create_vendor(partner_id=partner.id, name="Owing Vendor", amount_cents=300)
            device_ids = [
                device_service.create_device(
                    partner_id=partner.id, author_type="partner", author_id=partner.id,
                    payload={"company_id": company.id, "brand": "Nokia", "model": "3310", "imei1": str(n)},
                ).id
                for n in range(2)
            ]
            partner_id, vendor_id = partner.id, vendor.id

        def make_return(device_id):
            def job():
                record_transaction(
                    partner_id=partner_id, author_type="partner", author_id=partner_id,
                    transaction_type="return", amount_cents=400, payment_mode="cash",
                    vendor_id=vendor_id, device_id=device_id,
                )
            return job

        errors = _run_concurrently(file_app, [make_return(d) for d in device_ids])
        assert errors == []

        with file_app.app_context():
            assert db.session.get(Vendor, vendor_id).amount_cents == 0
            # first return: 300 from the vendor, 100 cash; second: 400 cash
            assert db.session.get(Partner, partner_id).cash_amount_cents == -500
            assert db.session.query(Transaction).count() == 2
            assert reconcile_balances(partner_id) == []


class TestConcurrentSells:

    def test_no_lost_updates(self, file_app):
        with file_app.app_context():
            partner = partner_service.create_partner(email="busy@shop.test")
            vendor = vendor_service.create_vendor(partner_id=partner.id, name="Busy Vendor")
            partner_id, vendor_id = partner.id, vendor.id

        def sell():
            record_transaction(
                partner_id=partner_id, author_type="partner", author_id=partner_id,
                transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=vendor_id,
            )

        errors = _run_concurrently(file_app, [sell for _ in range(6)])
        assert errors == []

        with file_app.app_context():
            assert db.session.get(Vendor, vendor_id).amount_cents == -600
            assert db.session.get(Partner, partner_id).cash_amount_cents == 600
            assert reconcile_balances(partner_id) == []


class TestRetryLoop:

    def test_gives_up_with_concurrency_error(self, app, db_session):
        calls = []

        def always_stale():
            calls.append(1)
            raise StaleDataError("row changed")

        with pytest.raises(ConcurrencyError):
            run_with_retry(always_stale, attempts=3, backoff_base=0)
        assert len(calls) == 3

    def test_retries_then_succeeds(self, app, db_session):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise StaleDataError("row changed")
            return "ok"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 2

    def test_other_errors_are_not_retried(self, app, db_session):
        calls = []

        def broken():
            calls.append(1)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            run_with_retry(broken, attempts=3, backoff_base=0)
        assert len(calls) == 1
