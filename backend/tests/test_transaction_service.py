# Overview: Pytest coverage for the ledger engine (record_transaction) and transaction reads.

"""
Ledger Engine Tests

Covers:
- Balance propagation per transaction type (cash and non-cash)
- Return apportionment against the vendor balance
- Device sell-history appends and derived lifecycle state
- Validation and reference errors leave the books untouched
- Append-only transactions and balance journal consistency
- Filtering, search and export of transactions
"""

from datetime import datetime

import pytest

from crm.extensions import db
from crm.lifecycle import DeviceLifecycle
from crm.models import AppendOnlyViolation, BalanceEvent, Transaction, Vendor, Partner, Device
from crm.services import device_service, transaction_service, vendor_service
from crm.services.balance_service import reconcile_balances
from crm.services.transaction_service import (
    export_transactions,
    get_transaction,
    get_transactions,
    record_transaction,
)
from crm.validation import NotFoundError, ValidationError


def _record(partner, **kwargs):
    params = {
        "partner_id": partner.id,
        "author_type": "partner",
        "author_id": partner.id,
    }
    params.update(kwargs)
    return record_transaction(**params)


def _reload(model, row_id):
    db.session.expire_all()
    return db.session.get(model, row_id)


class TestSell:

    def test_scenario_a_cash_sell(self, partner, vendor):
        """Vendor at 0, cash sell of 500: vendor -500, cash +500."""
        txn = _record(partner, transaction_type="sell", amount_cents=500, payment_mode="cash", vendor_id=vendor.id)

        assert txn.id is not None
        assert _reload(Vendor, vendor.id).amount_cents == -500
        assert _reload(Partner, partner.id).cash_amount_cents == 500

    @pytest.mark.parametrize("mode", ["upi", "card"])
    def test_non_cash_sell_leaves_cash(self, partner, vendor, mode):
        _record(partner, transaction_type="sell", amount_cents=500, payment_mode=mode, vendor_id=vendor.id)

        assert _reload(Vendor, vendor.id).amount_cents == -500
        assert _reload(Partner, partner.id).cash_amount_cents == 0

    def test_sell_with_device_appends_sell_event(self, partner, vendor, device):
        txn = _record(
            partner, transaction_type="sell", amount_cents=800, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )

        dev = _reload(Device, device.id)
        assert len(dev.sell_history) == 1
        event = dev.sell_history[0]
        assert event.event_type == "sell"
        assert event.selling_cents == 800
        assert event.return_amount_cents is None
        assert event.vendor_id == vendor.id
        assert event.transaction_id == txn.id
        assert dev.lifecycle_state == DeviceLifecycle.SOLD

    def test_sell_without_device_leaves_devices_alone(self, partner, vendor, device):
        _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=vendor.id)
        assert _reload(Device, device.id).sell_history == []


class TestReturn:

    def test_scenario_b_cash_return_above_owed(self, partner, device):
        """Vendor owes 300, cash return of 500: vendor 0, cash -200, one return event."""
        vendor = vendor_service.create_vendor(partner_id=partner.id, name="Owing Vendor", amount_cents=300)

        _record(
            partner, transaction_type="return", amount_cents=500, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )

        assert _reload(Vendor, vendor.id).amount_cents == 0
        assert _reload(Partner, partner.id).cash_amount_cents == -200
        dev = _reload(Device, device.id)
        assert [e.event_type for e in dev.sell_history] == ["return"]
        assert dev.sell_history[0].return_amount_cents == 500
        assert dev.sell_history[0].selling_cents is None
        assert dev.lifecycle_state == DeviceLifecycle.RETURNED

    @pytest.mark.parametrize("mode", ["cash", "upi", "card"])
    def test_return_within_owed_never_touches_cash(self, partner, device, mode):
        vendor = vendor_service.create_vendor(partner_id=partner.id, name="Owing Vendor", amount_cents=300)

        _record(
            partner, transaction_type="return", amount_cents=200, payment_mode=mode,
            vendor_id=vendor.id, device_id=device.id,
        )

        assert _reload(Vendor, vendor.id).amount_cents == 100
        assert _reload(Partner, partner.id).cash_amount_cents == 0

    def test_non_cash_remainder_is_not_debited(self, partner, device):
        vendor = vendor_service.create_vendor(partner_id=partner.id, name="Owing Vendor", amount_cents=300)

        _record(
            partner, transaction_type="return", amount_cents=500, payment_mode="upi",
            vendor_id=vendor.id, device_id=device.id,
        )

        assert _reload(Vendor, vendor.id).amount_cents == 0
        assert _reload(Partner, partner.id).cash_amount_cents == 0

    def test_sell_then_return_sequence(self, partner, vendor, device):
        _record(
            partner, transaction_type="sell", amount_cents=500, payment_mode="card",
            vendor_id=vendor.id, device_id=device.id,
        )
        _record(
            partner, transaction_type="return", amount_cents=500, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )

        dev = _reload(Device, device.id)
        assert [e.sequence for e in dev.sell_history] == [0, 1]
        assert [e.event_type for e in dev.sell_history] == ["sell", "return"]
        # vendor went to -500 on the sale, so nothing is owed: whole return is cash
        assert _reload(Vendor, vendor.id).amount_cents == -500
        assert _reload(Partner, partner.id).cash_amount_cents == -500


class TestCreditDebitInvestment:

    def test_scenario_c_credit(self, partner, vendor, device):
        txn = _record(partner, transaction_type="credit", amount_cents=1000)

        assert txn.transaction_type == "credit"
        assert _reload(Partner, partner.id).cash_amount_cents == 1000
        assert _reload(Vendor, vendor.id).amount_cents == 0
        assert _reload(Device, device.id).sell_history == []
        assert db.session.query(Transaction).count() == 1

    def test_debit(self, partner):
        _record(partner, transaction_type="debit", amount_cents=400, note="rent")
        assert _reload(Partner, partner.id).cash_amount_cents == -400

    def test_investment(self, partner, vendor):
        _record(partner, transaction_type="investment", amount_cents=700, payment_mode="cash", vendor_id=vendor.id)

        assert _reload(Vendor, vendor.id).amount_cents == -700
        assert _reload(Partner, partner.id).cash_amount_cents == 700

    def test_credit_with_vendor_reference_moves_cash_only(self, partner, vendor):
        txn = _record(partner, transaction_type="credit", amount_cents=300, vendor_id=vendor.id)

        assert txn.vendor_id == vendor.id
        assert _reload(Vendor, vendor.id).amount_cents == 0
        assert _reload(Partner, partner.id).cash_amount_cents == 300


class TestValidation:

    def test_missing_fields_are_named(self, partner):
        with pytest.raises(ValidationError) as exc:
            _record(partner, transaction_type="return", amount_cents=100)

        message = str(exc.value)
        assert "vendor_id" in message
        assert "device_id" in message
        assert "payment_mode" in message
        assert db.session.query(Transaction).count() == 0

    @pytest.mark.parametrize("amount", [0, -5, "abc", 1.5])
    def test_bad_amount_rejected(self, partner, amount):
        with pytest.raises(ValidationError):
            _record(partner, transaction_type="credit", amount_cents=amount)

    def test_unknown_type_rejected(self, partner):
        with pytest.raises(ValidationError):
            _record(partner, transaction_type="refund", amount_cents=100)

    def test_unknown_payment_mode_rejected(self, partner, vendor):
        with pytest.raises(ValidationError):
            _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cheque", vendor_id=vendor.id)

    def test_partner_author_must_be_the_partner(self, partner, other_partner):
        with pytest.raises(ValidationError):
            _record(partner, transaction_type="credit", amount_cents=100, author_id=other_partner.id)

    def test_string_date_accepted(self, partner):
        txn = _record(partner, transaction_type="credit", amount_cents=100, date="2025-03-01T10:30:00Z")
        assert txn.date == datetime(2025, 3, 1, 10, 30)


class TestReferences:

    def test_unknown_partner(self, db_session):
        with pytest.raises(NotFoundError):
            record_transaction(
                partner_id=999, author_type="partner", author_id=999,
                transaction_type="credit", amount_cents=100,
            )

    def test_unknown_vendor_writes_nothing(self, partner):
        with pytest.raises(NotFoundError):
            _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=999)

        assert db.session.query(Transaction).count() == 0
        assert _reload(Partner, partner.id).cash_amount_cents == 0

    def test_other_partners_vendor_is_not_found(self, partner, other_partner):
        foreign = vendor_service.create_vendor(partner_id=other_partner.id, name="Foreign")

        with pytest.raises(NotFoundError):
            _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=foreign.id)

        assert _reload(Vendor, foreign.id).amount_cents == 0

    def test_deleted_vendor_is_not_found(self, partner, vendor):
        vendor_service.soft_delete_vendor(partner.id, vendor.id)

        with pytest.raises(NotFoundError):
            _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=vendor.id)

    def test_inactive_vendor_still_transacts(self, partner, vendor):
        vendor_service.toggle_vendor_active(partner.id, vendor.id)
        _record(partner, transaction_type="sell", amount_cents=100, payment_mode="cash", vendor_id=vendor.id)
        assert _reload(Vendor, vendor.id).amount_cents == -100

    def test_employee_author(self, partner, employee):
        txn = _record(partner, transaction_type="credit", amount_cents=100, author_type="employee", author_id=employee.id)
        assert txn.author_type == "employee"
        assert txn.author_id == employee.id

    def test_unknown_employee_author(self, partner):
        with pytest.raises(NotFoundError):
            _record(partner, transaction_type="credit", amount_cents=100, author_type="employee", author_id=999)


class TestAppendOnly:

    def test_transaction_cannot_be_updated(self, partner):
        txn = _record(partner, transaction_type="credit", amount_cents=100)
        txn.amount_cents = 999
        with pytest.raises(AppendOnlyViolation):
            db.session.flush()
        db.session.rollback()

    def test_transaction_cannot_be_deleted(self, partner):
        txn = _record(partner, transaction_type="credit", amount_cents=100)
        db.session.delete(txn)
        with pytest.raises(AppendOnlyViolation):
            db.session.flush()
        db.session.rollback()

    def test_sell_event_cannot_be_changed(self, partner, vendor, device):
        _record(
            partner, transaction_type="sell", amount_cents=100, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )
        event = _reload(Device, device.id).sell_history[0]
        event.selling_cents = 1
        with pytest.raises(AppendOnlyViolation):
            db.session.flush()
        db.session.rollback()

    def test_balance_event_cannot_be_deleted(self, partner):
        _record(partner, transaction_type="credit", amount_cents=100)
        entry = db.session.query(BalanceEvent).first()
        db.session.delete(entry)
        with pytest.raises(AppendOnlyViolation):
            db.session.flush()
        db.session.rollback()


class TestJournal:

    def test_every_change_is_journaled(self, partner, vendor, device):
        _record(partner, transaction_type="credit", amount_cents=1000)
        _record(
            partner, transaction_type="sell", amount_cents=500, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )
        _record(
            partner, transaction_type="return", amount_cents=200, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id,
        )

        assert reconcile_balances(partner.id) == []
        reasons = {e.reason for e in db.session.query(BalanceEvent).all()}
        assert reasons == {"transaction"}

    def test_drift_is_reported(self, partner, vendor):
        _record(partner, transaction_type="sell", amount_cents=500, payment_mode="cash", vendor_id=vendor.id)
        db.session.execute(db.update(Vendor).where(Vendor.id == vendor.id).values(amount_cents=1))
        db.session.commit()

        drift = reconcile_balances(partner.id)
        assert len(drift) == 1
        assert drift[0]["account_kind"] == "vendor"
        assert drift[0]["stored_cents"] == 1
        assert drift[0]["journal_cents"] == -500


class TestReads:

    def _seed(self, partner, vendor, device):
        _record(partner, transaction_type="credit", amount_cents=100, note="Opening float", date="2025-01-10T09:00:00")
        _record(
            partner, transaction_type="sell", amount_cents=500, payment_mode="cash",
            vendor_id=vendor.id, device_id=device.id, date="2025-01-15T12:00:00",
        )
        _record(partner, transaction_type="debit", amount_cents=50, note="Tea", date="2025-01-15T23:30:00")
        _record(partner, transaction_type="debit", amount_cents=70, date="2025-01-20T08:00:00")

    def test_ordering_newest_first(self, partner, vendor, device):
        self._seed(partner, vendor, device)
        txns = get_transactions(partner.id)
        assert [t.amount_cents for t in txns] == [70, 50, 500, 100]

    def test_same_date_orders_by_id_desc(self, partner):
        first = _record(partner, transaction_type="credit", amount_cents=1, date="2025-02-01T00:00:00")
        second = _record(partner, transaction_type="credit", amount_cents=2, date="2025-02-01T00:00:00")
        assert [t.id for t in get_transactions(partner.id)] == [second.id, first.id]

    def test_filters(self, partner, vendor, device):
        self._seed(partner, vendor, device)

        assert [t.amount_cents for t in get_transactions(partner.id, transaction_type="debit")] == [70, 50]
        assert [t.amount_cents for t in get_transactions(partner.id, vendor_id=vendor.id)] == [500]
        # date-only end bound covers the whole day
        in_range = get_transactions(partner.id, start_date="2025-01-15", end_date="2025-01-15")
        assert [t.amount_cents for t in in_range] == [50, 500]

    def test_search_is_case_insensitive(self, partner, vendor, device):
        self._seed(partner, vendor, device)

        assert [t.amount_cents for t in get_transactions(partner.id, search="metro")] == [500]
        assert [t.amount_cents for t in get_transactions(partner.id, search="GALAXY")] == [500]
        assert [t.amount_cents for t in get_transactions(partner.id, search="tea")] == [50]
        assert [t.amount_cents for t in get_transactions(partner.id, search=device.device_code.lower())] == [500]

    def test_bad_date_filter(self, partner):
        with pytest.raises(ValidationError):
            get_transactions(partner.id, start_date="not-a-date")

    def test_get_transaction_scoped_to_partner(self, partner, other_partner):
        txn = _record(partner, transaction_type="credit", amount_cents=100)

        assert get_transaction(partner.id, txn.id).id == txn.id
        with pytest.raises(NotFoundError):
            get_transaction(other_partner.id, txn.id)

    def test_export_records(self, partner, vendor, device, employee):
        _record(
            partner, transaction_type="sell", amount_cents=500, payment_mode="upi",
            vendor_id=vendor.id, device_id=device.id, date="2025-01-15T12:00:00",
        )
        _record(
            partner, transaction_type="credit", amount_cents=100,
            author_type="employee", author_id=employee.id, date="2025-01-16T12:00:00",
        )

        records = export_transactions(partner.id)

        assert records[0]["type"] == "credit"
        assert records[0]["author_name"] == "Ravi"
        assert records[0]["vendor_name"] is None
        sell = records[1]
        assert sell["date"] == "2025-01-15T12:00:00Z"
        assert sell["vendor_name"] == "Metro Traders"
        assert sell["device_code"] == device.device_code
        assert sell["device_brand"] == "Samsung"
        assert sell["device_model"] == "Galaxy S21"
        assert sell["payment_mode"] == "upi"
        assert sell["author_name"] == "Acme Phones"


class TestAtomicity:

    @pytest.fixture
    def funded_vendor(self, partner):
        return vendor_service.create_vendor(partner_id=partner.id, name="Funded", amount_cents=700)

    def _assert_untouched(self, partner, vendor_id, journal_before):
        assert db.session.query(Transaction).count() == 0
        assert db.session.query(BalanceEvent).count() == journal_before
        assert _reload(Vendor, vendor_id).amount_cents == 700
        assert _reload(Partner, partner.id).cash_amount_cents == 0
        assert reconcile_balances(partner.id) == []

    def test_failed_sell_event_append_keeps_nothing(self, partner, funded_vendor, device, monkeypatch):
        journal_before = db.session.query(BalanceEvent).count()

        def fail_append(*args, **kwargs):
            raise RuntimeError("device log unavailable")

        monkeypatch.setattr(device_service, "append_sell_event", fail_append)

        with pytest.raises(RuntimeError):
            _record(
                partner, transaction_type="sell", amount_cents=400, payment_mode="cash",
                vendor_id=funded_vendor.id, device_id=device.id,
            )

        self._assert_untouched(partner, funded_vendor.id, journal_before)
        assert _reload(Device, device.id).sell_history == []

    def test_failed_cash_update_keeps_nothing(self, partner, funded_vendor, device, monkeypatch):
        journal_before = db.session.query(BalanceEvent).count()

        def fail_partner_delta(*args, **kwargs):
            raise RuntimeError("cash account unavailable")

        monkeypatch.setattr(transaction_service, "apply_partner_delta", fail_partner_delta)

        with pytest.raises(RuntimeError):
            _record(
                partner, transaction_type="sell", amount_cents=400, payment_mode="cash",
                vendor_id=funded_vendor.id, device_id=device.id,
            )

        self._assert_untouched(partner, funded_vendor.id, journal_before)
