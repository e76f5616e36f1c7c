from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..lifecycle import SELL_EVENT_RETURN, SELL_EVENT_SELL, lifecycle_state
from ..time_utils import to_utc_z


class Vendor(db.Model):
    """
    Counterparty a partner sells devices to or buys them back from.

    MULTI-TENANT: Vendors are scoped to partners via partner_id.
    Names are unique per partner, case-insensitive, among non-deleted rows
    (enforced by vendor_service; soft-deleted rows keep their names).

    amount_cents is the net balance: positive means the vendor owes the
    partner, negative means the partner owes the vendor. Only the ledger
    mutates it, always through balance_service.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_partner_id", "partner_id"),
        db.Index("ix_vendors_partner_deleted", "partner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    partner = db.relationship("Partner", backref=db.backref("vendors", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r} partner_id={self.partner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "name": self.name,
            "amount_cents": self.amount_cents,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Device(db.Model):
    """
    Inventory item (a phone or similar) taken in for resale or repair.

    The ownership trail lives in sell_history (DeviceSellEvent rows). There
    is no status column: lifecycle_state is derived from the last event on
    every read.

    version_id serializes concurrent appends to the sell history: the
    ledger touches the device row whenever it appends an event.
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.Index("ix_devices_partner_deleted", "partner_id", "is_deleted"),
        db.CheckConstraint("author_type IN ('partner', 'employee')", name="ck_devices_author_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    picked_by_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    author_type = db.Column(db.String(16), nullable=False)
    author_id = db.Column(db.Integer, nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    service_number = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(128), nullable=False)
    model = db.Column(db.String(128), nullable=False)
    imei1 = db.Column(db.String(32), nullable=False)
    imei2 = db.Column(db.String(32), nullable=True)

    # Cost breakdown (minor currency units)
    initial_cost_cents = db.Column(db.BigInteger, nullable=False, default=0)
    cost_cents = db.Column(db.BigInteger, nullable=False, default=0)
    extra_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    credit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    per_credit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    commission_cents = db.Column(db.BigInteger, nullable=False, default=0)
    gst_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cost_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Snapshot taken at device-update time; never recomputed from the ledger
    profit_cents = db.Column(db.BigInteger, nullable=True)

    box = db.Column(db.String(64), nullable=True)
    warranty = db.Column(db.String(64), nullable=True)
    issues = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    partner = db.relationship("Partner", backref=db.backref("devices", lazy=True))
    company = db.relationship("Company", backref=db.backref("devices", lazy=True))
    picked_by = db.relationship("Employee", backref=db.backref("picked_devices", lazy=True))
    sell_history = db.relationship(
        "DeviceSellEvent",
        back_populates="device",
        order_by="DeviceSellEvent.sequence",
        lazy="select",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def lifecycle_state(self):
        return lifecycle_state(self.sell_history)

    def __repr__(self) -> str:
        return f"<Device id={self.id} code={self.device_code!r} partner_id={self.partner_id}>"

    def to_dict(self, include_history: bool = True) -> dict:
        data = {
            "id": self.id,
            "device_code": self.device_code,
            "partner_id": self.partner_id,
            "company_id": self.company_id,
            "picked_by_id": self.picked_by_id,
            "author_type": self.author_type,
            "author_id": self.author_id,
            "date": to_utc_z(self.date),
            "service_number": self.service_number,
            "brand": self.brand,
            "model": self.model,
            "imei1": self.imei1,
            "imei2": self.imei2,
            "initial_cost_cents": self.initial_cost_cents,
            "cost_cents": self.cost_cents,
            "extra_amount_cents": self.extra_amount_cents,
            "credit_cents": self.credit_cents,
            "per_credit_cents": self.per_credit_cents,
            "commission_cents": self.commission_cents,
            "gst_cents": self.gst_cents,
            "total_cost_cents": self.total_cost_cents,
            "profit_cents": self.profit_cents,
            "box": self.box,
            "warranty": self.warranty,
            "issues": self.issues,
            "lifecycle_state": self.lifecycle_state.value,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["sell_history"] = [ev.to_dict() for ev in self.sell_history]
        return data


class DeviceSellEvent(db.Model):
    """
    One entry of a device's ownership trail.

    APPEND-ONLY: rows are inserted by the ledger and never updated or
    deleted (guarded below). sequence is the 0-based position in the log;
    (device_id, sequence) is unique so two writers cannot claim one slot.
    """
    __tablename__ = "device_sell_events"
    __table_args__ = (
        db.UniqueConstraint("device_id", "sequence", name="uq_device_sell_events_device_seq"),
        db.CheckConstraint("event_type IN ('sell', 'return')", name="ck_device_sell_events_type"),
        db.CheckConstraint(
            "(event_type = 'sell' AND selling_cents IS NOT NULL AND return_amount_cents IS NULL) OR "
            "(event_type = 'return' AND return_amount_cents IS NOT NULL AND selling_cents IS NULL)",
            name="ck_device_sell_events_amounts",
        ),
        db.Index("ix_device_sell_events_vendor", "vendor_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)
    event_type = db.Column(db.String(16), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False)
    selling_cents = db.Column(db.BigInteger, nullable=True)
    return_amount_cents = db.Column(db.BigInteger, nullable=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    device = db.relationship("Device", back_populates="sell_history")
    vendor = db.relationship("Vendor")

    @property
    def amount_cents(self) -> int:
        if self.event_type == SELL_EVENT_SELL:
            return self.selling_cents
        return self.return_amount_cents

    def to_dict(self) -> dict:
        data = {
            "sequence": self.sequence,
            "type": self.event_type,
            "vendor_id": self.vendor_id,
            "transaction_id": self.transaction_id,
            "created_at": to_utc_z(self.created_at),
        }
        if self.event_type == SELL_EVENT_SELL:
            data["selling_cents"] = self.selling_cents
        elif self.event_type == SELL_EVENT_RETURN:
            data["return_amount_cents"] = self.return_amount_cents
        return data


class AppendOnlyViolation(RuntimeError):
    """Raised when code tries to modify or delete an append-only row."""


@event.listens_for(DeviceSellEvent, "before_update")
def _sell_event_no_update(mapper, connection, target):
    raise AppendOnlyViolation(f"DeviceSellEvent {target.id} is append-only")


@event.listens_for(DeviceSellEvent, "before_delete")
def _sell_event_no_delete(mapper, connection, target):
    raise AppendOnlyViolation(f"DeviceSellEvent {target.id} is append-only")
