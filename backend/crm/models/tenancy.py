from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Partner(db.Model):
    """
    Multi-tenant root: every tenant is a Partner.

    WHY: Enables shared-database multi-tenancy with strict isolation.
    Companies, employees, vendors, devices and transactions all belong to
    exactly one partner. No data may cross partner boundaries.

    cash_amount_cents is the partner's cash-on-hand. It is signed (can go
    negative) and only the ledger mutates it. version_id makes concurrent
    writers fail loudly instead of overwriting each other.
    """
    __tablename__ = "partners"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True, unique=True)

    cash_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Partner id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "cash_amount_cents": self.cash_amount_cents,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Company(db.Model):
    """Company a partner services devices for. Names are unique per partner."""
    __tablename__ = "companies"
    __table_args__ = (
        db.Index("ix_companies_partner_deleted", "partner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    credit_value_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    partner = db.relationship("Partner", backref=db.backref("companies", lazy=True))

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} partner_id={self.partner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "name": self.name,
            "credit_value_cents": self.credit_value_cents,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Employee(db.Model):
    """
    Partner staff member. Employees pick up devices (Device.picked_by_id)
    and may author transactions on the partner's behalf.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_partner_deleted", "partner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    salary_per_day_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    partner = db.relationship("Partner", backref=db.backref("employees", lazy=True))

    def __repr__(self) -> str:
        return f"<Employee id={self.id} name={self.name!r} partner_id={self.partner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "salary_per_day_cents": self.salary_per_day_cents,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
