# Overview: Partner, company and employee directory operations.

"""
Partner Service

Partners are the tenants. Companies and employees hang off a partner and
are referenced by devices (company_id, picked_by_id) and transactions
(employee authors).

A partner's starting cash is journaled like any other balance change so
`ledger reconcile` sees it.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Partner, Company, Employee, ACCOUNT_KIND_PARTNER
from ..validation import ConflictError, ValidationError, coerce_int, MAX_AMOUNT_CENTS
from ..time_utils import utcnow
from .balance_service import record_opening_balance
from .tenant_service import require_company_in_partner, require_employee_in_partner, require_partner


def _required_text(label: str, value, max_length: int = 255) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"{label} exceeds max length {max_length}")
    return value


def _signed_cents(label: str, value) -> int:
    amount = coerce_int(label, value if value not in (None, "") else 0)
    if abs(amount) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{label} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def create_partner(*, email: str, name: str | None = None, phone: str | None = None, cash_amount_cents=0) -> Partner:
    email = _required_text("email", email).lower()
    phone = phone.strip() if phone and phone.strip() else None
    opening = _signed_cents("cash_amount_cents", cash_amount_cents)

    if db.session.query(Partner).filter(db.func.lower(Partner.email) == email).first():
        raise ConflictError(f"Partner with email '{email}' already exists")
    if phone and db.session.query(Partner).filter_by(phone=phone).first():
        raise ConflictError(f"Partner with phone '{phone}' already exists")

    partner = Partner(
        name=name.strip() if name else None,
        email=email,
        phone=phone,
        cash_amount_cents=opening,
    )
    db.session.add(partner)
    db.session.flush()

    record_opening_balance(
        partner_id=partner.id,
        account_kind=ACCOUNT_KIND_PARTNER,
        account_id=partner.id,
        amount_cents=opening,
    )
    db.session.commit()

    current_app.logger.info("Created partner %s (%s)", partner.id, partner.email)
    return partner


def get_partner(partner_id: int) -> Partner:
    return require_partner(partner_id)


def list_partners(*, include_deleted: bool = False) -> list[Partner]:
    query = db.session.query(Partner)
    if not include_deleted:
        query = query.filter(Partner.is_deleted.is_(False))
    return query.order_by(Partner.id.asc()).all()


def _non_negative_cents(label: str, value) -> int:
    amount = _signed_cents(label, value)
    if amount < 0:
        raise ValidationError(f"{label} must be >= 0")
    return amount


def _optional_text(value, max_length: int = 255) -> str | None:
    if value is None or not str(value).strip():
        return None
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"Value exceeds max length {max_length}")
    return value


# =============================================================================
# Companies
# =============================================================================

def _ensure_unique_company_name(partner_id: int, name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Company).filter(
        Company.partner_id == partner_id,
        Company.is_deleted.is_(False),
        db.func.lower(Company.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Company.id != exclude_id)
    if query.first():
        raise ConflictError(f"Company '{name}' already exists")


def create_company(*, partner_id: int, name: str, credit_value_cents=0) -> Company:
    partner = require_partner(partner_id)
    name = _required_text("Company name", name)
    _ensure_unique_company_name(partner.id, name)
    credit = _non_negative_cents("credit_value_cents", credit_value_cents)

    company = Company(partner_id=partner.id, name=name, credit_value_cents=credit)
    db.session.add(company)
    db.session.commit()
    return company


def get_company(partner_id: int, company_id: int) -> Company:
    return require_company_in_partner(company_id, partner_id)


def list_companies(partner_id: int, *, include_inactive: bool = True, search: str | None = None) -> list[Company]:
    require_partner(partner_id)
    query = db.session.query(Company).filter(
        Company.partner_id == partner_id,
        Company.is_deleted.is_(False),
    )
    if not include_inactive:
        query = query.filter(Company.is_active.is_(True))
    if search and search.strip():
        query = query.filter(Company.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Company.name.asc(), Company.id.asc()).all()


def update_company(partner_id: int, company_id: int, *, name=None, credit_value_cents=None) -> Company:
    company = require_company_in_partner(company_id, partner_id)

    if name is not None:
        name = _required_text("Company name", name)
        _ensure_unique_company_name(partner_id, name, exclude_id=company.id)
        company.name = name
    if credit_value_cents is not None:
        company.credit_value_cents = _non_negative_cents("credit_value_cents", credit_value_cents)

    company.updated_at = utcnow()
    db.session.commit()
    return company


def toggle_company_active(partner_id: int, company_id: int) -> Company:
    company = require_company_in_partner(company_id, partner_id)
    company.is_active = not company.is_active
    company.updated_at = utcnow()
    db.session.commit()
    return company


def soft_delete_company(partner_id: int, company_id: int) -> Company:
    company = require_company_in_partner(company_id, partner_id)
    company.is_deleted = True
    company.updated_at = utcnow()
    db.session.commit()
    return company


# =============================================================================
# Employees
# =============================================================================

def _ensure_unique_employee_email(partner_id: int, email: str | None, *, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Employee).filter(
        Employee.partner_id == partner_id,
        Employee.is_deleted.is_(False),
        db.func.lower(Employee.email) == email,
    )
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    if query.first():
        raise ConflictError(f"Employee with email '{email}' already exists")


def create_employee(
    *,
    partner_id: int,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    salary_per_day_cents=0,
) -> Employee:
    partner = require_partner(partner_id)
    salary = _non_negative_cents("salary_per_day_cents", salary_per_day_cents)
    email = _optional_text(email)
    email = email.lower() if email else None
    _ensure_unique_employee_email(partner.id, email)

    employee = Employee(
        partner_id=partner.id,
        name=_required_text("Employee name", name),
        email=email,
        phone=_optional_text(phone, max_length=32),
        salary_per_day_cents=salary,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def get_employee(partner_id: int, employee_id: int) -> Employee:
    return require_employee_in_partner(employee_id, partner_id)


def list_employees(partner_id: int, *, include_inactive: bool = True, search: str | None = None) -> list[Employee]:
    """
    List a partner's non-deleted employees ordered by name.

    search matches name, email or phone (case-insensitive substring).
    """
    require_partner(partner_id)
    query = db.session.query(Employee).filter(
        Employee.partner_id == partner_id,
        Employee.is_deleted.is_(False),
    )
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Employee.name.ilike(pattern),
            Employee.email.ilike(pattern),
            Employee.phone.ilike(pattern),
        ))
    return query.order_by(Employee.name.asc(), Employee.id.asc()).all()


def update_employee(
    partner_id: int,
    employee_id: int,
    *,
    name=None,
    email=None,
    phone=None,
    salary_per_day_cents=None,
) -> Employee:
    """Patch the given fields; None leaves a field as it is."""
    employee = require_employee_in_partner(employee_id, partner_id)

    if name is not None:
        employee.name = _required_text("Employee name", name)
    if email is not None:
        new_email = _optional_text(email)
        new_email = new_email.lower() if new_email else None
        _ensure_unique_employee_email(partner_id, new_email, exclude_id=employee.id)
        employee.email = new_email
    if phone is not None:
        employee.phone = _optional_text(phone, max_length=32)
    if salary_per_day_cents is not None:
        employee.salary_per_day_cents = _non_negative_cents("salary_per_day_cents", salary_per_day_cents)

    employee.updated_at = utcnow()
    db.session.commit()
    return employee


def toggle_employee_active(partner_id: int, employee_id: int) -> Employee:
    employee = require_employee_in_partner(employee_id, partner_id)
    employee.is_active = not employee.is_active
    employee.updated_at = utcnow()
    db.session.commit()
    current_app.logger.info(
        "Employee %s of partner %s is now %s",
        employee.id, partner_id, "active" if employee.is_active else "inactive",
    )
    return employee


def soft_delete_employee(partner_id: int, employee_id: int) -> Employee:
    employee = require_employee_in_partner(employee_id, partner_id)
    employee.is_deleted = True
    employee.updated_at = utcnow()
    db.session.commit()
    return employee
