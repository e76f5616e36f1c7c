# Overview: Employee attendance marks (present/absent per day).

"""
Attendance Service

Each employee has at most one attendance row per calendar day. Marking a
day that is already marked replaces its status. Attendance never touches
balances.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import Attendance, Employee, ATTENDANCE_STATUSES
from ..validation import ValidationError, coerce_int
from ..time_utils import utcnow
from .tenant_service import require_employee_in_partner, require_partner


def _coerce_work_date(label: str, value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{label} must be an ISO-8601 date (YYYY-MM-DD)")


def _coerce_status(value) -> str:
    status = str(value or "").strip().lower()
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: {', '.join(ATTENDANCE_STATUSES)}"
        )
    return status


def mark_attendance(*, partner_id: int, employee_id: int, work_date, status: str) -> Attendance:
    """
    Record an employee's attendance for one day, replacing any earlier mark.

    Raises:
        ValidationError: bad date or status
        NotFoundError: employee missing, deleted or owned by another partner
    """
    if employee_id in (None, ""):
        raise ValidationError("employee_id is required")
    employee_id = coerce_int("employee_id", employee_id)
    day = _coerce_work_date("date", work_date)
    status = _coerce_status(status)
    employee = require_employee_in_partner(employee_id, partner_id)

    attendance = (
        db.session.query(Attendance)
        .filter_by(employee_id=employee.id, work_date=day)
        .first()
    )
    if attendance is None:
        attendance = Attendance(partner_id=partner_id, employee_id=employee.id, work_date=day, status=status)
        db.session.add(attendance)
    else:
        attendance.status = status
        attendance.updated_at = utcnow()

    db.session.commit()
    current_app.logger.info(
        "Marked employee %s of partner %s %s on %s",
        employee.id, partner_id, status, day.isoformat(),
    )
    return attendance


def get_employee_attendance(partner_id: int, employee_id: int, *, start_date=None, end_date=None) -> list[Attendance]:
    """One employee's marks, newest day first. Date bounds are inclusive."""
    employee = require_employee_in_partner(employee_id, partner_id)

    query = db.session.query(Attendance).filter(Attendance.employee_id == employee.id)
    if start_date not in (None, ""):
        query = query.filter(Attendance.work_date >= _coerce_work_date("start_date", start_date))
    if end_date not in (None, ""):
        query = query.filter(Attendance.work_date <= _coerce_work_date("end_date", end_date))

    return query.order_by(Attendance.work_date.desc()).all()


def get_all_employees_attendance(partner_id: int, work_date) -> dict:
    """
    Attendance sheet for one day.

    Returns every non-deleted employee of the partner with the day's status,
    or None where the employee has not been marked yet.
    """
    require_partner(partner_id)
    day = _coerce_work_date("date", work_date)

    employees = (
        db.session.query(Employee)
        .filter(Employee.partner_id == partner_id, Employee.is_deleted.is_(False))
        .order_by(Employee.name.asc(), Employee.id.asc())
        .all()
    )
    marks = {
        row.employee_id: row.status
        for row in db.session.query(Attendance).filter(
            Attendance.partner_id == partner_id,
            Attendance.work_date == day,
        )
    }

    return {
        "date": day.isoformat(),
        "employees": [
            {
                "employee_id": e.id,
                "name": e.name,
                "email": e.email,
                "status": marks.get(e.id),
            }
            for e in employees
        ],
    }
