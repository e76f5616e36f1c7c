# Overview: Pytest coverage for employee attendance marks.

from datetime import date

import pytest

from crm.extensions import db
from crm.models import Attendance
from crm.services import attendance_service, partner_service
from crm.validation import NotFoundError, ValidationError


def _mark(partner, employee, day, status):
    return attendance_service.mark_attendance(
        partner_id=partner.id, employee_id=employee.id, work_date=day, status=status,
    )


class TestMarkAttendance:

    def test_mark_creates_row(self, partner, employee):
        attendance = _mark(partner, employee, "2026-03-02", "Present")

        assert attendance.status == "present"
        assert attendance.work_date == date(2026, 3, 2)
        assert attendance.to_dict()["date"] == "2026-03-02"

    def test_remark_same_day_overwrites(self, partner, employee):
        first = _mark(partner, employee, "2026-03-02", "present")
        second = _mark(partner, employee, date(2026, 3, 2), "absent")

        assert second.id == first.id
        assert db.session.query(Attendance).count() == 1
        assert db.session.get(Attendance, first.id).status == "absent"

    @pytest.mark.parametrize("status", ["late", "", None])
    def test_bad_status(self, partner, employee, status):
        with pytest.raises(ValidationError):
            _mark(partner, employee, "2026-03-02", status)

    @pytest.mark.parametrize("day", ["03/02/2026", "", None])
    def test_bad_date(self, partner, employee, day):
        with pytest.raises(ValidationError):
            _mark(partner, employee, day, "present")

    def test_missing_employee_id(self, partner):
        with pytest.raises(ValidationError):
            attendance_service.mark_attendance(
                partner_id=partner.id, employee_id=None, work_date="2026-03-02", status="present",
            )

    def test_other_partners_employee(self, other_partner, employee):
        with pytest.raises(NotFoundError):
            _mark(other_partner, employee, "2026-03-02", "present")
        assert db.session.query(Attendance).count() == 0

    def test_deleted_employee(self, partner, employee):
        partner_service.soft_delete_employee(partner.id, employee.id)
        with pytest.raises(NotFoundError):
            _mark(partner, employee, "2026-03-02", "present")


class TestAttendanceReads:

    def test_employee_history_newest_first(self, partner, employee):
        for day, status in (("2026-03-01", "present"), ("2026-03-03", "absent"), ("2026-03-02", "present")):
            _mark(partner, employee, day, status)

        history = attendance_service.get_employee_attendance(partner.id, employee.id)
        assert [a.work_date.isoformat() for a in history] == ["2026-03-03", "2026-03-02", "2026-03-01"]

    def test_employee_history_bounds_inclusive(self, partner, employee):
        for day in ("2026-03-01", "2026-03-02", "2026-03-03", "2026-03-04"):
            _mark(partner, employee, day, "present")

        history = attendance_service.get_employee_attendance(
            partner.id, employee.id, start_date="2026-03-02", end_date="2026-03-03",
        )
        assert [a.work_date.isoformat() for a in history] == ["2026-03-03", "2026-03-02"]

    def test_day_sheet_lists_unmarked_employees(self, partner, employee):
        asha = partner_service.create_employee(partner_id=partner.id, name="Asha")
        gone = partner_service.create_employee(partner_id=partner.id, name="Gone")
        partner_service.soft_delete_employee(partner.id, gone.id)
        _mark(partner, employee, "2026-03-02", "absent")
        _mark(partner, asha, "2026-03-01", "present")

        sheet = attendance_service.get_all_employees_attendance(partner.id, "2026-03-02")

        assert sheet["date"] == "2026-03-02"
        assert [(row["name"], row["status"]) for row in sheet["employees"]] == [
            ("Asha", None),
            ("Ravi", "absent"),
        ]

    def test_day_sheet_requires_date(self, partner):
        with pytest.raises(ValidationError):
            attendance_service.get_all_employees_attendance(partner.id, None)

    def test_day_sheet_scoped_to_partner(self, other_partner, partner, employee):
        _mark(partner, employee, "2026-03-02", "present")
        sheet = attendance_service.get_all_employees_attendance(other_partner.id, "2026-03-02")
        assert sheet["employees"] == []
