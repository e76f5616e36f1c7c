from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ATTENDANCE_PRESENT = "present"
ATTENDANCE_ABSENT = "absent"
ATTENDANCE_STATUSES = (ATTENDANCE_PRESENT, ATTENDANCE_ABSENT)


class Attendance(db.Model):
    """
    Daily attendance mark for one employee.

    One row per (employee, work_date). Marking the same day again
    overwrites the status; there is no history of earlier marks.
    """
    __tablename__ = "attendance"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "work_date", name="uq_attendance_employee_date"),
        db.Index("ix_attendance_partner_date", "partner_id", "work_date"),
        db.CheckConstraint("status IN ('present', 'absent')", name="ck_attendance_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("partners.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    work_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("attendance", lazy=True))

    def __repr__(self) -> str:
        return f"<Attendance employee_id={self.employee_id} date={self.work_date} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "date": self.work_date.isoformat(),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
