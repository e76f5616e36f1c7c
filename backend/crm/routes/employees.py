# Overview: Flask API routes for employees and their attendance.

"""
Employee Routes

Employees are scoped to partners through the X-Partner-Id header.
Attendance lives under /api/employees/attendance; a day's sheet lists
every employee, marked or not.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_partner_context, handle_ledger_errors
from ..services import attendance_service, partner_service


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")

_EMPLOYEE_FIELDS = ("name", "email", "phone", "salary_per_day_cents")


@employees_bp.get("")
@require_partner_context
@handle_ledger_errors
def list_employees_route():
    """
    Query parameters:
    - include_inactive: Include inactive employees (default: true)
    - search: Fragment of name, email or phone
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    employees = partner_service.list_employees(
        g.partner_id,
        include_inactive=include_inactive,
        search=request.args.get("search"),
    )
    return jsonify({
        "items": [e.to_dict() for e in employees],
        "count": len(employees),
    })


@employees_bp.post("")
@require_partner_context
@handle_ledger_errors
def create_employee_route():
    data = request.get_json(silent=True) or {}
    employee = partner_service.create_employee(
        partner_id=g.partner_id,
        name=data.get("name"),
        email=data.get("email"),
        phone=data.get("phone"),
        salary_per_day_cents=data.get("salary_per_day_cents", 0),
    )
    return jsonify(employee.to_dict()), 201


@employees_bp.get("/<int:employee_id>")
@require_partner_context
@handle_ledger_errors
def get_employee_route(employee_id: int):
    return jsonify(partner_service.get_employee(g.partner_id, employee_id).to_dict())


@employees_bp.put("/<int:employee_id>")
@require_partner_context
@handle_ledger_errors
def update_employee_route(employee_id: int):
    data = request.get_json(silent=True) or {}
    patch = {key: data[key] for key in _EMPLOYEE_FIELDS if key in data}
    employee = partner_service.update_employee(g.partner_id, employee_id, **patch)
    return jsonify(employee.to_dict())


@employees_bp.post("/<int:employee_id>/toggle-active")
@require_partner_context
@handle_ledger_errors
def toggle_employee_route(employee_id: int):
    return jsonify(partner_service.toggle_employee_active(g.partner_id, employee_id).to_dict())


@employees_bp.delete("/<int:employee_id>")
@require_partner_context
@handle_ledger_errors
def delete_employee_route(employee_id: int):
    return jsonify(partner_service.soft_delete_employee(g.partner_id, employee_id).to_dict())


# =============================================================================
# Attendance
# =============================================================================

@employees_bp.post("/attendance")
@require_partner_context
@handle_ledger_errors
def mark_attendance_route():
    """
    Request body:
    {
        "employee_id": 1,
        "date": "2026-03-01",
        "status": "present"      // present | absent
    }
    """
    data = request.get_json(silent=True) or {}
    attendance = attendance_service.mark_attendance(
        partner_id=g.partner_id,
        employee_id=data.get("employee_id"),
        work_date=data.get("date"),
        status=data.get("status"),
    )
    return jsonify(attendance.to_dict())


@employees_bp.get("/attendance")
@require_partner_context
@handle_ledger_errors
def attendance_sheet_route():
    """Query parameters: date (required, YYYY-MM-DD)."""
    return jsonify(attendance_service.get_all_employees_attendance(g.partner_id, request.args.get("date")))


@employees_bp.get("/<int:employee_id>/attendance")
@require_partner_context
@handle_ledger_errors
def employee_attendance_route(employee_id: int):
    """Query parameters: start_date, end_date (inclusive, optional)."""
    records = attendance_service.get_employee_attendance(
        g.partner_id,
        employee_id,
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
    )
    return jsonify({
        "items": [r.to_dict() for r in records],
        "count": len(records),
    })
