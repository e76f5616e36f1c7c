# Overview: Request decorators for API routes: tenant context and error mapping.

from functools import wraps
from flask import request, jsonify, g, current_app

from .validation import LedgerError


PARTNER_HEADER = "X-Partner-Id"
EMPLOYEE_HEADER = "X-Employee-Id"


def _header_int(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return False


def require_partner_context(f):
    """
    Establish tenant context from request headers.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.partner_id: The partner (tenant) every query is scoped to - REQUIRED
    - g.author_type: "employee" if X-Employee-Id is present, else "partner"
    - g.author_id: The employee id or the partner id

    Returns 400 if X-Partner-Id is missing or not an integer. Whether the
    partner and employee exist is checked by the services (404).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        partner_id = _header_int(PARTNER_HEADER)
        if partner_id is None or partner_id is False:
            return jsonify({
                "error": f"{PARTNER_HEADER} header must be a partner id",
                "kind": "validation",
            }), 400

        employee_id = _header_int(EMPLOYEE_HEADER)
        if employee_id is False:
            return jsonify({
                "error": f"{EMPLOYEE_HEADER} header must be an employee id",
                "kind": "validation",
            }), 400

        g.partner_id = partner_id
        if employee_id is not None:
            g.author_type = "employee"
            g.author_id = employee_id
        else:
            g.author_type = "partner"
            g.author_id = partner_id

        return f(*args, **kwargs)

    return decorated_function


def handle_ledger_errors(f):
    """
    Map LedgerError subclasses to their HTTP status and a JSON body of
    {"error": message, "kind": kind}. Anything else is logged with its
    traceback and answered with 500.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except LedgerError as e:
            return jsonify(e.to_dict()), e.http_status
        except Exception:
            current_app.logger.exception("Unhandled error in %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error", "kind": "internal"}), 500

    return decorated_function
