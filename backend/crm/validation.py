from __future__ import annotations
from datetime import datetime
from enum import Enum
from .time_utils import normalize_datetime, parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum single amount: 9,999,999,999.99 in minor units.
# Keeps sums of many entries well inside a signed 64-bit column.
MAX_AMOUNT_CENTS = 999_999_999_999


class ErrorKind(str, Enum):
    """Stable error tags the HTTP layer keys its status codes off."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONCURRENCY = "concurrency"


class LedgerError(Exception):
    """Base class for every error the ledger core reports to callers."""

    kind: ErrorKind = ErrorKind.VALIDATION
    http_status: int = 400

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind.value}


class ValidationError(LedgerError, ValueError):
    """400-level input problem."""

    kind = ErrorKind.VALIDATION
    http_status = 400


class NotFoundError(LedgerError, LookupError):
    """404-level missing reference (partner, vendor, device, employee)."""

    kind = ErrorKind.NOT_FOUND
    http_status = 404


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate vendor name)."""

    kind = ErrorKind.CONFLICT
    http_status = 409


class ConcurrencyError(LedgerError):
    """
    409-level optimistic lock failure that survived every retry.

    Callers should retry the whole operation.
    """

    kind = ErrorKind.CONCURRENCY
    http_status = 409


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer parsing: rejects bools, floats and decimal strings."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return normalize_datetime(value)
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be a datetime")


def coerce_amount_cents(key: str, value: Any) -> int:
    """Monetary amounts are positive integers in minor currency units."""
    amount = coerce_int(key, value)
    if amount <= 0:
        raise ValidationError(f"{key} must be > 0")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        return coerce_datetime(col.key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


DEVICE_COST_FIELDS = (
    "initial_cost_cents",
    "cost_cents",
    "extra_amount_cents",
    "credit_cents",
    "per_credit_cents",
    "commission_cents",
    "gst_cents",
    "total_cost_cents",
)


def enforce_rules_device(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Cost breakdown fields are never negative; profit may be.
    """
    for field in DEVICE_COST_FIELDS:
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
