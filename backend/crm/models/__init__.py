from .tenancy import Partner, Company, Employee
from .attendance import Attendance, ATTENDANCE_STATUSES
from .inventory import Vendor, Device, DeviceSellEvent, AppendOnlyViolation
from .ledger import (
    Transaction,
    BalanceEvent,
    TRANSACTION_TYPES,
    PAYMENT_MODES,
    AUTHOR_TYPES,
    ACCOUNT_KIND_VENDOR,
    ACCOUNT_KIND_PARTNER,
)

__all__ = [
    'Partner', 'Company', 'Employee',
    'Attendance', 'ATTENDANCE_STATUSES',
    'Vendor', 'Device', 'DeviceSellEvent', 'AppendOnlyViolation',
    'Transaction', 'BalanceEvent',
    'TRANSACTION_TYPES', 'PAYMENT_MODES', 'AUTHOR_TYPES',
    'ACCOUNT_KIND_VENDOR', 'ACCOUNT_KIND_PARTNER',
]
