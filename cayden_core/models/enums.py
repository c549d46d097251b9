"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """Customer account products. Closed set."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class AccountStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    FROZEN = "FROZEN"
    CLOSED = "CLOSED"


class TransactionType(str, enum.Enum):
    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"
    TRANSFER = "TRANSFER"
    REVERSAL = "REVERSAL"


class AuditAction(str, enum.Enum):
    """Bounded vocabulary for audit_logs.action."""
    REGISTER = "REGISTER"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    LOGIN_LOCKOUT = "LOGIN_LOCKOUT"
    LOGIN_BLOCKED = "LOGIN_BLOCKED"
    ACCOUNT_OPENED = "ACCOUNT_OPENED"
    ACCOUNT_STATUS_CHANGED = "ACCOUNT_STATUS_CHANGED"
    ROUND_UP_ENABLED = "ROUND_UP_ENABLED"
    ROUND_UP_DISABLED = "ROUND_UP_DISABLED"
    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"
    TRANSFER = "TRANSFER"
    ROUND_UP_APPLIED = "ROUND_UP_APPLIED"
    REVERSAL = "REVERSAL"
    USER_DELETED = "USER_DELETED"
