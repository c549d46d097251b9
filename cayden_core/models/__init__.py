"""
Database models package.

All models must be imported here so that Base.metadata knows
every table before create_all() or a migration tool runs.
"""

from cayden_core.models.base import Base
from cayden_core.models.enums import (
    AccountType,
    AccountStatus,
    TransactionType,
    AuditAction,
)
from cayden_core.models.user import User
from cayden_core.models.account import Account
from cayden_core.models.transaction import Transaction
from cayden_core.models.ledger_entry import LedgerEntry
from cayden_core.models.audit_log import AuditLog

__all__ = [
    "Base",
    "AccountType",
    "AccountStatus",
    "TransactionType",
    "AuditAction",
    "User",
    "Account",
    "Transaction",
    "LedgerEntry",
    "AuditLog",
]
