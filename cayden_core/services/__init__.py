"""Business logic services."""

from cayden_core.services.ledger_service import LedgerService
from cayden_core.services.audit_service import AuditService
from cayden_core.services.login_guard import LoginGuard
from cayden_core.services.account_service import AccountService
from cayden_core.services.auth_service import AuthService
from cayden_core.services.user_service import UserService

__all__ = [
    "LedgerService",
    "AuditService",
    "LoginGuard",
    "AccountService",
    "AuthService",
    "UserService",
]
