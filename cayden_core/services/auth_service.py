"""
Auth service — the login flow.

Lookup, lock check, credential check, then counter bookkeeping
and an audit row, all in one unit of work. A lockout is an
ordinary outcome, not an exception.
"""

import enum
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from cayden_core.config import Settings, get_settings
from cayden_core.models.enums import AuditAction
from cayden_core.models.user import User
from cayden_core.security import verify_password
from cayden_core.services.audit_service import AuditService
from cayden_core.services.common import run_unit_of_work
from cayden_core.services.login_guard import LoginGuard

logger = logging.getLogger(__name__)


class LoginOutcome(str, enum.Enum):
    ALLOWED = "ALLOWED"
    LOCKED = "LOCKED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class LoginResult:
    outcome: LoginOutcome
    user_id: int | None = None
    locked_until: datetime | None = None

    def retry_after_seconds(self, now: datetime) -> int:
        if self.locked_until is None:
            return 0
        remaining = (self.locked_until - now).total_seconds()
        return max(0, math.ceil(remaining))


class AuthService:

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock
        self.audit = AuditService(db)
        self.guard = LoginGuard(db, self.settings, self.audit, clock)

    def login(
        self, email: str, password: str, ip_address: str | None = None
    ) -> LoginResult:
        def work() -> LoginResult:
            return self._login(email, password, ip_address)

        return run_unit_of_work(
            self.db, work,
            name="login",
            max_attempts=self.settings.MAX_CONFLICT_RETRIES,
        )

    def _login(
        self, email: str, password: str, ip_address: str | None
    ) -> LoginResult:
        user = self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

        if not user:
            self.audit.record(
                None, AuditAction.LOGIN_FAILURE,
                {"email": email, "reason": "unknown_user"},
                ip_address,
            )
            return LoginResult(LoginOutcome.REJECTED)

        check = self.guard.check_allowed(user.id)
        if not check.allowed:
            if self.settings.LOCKOUT_RENEWS_ON_FAILURE:
                check = self.guard.record_failure(user.id, ip_address)
            self.audit.record(
                user.id, AuditAction.LOGIN_BLOCKED,
                {"reason": "account_locked", "locked_until": check.locked_until},
                ip_address,
            )
            logger.info(
                "login refused: account locked",
                extra={"action": AuditAction.LOGIN_BLOCKED.value, "user_id": user.id},
            )
            return LoginResult(LoginOutcome.LOCKED, user.id, check.locked_until)

        if not verify_password(password, user.password_hash):
            check = self.guard.record_failure(user.id, ip_address)
            self.audit.record(
                user.id, AuditAction.LOGIN_FAILURE,
                {
                    "reason": "invalid_credentials",
                    "attempts": user.failed_login_attempts,
                },
                ip_address,
            )
            if not check.allowed:
                return LoginResult(LoginOutcome.LOCKED, user.id, check.locked_until)
            return LoginResult(LoginOutcome.REJECTED, user.id)

        self.guard.record_success(user.id)
        self.audit.record(user.id, AuditAction.LOGIN_SUCCESS, {}, ip_address)
        logger.info(
            "login succeeded",
            extra={"action": AuditAction.LOGIN_SUCCESS.value, "user_id": user.id},
        )
        return LoginResult(LoginOutcome.ALLOWED, user.id)
