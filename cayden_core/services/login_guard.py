"""
Login guard — brute-force protection per user.

States:
    OPEN    failed attempts below the threshold, no lock
    LOCKED  locked_until is in the future; logins are refused
            before credentials are even checked

Tripping the threshold sets locked_until = now + lockout
duration. Whether further failures while locked push the lock
out again is a setting (LOCKOUT_RENEWS_ON_FAILURE); by default
the lock runs from the first trip. Only a successful login
resets the counter, so a failure right after the lock expires
locks the user again.

All state lives on the users row and every change is a
versioned UPDATE; the guard flushes and its caller commits.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from cayden_core.config import Settings, get_settings
from cayden_core.errors import UserNotFoundError
from cayden_core.models.enums import AuditAction
from cayden_core.models.user import User
from cayden_core.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class LoginState(str, enum.Enum):
    OPEN = "OPEN"
    LOCKED = "LOCKED"


@dataclass(frozen=True)
class LoginCheck:
    state: LoginState
    locked_until: datetime | None = None

    @property
    def allowed(self) -> bool:
        return self.state == LoginState.OPEN


class LoginGuard:

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        audit: AuditService | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.audit = audit or AuditService(db)
        self.clock = clock

    @property
    def lockout_duration(self) -> timedelta:
        return timedelta(minutes=self.settings.LOCKOUT_MINUTES)

    def _load_user(self, user_id: int) -> User:
        user = self.db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def _state(self, user: User, now: datetime) -> LoginCheck:
        if user.is_locked(now):
            return LoginCheck(LoginState.LOCKED, user.locked_until)
        return LoginCheck(LoginState.OPEN)

    def check_allowed(self, user_id: int) -> LoginCheck:
        """
        Must run before the credential check.

        A correct password does not get past an active lock.
        """
        user = self._load_user(user_id)
        return self._state(user, self.clock())

    def record_failure(
        self, user_id: int, ip_address: str | None = None
    ) -> LoginCheck:
        """Count a failed attempt and lock the user at the threshold."""
        user = self._load_user(user_id)
        now = self.clock()
        already_locked = user.is_locked(now)

        user.failed_login_attempts += 1
        attempts = user.failed_login_attempts

        tripped = False
        if already_locked:
            if self.settings.LOCKOUT_RENEWS_ON_FAILURE:
                user.locked_until = now + self.lockout_duration
                tripped = True
        elif attempts >= self.settings.MAX_LOGIN_ATTEMPTS:
            user.locked_until = now + self.lockout_duration
            tripped = True

        self.db.flush()

        if tripped:
            logger.warning(
                "user locked out after %d failed attempts", attempts,
                extra={"action": AuditAction.LOGIN_LOCKOUT.value, "user_id": user.id},
            )
            self.audit.record(
                user.id,
                AuditAction.LOGIN_LOCKOUT,
                {
                    "attempts": attempts,
                    "locked_until": user.locked_until,
                    "renewed": already_locked,
                },
                ip_address,
            )

        return self._state(user, now)

    def record_success(self, user_id: int) -> None:
        """Reset the counter and clear any lock."""
        user = self._load_user(user_id)
        if user.failed_login_attempts or user.locked_until is not None:
            user.failed_login_attempts = 0
            user.locked_until = None
            self.db.flush()
