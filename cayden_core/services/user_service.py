"""
User service — registration and removal.

These methods flush and leave the commit to the caller.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from cayden_core.config import Settings, get_settings
from cayden_core.errors import BankingError, DuplicateUserError, UserNotFoundError
from cayden_core.models.enums import AccountStatus, AccountType, AuditAction
from cayden_core.models.user import User
from cayden_core.security import get_password_hash
from cayden_core.services.account_service import AccountService
from cayden_core.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.audit = AuditService(db)

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        ip_address: str | None = None,
    ) -> User:
        """
        Create a user together with an active checking account.
        """
        existing = self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateUserError(f"Email '{email}' is already registered")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
        )
        self.db.add(user)
        self.db.flush()

        self.audit.record(
            user.id, AuditAction.REGISTER, {"email": email}, ip_address
        )
        AccountService(self.db, self.settings).open_account(
            user.id, AccountType.CHECKING, ip_address=ip_address
        )
        return user

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def delete_user(self, user_id: int) -> None:
        """
        Remove a user whose accounts are all closed.

        Closed accounts and audit rows stay with their history;
        the database clears the user reference on each of them.
        """
        user = self.get_user(user_id)
        open_accounts = [
            a for a in user.accounts if a.status != AccountStatus.CLOSED
        ]
        if open_accounts:
            raise BankingError(
                f"User {user_id} still has {len(open_accounts)} open account(s)"
            )

        self.audit.record(
            None, AuditAction.USER_DELETED,
            {"user_id": user.id, "external_id": user.external_id},
        )
        self.db.delete(user)
        self.db.flush()
        logger.info(
            "user deleted",
            extra={"action": AuditAction.USER_DELETED.value, "user_id": user_id},
        )
