"""
User model.

Identity plus login-security state. The failed-attempt counter
lives on the row, never in process memory, so lockout holds
across concurrent requests and restarts.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cayden_core.models.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Every UPDATE is conditional on the version we read
    __mapper_args__ = {"version_id_col": version}

    # The database clears accounts.user_id and audit_logs.user_id on
    # delete (ON DELETE SET NULL); passive_deletes keeps the ORM out of it.
    accounts: Mapped[list["Account"]] = relationship(
        back_populates="user", passive_deletes="all"
    )
    audit_logs: Mapped[list["AuditLog"]] = relationship(
        back_populates="user", passive_deletes="all"
    )

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def __repr__(self) -> str:
        return f"<User {self.email}>"
