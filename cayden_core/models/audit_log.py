"""
Audit log model.

Records security- and money-relevant events. In banking,
auditability is not optional: a money movement without its
audit row is treated as a failed movement.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Enum as SAEnum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cayden_core.errors import IntegrityViolationError
from cayden_core.models.base import Base
from cayden_core.models.enums import AuditAction
from cayden_core.models.types import JSONText


class AuditLog(Base):
    """
    Immutable record of a system event.

    Like ledger entries, audit logs are append-only.
    user_id is optional: system-initiated events have none,
    and deleting a user clears the reference but keeps the row.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action: Mapped[AuditAction] = mapped_column(
        SAEnum(AuditAction, name="audit_action_enum", create_constraint=True),
        nullable=False,
        index=True,
    )
    details: Mapped[dict] = mapped_column(JSONText, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    user: Mapped["User | None"] = relationship(back_populates="audit_logs")

    def __repr__(self) -> str:
        return f"<AuditLog {self.action.value} user={self.user_id}>"


@event.listens_for(AuditLog, "before_update")
@event.listens_for(AuditLog, "before_delete")
def _reject_audit_mutation(mapper, connection, target):
    raise IntegrityViolationError(
        f"audit_logs is append-only (id={target.id})"
    )
