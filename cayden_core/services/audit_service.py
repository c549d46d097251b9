"""
Audit recorder.

Writes append-only audit rows inside the caller's transaction.
It does NOT commit: the row becomes durable together with the
action it describes, or not at all. A failed write is never
swallowed; it surfaces as AuditWriteFailedError so the caller
fails the enclosing unit of work.
"""

import logging
from collections.abc import Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cayden_core.errors import AuditWriteFailedError
from cayden_core.models.audit_log import AuditLog
from cayden_core.models.enums import AuditAction
from cayden_core.models.types import dumps_details

logger = logging.getLogger(__name__)


class AuditService:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: int | None,
        action: AuditAction,
        details: Mapping | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        payload = {} if details is None else details
        # Fail on a non-mapping or unserializable payload before touching the session
        dumps_details(payload)
        payload = dict(payload)

        entry = AuditLog(
            user_id=user_id,
            action=action,
            details=payload,
            ip_address=ip_address,
        )
        try:
            self.db.add(entry)
            self.db.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "audit write failed for %s", action.value,
                extra={"action": action.value, "user_id": user_id},
            )
            raise AuditWriteFailedError(
                f"Could not record {action.value} audit entry"
            ) from exc
        return entry

    def get_user_logs(self, user_id: int, limit: int = 50) -> list[AuditLog]:
        """Return a user's audit trail, newest first."""
        logs = self.db.execute(
            select(AuditLog)
            .where(AuditLog.user_id == user_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
        ).scalars().all()
        return list(logs)
