"""
Ledger entry model.

Each entry records one balance change on one account: the
signed amount and the balance it produced. Entries are
immutable — once posted, they are never modified or deleted.
Corrections are new, offsetting entries.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, ForeignKey, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cayden_core.errors import IntegrityViolationError
from cayden_core.models.base import Base


class LedgerEntry(Base):
    """
    An immutable balance change.

    The primary key doubles as the sequence number used to
    order entries that share a timestamp.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    description: Mapped[str] = mapped_column(
        String(255), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship()
    transaction: Mapped["Transaction"] = relationship(
        back_populates="entries"
    )

    @property
    def is_debit(self) -> bool:
        return self.amount < 0

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry account={self.account_id} "
            f"{self.amount} -> {self.balance_after}>"
        )


@event.listens_for(LedgerEntry, "before_update")
@event.listens_for(LedgerEntry, "before_delete")
def _reject_entry_mutation(mapper, connection, target):
    raise IntegrityViolationError(
        f"ledger_entries is append-only (id={target.id})"
    )
