"""
Ledger service — the only writer of account balances.

This service enforces the fundamental rules:
1. A balance changes only together with a ledger entry
2. A balance never goes below zero
3. Entries are immutable (append-only)
4. Replaying an account's entries reproduces its balance

No other service writes balances directly.
All financial operations go through this service.
"""

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cayden_core.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    IntegrityViolationError,
)
from cayden_core.models.account import Account
from cayden_core.models.ledger_entry import LedgerEntry


class LedgerService:
    """
    All balance mutations pass through this service.

    The service takes a database session as a constructor
    argument. This means the caller controls the transaction
    boundary — they decide when to commit or rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: int, for_update: bool = False) -> Account:
        """
        Load an account, optionally taking a row lock.

        populate_existing makes sure a locked read replaces any
        stale copy already sitting in the session.
        """
        query = select(Account).where(Account.id == account_id)
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        account = self.db.execute(query).scalar_one_or_none()
        if not account:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def lock_accounts(self, account_ids: Iterable[int]) -> dict[int, Account]:
        """
        Lock several accounts in ascending id order.

        A fixed lock order means two transfers touching the same
        pair of accounts can never deadlock each other.
        Missing ids are simply absent from the result.
        """
        ids = sorted(set(account_ids))
        accounts = self.db.execute(
            select(Account)
            .where(Account.id.in_(ids))
            .order_by(Account.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {a.id: a for a in accounts}

    def apply_entry(
        self,
        account_id: int,
        signed_amount: Decimal,
        transaction_id: int,
        description: str,
    ) -> Decimal:
        """
        Apply a signed balance change and record it in the ledger.

        Negative amounts are debits. Raises InsufficientFundsError
        if a debit would take the balance below zero; in that case
        nothing is changed. On success the new balance and the
        entry are flushed together and the new balance is returned.
        The caller commits.
        """
        if signed_amount == 0:
            raise ValueError("ledger entries must move a non-zero amount")

        account = self.get_account(account_id, for_update=True)
        new_balance = account.balance + signed_amount

        if signed_amount < 0 and new_balance < 0:
            raise InsufficientFundsError(
                account.id, account.balance, -signed_amount
            )

        account.balance = new_balance
        self.db.add(LedgerEntry(
            account_id=account.id,
            transaction_id=transaction_id,
            amount=signed_amount,
            balance_after=new_balance,
            description=description,
        ))

        try:
            self.db.flush()
        except IntegrityError as exc:
            # The balance CHECK constraint is the last line of defence
            raise IntegrityViolationError(
                f"Balance update on account {account_id} violated "
                f"a store constraint"
            ) from exc
        return new_balance

    def history(self, account_id: int) -> list[LedgerEntry]:
        """
        Return every entry for an account, oldest first.

        Ties on created_at are broken by id, which is assigned
        in insertion order.
        """
        self.get_account(account_id)
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc())
        ).scalars().all()
        return list(entries)

    def get_entries_by_transaction(self, transaction_id: int) -> list[LedgerEntry]:
        """Return all entries caused by a transaction."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.transaction_id == transaction_id)
            .order_by(LedgerEntry.id)
        ).scalars().all()
        return list(entries)

    def verify_balance(self, account_id: int) -> Decimal:
        """
        Replay the ledger and check it against the stored balance.

        Every entry's balance_after must equal the running sum,
        and the final sum must equal the account's balance.
        Raises IntegrityViolationError on the first mismatch.
        """
        account = self.get_account(account_id)
        running = Decimal("0")
        for entry in self.history(account_id):
            running += entry.amount
            if running != entry.balance_after:
                raise IntegrityViolationError(
                    f"Ledger entry {entry.id} on account {account_id} "
                    f"records balance {entry.balance_after}, "
                    f"replay gives {running}"
                )
        if running != account.balance:
            raise IntegrityViolationError(
                f"Account {account_id} balance {account.balance} "
                f"does not match ledger replay {running}"
            )
        return running
