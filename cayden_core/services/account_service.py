"""
Account service — account lifecycle and money movement.

Lifecycle operations (open, status change, round-up settings)
flush and leave the commit to the caller.

Money movement (deposit, purchase, transfer, reverse) owns its
unit of work. Each one:
1. Returns the earlier result if the idempotency key was used
2. Locks the accounts it touches and validates them
3. Creates the transaction record (the causal reference)
4. Applies the ledger entries through LedgerService
5. Applies the savings round-up, when one is configured
6. Records the audit entry
and commits only if every step succeeded. Any failure rolls
back all of it, including the audit row.
"""

import logging
import secrets
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cayden_core.config import Settings, get_settings
from cayden_core.errors import (
    AccountNotActiveError,
    AccountNotFoundError,
    BankingError,
    InsufficientFundsError,
    InvalidStatusTransitionError,
    RoundUpConfigurationError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from cayden_core.models.account import Account
from cayden_core.models.enums import (
    AccountStatus,
    AccountType,
    AuditAction,
    TransactionType,
)
from cayden_core.models.transaction import Transaction
from cayden_core.models.user import User
from cayden_core.services.audit_service import AuditService
from cayden_core.services.common import run_unit_of_work
from cayden_core.services.ledger_service import LedgerService
from cayden_core.services.round_up import compute_round_up

logger = logging.getLogger(__name__)


def verify_amount(amount) -> Decimal:
    """Coerce to Decimal and require a positive, whole-cent value."""
    try:
        value = Decimal(str(amount))
    except (ValueError, InvalidOperation):
        raise BankingError("Amount must be a number") from None
    if not value.is_finite() or value <= 0:
        raise BankingError("Amount must be positive")
    if value.normalize().as_tuple().exponent < -2:
        raise BankingError("Amount cannot have fractions of a cent")
    return value


class AccountService:

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        audit: AuditService | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = LedgerService(db)
        self.audit = audit or AuditService(db)

    # --- Lifecycle ---

    def _new_account_number(self) -> str:
        while True:
            number = f"{secrets.randbelow(9 * 10**11) + 10**11}"
            taken = self.db.execute(
                select(Account.id).where(Account.account_number == number)
            ).scalar_one_or_none()
            if taken is None:
                return number

    def open_account(
        self,
        user_id: int,
        account_type: AccountType,
        ip_address: str | None = None,
    ) -> Account:
        """
        Open an active, empty account for a user.

        A user may hold any number of checking accounts but
        only one savings account.
        """
        user = self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")

        if account_type == AccountType.SAVINGS:
            existing = self.db.execute(
                select(Account).where(
                    Account.user_id == user_id,
                    Account.account_type == AccountType.SAVINGS,
                )
            ).scalar_one_or_none()
            if existing:
                raise BankingError(
                    f"User {user_id} already has a savings account"
                )

        account = Account(
            user_id=user.id,
            account_type=account_type,
            account_number=self._new_account_number(),
            routing_number=self.settings.ROUTING_NUMBER,
            currency=self.settings.DEFAULT_CURRENCY,
            balance=Decimal("0"),
            status=AccountStatus.ACTIVE,
        )
        self.db.add(account)
        self.db.flush()

        self.audit.record(
            user.id, AuditAction.ACCOUNT_OPENED,
            {"account_id": account.id, "account_type": account_type.value},
            ip_address,
        )
        return account

    def get_account(self, account_id: int) -> Account:
        """Get an account by ID."""
        account = self.db.get(Account, account_id)
        if not account:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def get_balance(self, account_id: int) -> Decimal:
        return self.get_account(account_id).balance

    def get_user_accounts(self, user_id: int) -> list[Account]:
        """Get all accounts for a user."""
        accounts = self.db.execute(
            select(Account)
            .where(Account.user_id == user_id)
            .order_by(Account.id)
        ).scalars().all()
        return list(accounts)

    def change_status(
        self, account_id: int, new_status: AccountStatus
    ) -> Account:
        """
        Transition an account to a new status.

        Enforces the state machine — only valid transitions
        are allowed.
        """
        account = self.get_account(account_id)

        if not account.can_transition_to(new_status):
            raise InvalidStatusTransitionError(
                f"Cannot transition from {account.status.value} "
                f"to {new_status.value}"
            )

        old_status = account.status
        account.status = new_status
        self.db.flush()

        self.audit.record(
            account.user_id, AuditAction.ACCOUNT_STATUS_CHANGED,
            {
                "account_id": account.id,
                "from": old_status.value,
                "to": new_status.value,
            },
        )
        return account

    def enable_round_up(self, savings_id: int, checking_id: int) -> Account:
        """
        Link a savings account to a checking account and turn
        on round-ups for the checking account's debits.
        """
        savings = self.get_account(savings_id)
        checking = self.get_account(checking_id)

        if savings.account_type != AccountType.SAVINGS:
            raise RoundUpConfigurationError(
                "Round-ups can only be enabled on a savings account"
            )
        if checking.account_type != AccountType.CHECKING:
            raise RoundUpConfigurationError(
                "Round-ups must be linked to a checking account"
            )
        if savings.user_id != checking.user_id:
            raise RoundUpConfigurationError(
                "Savings and checking accounts must belong to the same user"
            )
        self._require_active(savings)
        self._require_active(checking)

        savings.linked_account_id = checking.id
        savings.round_up_enabled = True
        self.db.flush()

        self.audit.record(
            savings.user_id, AuditAction.ROUND_UP_ENABLED,
            {"savings_account_id": savings.id, "checking_account_id": checking.id},
        )
        return savings

    def disable_round_up(self, savings_id: int) -> Account:
        savings = self.get_account(savings_id)
        if savings.account_type != AccountType.SAVINGS:
            raise RoundUpConfigurationError(
                "Round-ups are only configured on savings accounts"
            )

        savings.round_up_enabled = False
        self.db.flush()

        self.audit.record(
            savings.user_id, AuditAction.ROUND_UP_DISABLED,
            {"savings_account_id": savings.id},
        )
        return savings

    # --- Money movement ---

    def _require_active(self, account: Account) -> None:
        if not account.is_active:
            raise AccountNotActiveError(
                f"Account {account.id} is not active "
                f"(status: {account.status.value})"
            )

    def _find_by_idempotency_key(self, idempotency_key: str) -> Transaction | None:
        return self.db.execute(
            select(Transaction).where(
                Transaction.idempotency_key == idempotency_key
            )
        ).scalar_one_or_none()

    def _round_up_savings_id(self, source_id: int) -> int | None:
        """The savings account rounding up this account's debits, if any."""
        return self.db.execute(
            select(Account.id).where(
                Account.linked_account_id == source_id,
                Account.account_type == AccountType.SAVINGS,
                Account.round_up_enabled.is_(True),
            ).limit(1)
        ).scalar_one_or_none()

    def _plan_round_up(
        self,
        source: Account,
        savings: Account | None,
        amount: Decimal,
    ) -> Decimal | None:
        """
        Decide the round-up for a debit, or None to skip it.

        A closed or frozen savings account, or a checking account
        that cannot cover the round-up after the debit itself, is
        a silent skip rather than an error.
        """
        if source.account_type != AccountType.CHECKING or savings is None:
            return None
        if not savings.round_up_enabled:
            return None

        round_up = compute_round_up(amount)
        if round_up == 0:
            return None

        if not savings.is_active:
            logger.info(
                "round-up skipped: savings account %s is %s",
                savings.id, savings.status.value,
                extra={"action": AuditAction.ROUND_UP_APPLIED.value,
                       "account_id": source.id},
            )
            return None
        if source.balance - amount < round_up:
            logger.info(
                "round-up skipped: insufficient funds after debit",
                extra={"action": AuditAction.ROUND_UP_APPLIED.value,
                       "account_id": source.id},
            )
            return None
        return round_up

    def _create_transaction(self, **fields) -> Transaction:
        txn = Transaction(currency=self.settings.DEFAULT_CURRENCY, **fields)
        self.db.add(txn)
        self.db.flush()
        return txn

    def _apply_round_up(
        self,
        txn: Transaction,
        source: Account,
        savings: Account,
        round_up: Decimal,
        ip_address: str | None,
    ) -> None:
        self.ledger.apply_entry(
            source.id, -round_up, txn.id, "Round-up to savings"
        )
        self.ledger.apply_entry(
            savings.id, round_up, txn.id, f"Round-up from {txn.description}"
        )
        self.audit.record(
            source.user_id, AuditAction.ROUND_UP_APPLIED,
            {
                "transaction_id": txn.id,
                "checking_account_id": source.id,
                "savings_account_id": savings.id,
                "debit_amount": txn.amount,
                "round_up_amount": round_up,
            },
            ip_address,
        )

    def _run(self, name: str, work):
        return run_unit_of_work(
            self.db, work,
            name=name,
            max_attempts=self.settings.MAX_CONFLICT_RETRIES,
        )

    def deposit(
        self,
        account_id: int,
        amount,
        idempotency_key: str,
        description: str = "Direct Deposit",
        ip_address: str | None = None,
    ) -> Transaction:
        """Credit an account from outside the bank."""
        amount = verify_amount(amount)

        def work() -> Transaction:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing:
                return existing

            account = self.ledger.get_account(account_id, for_update=True)
            self._require_active(account)

            txn = self._create_transaction(
                idempotency_key=idempotency_key,
                transaction_type=TransactionType.DEPOSIT,
                destination_account_id=account.id,
                amount=amount,
                description=description,
            )
            new_balance = self.ledger.apply_entry(
                account.id, amount, txn.id, description
            )
            self.audit.record(
                account.user_id, AuditAction.DEPOSIT,
                {
                    "transaction_id": txn.id,
                    "account_id": account.id,
                    "amount": amount,
                    "balance_after": new_balance,
                    "idempotency_key": idempotency_key,
                },
                ip_address,
            )
            logger.info(
                "deposit of %s completed", amount,
                extra={"action": AuditAction.DEPOSIT.value,
                       "account_id": account.id, "transaction_id": txn.id},
            )
            return txn

        return self._run("deposit", work)

    def purchase(
        self,
        account_id: int,
        amount,
        merchant_name: str,
        idempotency_key: str,
        description: str | None = None,
        ip_address: str | None = None,
    ) -> Transaction:
        """
        Debit an account for a card purchase at an outside merchant.

        Purchases are debits, so round-ups apply.
        """
        amount = verify_amount(amount)
        description = description or f"Purchase at {merchant_name}"

        def work() -> Transaction:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing:
                return existing

            savings_id = self._round_up_savings_id(account_id)
            locked = self.ledger.lock_accounts(
                [account_id] + ([savings_id] if savings_id else [])
            )
            source = locked.get(account_id)
            if source is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            self._require_active(source)
            if source.balance < amount:
                raise InsufficientFundsError(source.id, source.balance, amount)

            savings = locked.get(savings_id) if savings_id else None
            round_up = self._plan_round_up(source, savings, amount)

            txn = self._create_transaction(
                idempotency_key=idempotency_key,
                transaction_type=TransactionType.PURCHASE,
                source_account_id=source.id,
                amount=amount,
                round_up_amount=round_up,
                description=description,
                merchant_name=merchant_name,
            )
            self.ledger.apply_entry(source.id, -amount, txn.id, description)
            if round_up is not None:
                self._apply_round_up(txn, source, savings, round_up, ip_address)

            self.audit.record(
                source.user_id, AuditAction.PURCHASE,
                {
                    "transaction_id": txn.id,
                    "account_id": source.id,
                    "amount": amount,
                    "merchant_name": merchant_name,
                    "round_up_amount": round_up,
                    "idempotency_key": idempotency_key,
                },
                ip_address,
            )
            logger.info(
                "purchase of %s completed", amount,
                extra={"action": AuditAction.PURCHASE.value,
                       "account_id": source.id, "transaction_id": txn.id},
            )
            return txn

        return self._run("purchase", work)

    def transfer(
        self,
        source_account_id: int,
        destination_account_id: int,
        amount,
        idempotency_key: str,
        description: str = "Transfer",
        ip_address: str | None = None,
    ) -> Transaction:
        """
        Move money between two accounts, all or nothing.

        The source may belong to a different user than the
        destination. A retry with the same idempotency key
        returns the original transaction without moving money.
        """
        amount = verify_amount(amount)
        if source_account_id == destination_account_id:
            raise BankingError("Cannot transfer to the same account")

        def work() -> Transaction:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing:
                logger.info(
                    "transfer replayed for existing idempotency key",
                    extra={"action": AuditAction.TRANSFER.value,
                           "transaction_id": existing.id},
                )
                return existing

            savings_id = self._round_up_savings_id(source_account_id)
            locked = self.ledger.lock_accounts(
                [source_account_id, destination_account_id]
                + ([savings_id] if savings_id else [])
            )
            source = locked.get(source_account_id)
            destination = locked.get(destination_account_id)
            if source is None:
                raise AccountNotFoundError(
                    f"Account {source_account_id} not found"
                )
            if destination is None:
                raise AccountNotFoundError(
                    f"Account {destination_account_id} not found"
                )
            self._require_active(source)
            self._require_active(destination)

            # Pre-check; apply_entry re-checks under the row lock
            if source.balance < amount:
                raise InsufficientFundsError(source.id, source.balance, amount)

            savings = locked.get(savings_id) if savings_id else None
            round_up = self._plan_round_up(source, savings, amount)

            txn = self._create_transaction(
                idempotency_key=idempotency_key,
                transaction_type=TransactionType.TRANSFER,
                source_account_id=source.id,
                destination_account_id=destination.id,
                amount=amount,
                round_up_amount=round_up,
                description=description,
            )
            source_balance = self.ledger.apply_entry(
                source.id, -amount, txn.id, description
            )
            destination_balance = self.ledger.apply_entry(
                destination.id, amount, txn.id, description
            )
            if round_up is not None:
                self._apply_round_up(txn, source, savings, round_up, ip_address)

            self.audit.record(
                source.user_id, AuditAction.TRANSFER,
                {
                    "transaction_id": txn.id,
                    "source_account_id": source.id,
                    "destination_account_id": destination.id,
                    "amount": amount,
                    "source_balance_after": source_balance,
                    "destination_balance_after": destination_balance,
                    "round_up_amount": round_up,
                    "idempotency_key": idempotency_key,
                },
                ip_address,
            )
            logger.info(
                "transfer of %s completed", amount,
                extra={"action": AuditAction.TRANSFER.value,
                       "account_id": source.id, "transaction_id": txn.id},
            )
            return txn

        return self._run("transfer", work)

    # --- Lookup and reversal ---

    def get_transaction(self, transaction_id: int) -> Transaction:
        """Get a transaction by ID."""
        txn = self.db.get(Transaction, transaction_id)
        if not txn:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found"
            )
        return txn

    def list_transactions(
        self, account_id: int, limit: int = 50, offset: int = 0
    ) -> list[Transaction]:
        """Transactions that moved money in or out of an account, newest first."""
        self.get_account(account_id)
        txns = self.db.execute(
            select(Transaction)
            .where(or_(
                Transaction.source_account_id == account_id,
                Transaction.destination_account_id == account_id,
            ))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return list(txns)

    def reverse(
        self,
        transaction_id: int,
        idempotency_key: str,
        ip_address: str | None = None,
    ) -> Transaction:
        """
        Undo a committed transaction with offsetting ledger entries.

        The original transaction and its entries are not touched. A
        new REVERSAL transaction points back at it and carries one
        opposite entry per original entry, round-up legs included.
        Fails with InsufficientFundsError if an account that was
        credited no longer holds the money.
        """

        def work() -> Transaction:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing:
                return existing

            original = self.get_transaction(transaction_id)
            if original.transaction_type == TransactionType.REVERSAL:
                raise BankingError("A reversal cannot itself be reversed")
            already = self.db.execute(
                select(Transaction.id).where(
                    Transaction.reference_transaction_id == original.id
                )
            ).scalar_one_or_none()
            if already is not None:
                raise BankingError(
                    f"Transaction {original.id} was already reversed "
                    f"by transaction {already}"
                )

            entries = self.ledger.get_entries_by_transaction(original.id)
            locked = self.ledger.lock_accounts(e.account_id for e in entries)
            for account in locked.values():
                self._require_active(account)

            txn = self._create_transaction(
                idempotency_key=idempotency_key,
                transaction_type=TransactionType.REVERSAL,
                source_account_id=original.destination_account_id,
                destination_account_id=original.source_account_id,
                amount=original.amount,
                round_up_amount=original.round_up_amount,
                description=f"Reversal of transaction {original.id}",
                merchant_name=original.merchant_name,
                reference_transaction_id=original.id,
            )
            # Credits back first so an account debited and credited in
            # the original never dips below zero midway
            for entry in sorted(entries, key=lambda e: (e.amount > 0, e.id)):
                self.ledger.apply_entry(
                    entry.account_id, -entry.amount, txn.id,
                    f"Reversal: {entry.description}",
                )

            owner_account_id = (
                original.source_account_id or original.destination_account_id
            )
            self.audit.record(
                locked[owner_account_id].user_id, AuditAction.REVERSAL,
                {
                    "transaction_id": txn.id,
                    "reversed_transaction_id": original.id,
                    "amount": original.amount,
                    "round_up_amount": original.round_up_amount,
                    "idempotency_key": idempotency_key,
                },
                ip_address,
            )
            logger.info(
                "transaction %s reversed", original.id,
                extra={"action": AuditAction.REVERSAL.value,
                       "transaction_id": txn.id},
            )
            return txn

        return self._run("reverse", work)
