"""
Tests for the LedgerService.

Tests cover:
- Applying credits and debits
- Rejecting debits that would overdraw, with no partial effect
- History ordering
- Replay of the ledger against the stored balance
- Append-only entries
"""

from decimal import Decimal

import pytest

from cayden_core.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    IntegrityViolationError,
)
from cayden_core.models.enums import AccountType, TransactionType
from cayden_core.models.ledger_entry import LedgerEntry
from cayden_core.models.transaction import Transaction
from cayden_core.models.user import User
from cayden_core.services.account_service import AccountService
from cayden_core.services.ledger_service import LedgerService


# --- Helpers to reduce repetition ---

def make_account(db_session, email="ledger@test.com"):
    user = User(
        email=email, password_hash="x", first_name="Led", last_name="Ger",
    )
    db_session.add(user)
    db_session.flush()
    return AccountService(db_session).open_account(user.id, AccountType.CHECKING)


def make_txn(db_session, key, amount="1.00"):
    txn = Transaction(
        idempotency_key=key,
        transaction_type=TransactionType.DEPOSIT,
        amount=Decimal(amount),
        currency="USD",
        description="test",
    )
    db_session.add(txn)
    db_session.flush()
    return txn


class TestApplyEntry:

    def test_credit_increases_balance(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)

        new_balance = service.apply_entry(
            account.id, Decimal("250.00"), make_txn(db_session, "t1").id, "Deposit"
        )
        db_session.commit()

        assert new_balance == Decimal("250.00")
        assert service.get_account(account.id).balance == Decimal("250.00")

    def test_debit_decreases_balance(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("100"), make_txn(db_session, "t1").id, "In")

        new_balance = service.apply_entry(
            account.id, Decimal("-30.25"), make_txn(db_session, "t2").id, "Out"
        )
        db_session.commit()

        assert new_balance == Decimal("69.75")

    def test_debit_to_exactly_zero_allowed(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("40"), make_txn(db_session, "t1").id, "In")

        assert service.apply_entry(
            account.id, Decimal("-40"), make_txn(db_session, "t2").id, "Out"
        ) == Decimal("0")

    def test_overdraw_rejected_without_change(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("50"), make_txn(db_session, "t1").id, "In")
        db_session.commit()

        txn = make_txn(db_session, "t2")
        with pytest.raises(InsufficientFundsError) as exc_info:
            service.apply_entry(account.id, Decimal("-50.01"), txn.id, "Out")

        assert exc_info.value.available == Decimal("50")
        assert exc_info.value.requested == Decimal("50.01")
        assert service.get_account(account.id).balance == Decimal("50")
        assert len(service.history(account.id)) == 1

    def test_every_change_writes_an_entry(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        txn = make_txn(db_session, "t1")

        service.apply_entry(account.id, Decimal("12.34"), txn.id, "In")
        db_session.commit()

        [entry] = service.history(account.id)
        assert entry.amount == Decimal("12.34")
        assert entry.balance_after == Decimal("12.34")
        assert entry.transaction_id == txn.id

    def test_zero_amount_rejected(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)

        with pytest.raises(ValueError, match="non-zero"):
            service.apply_entry(account.id, Decimal("0"), make_txn(db_session, "t1").id, "Nothing")

    def test_unknown_account_rejected(self, db_session):
        service = LedgerService(db_session)
        with pytest.raises(AccountNotFoundError):
            service.apply_entry(999, Decimal("1"), make_txn(db_session, "t1").id, "In")


class TestHistory:

    def test_history_is_oldest_first(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        for i, amount in enumerate(["10", "-3", "5", "-2"]):
            service.apply_entry(
                account.id, Decimal(amount), make_txn(db_session, f"t{i}").id, "x"
            )
        db_session.commit()

        entries = service.history(account.id)

        assert [e.amount for e in entries] == [
            Decimal("10"), Decimal("-3"), Decimal("5"), Decimal("-2"),
        ]
        assert [e.id for e in entries] == sorted(e.id for e in entries)

    def test_history_can_be_read_twice(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("10"), make_txn(db_session, "t1").id, "x")
        db_session.commit()

        first = [e.id for e in service.history(account.id)]
        second = [e.id for e in service.history(account.id)]
        assert first == second

    def test_history_for_unknown_account(self, db_session):
        with pytest.raises(AccountNotFoundError):
            LedgerService(db_session).history(12345)


class TestVerifyBalance:

    def test_replay_matches_balance(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        for i, amount in enumerate(["100", "-20.50", "7.25", "-86.75", "1"]):
            service.apply_entry(
                account.id, Decimal(amount), make_txn(db_session, f"t{i}").id, "x"
            )
        db_session.commit()

        replayed = service.verify_balance(account.id)

        assert replayed == Decimal("1")
        assert replayed == service.get_account(account.id).balance

    def test_balance_written_outside_the_ledger_is_detected(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("10"), make_txn(db_session, "t1").id, "x")
        db_session.commit()

        account.balance = Decimal("999")
        db_session.commit()

        with pytest.raises(IntegrityViolationError, match="does not match"):
            service.verify_balance(account.id)


class TestAppendOnly:

    def test_entry_cannot_be_updated(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("10"), make_txn(db_session, "t1").id, "x")
        db_session.commit()

        entry = db_session.query(LedgerEntry).one()
        entry.amount = Decimal("1000")

        with pytest.raises(IntegrityViolationError, match="append-only"):
            db_session.flush()

    def test_entry_cannot_be_deleted(self, db_session):
        account = make_account(db_session)
        service = LedgerService(db_session)
        service.apply_entry(account.id, Decimal("10"), make_txn(db_session, "t1").id, "x")
        db_session.commit()

        db_session.delete(db_session.query(LedgerEntry).one())

        with pytest.raises(IntegrityViolationError, match="append-only"):
            db_session.flush()
