"""
Error taxonomy for the banking core.

Recoverable business errors subclass BankingError, which is a
ValueError so the API layer can keep mapping them to 4xx.
Everything else means the enclosing unit of work was rolled back.
"""

from decimal import Decimal


class BankingError(ValueError):
    """A recoverable, caller-facing rejection. No state changed."""


class UserNotFoundError(BankingError):
    pass


class AccountNotFoundError(BankingError):
    pass


class TransactionNotFoundError(BankingError):
    pass


class DuplicateUserError(BankingError):
    pass


class AccountNotActiveError(BankingError):
    pass


class InvalidStatusTransitionError(BankingError):
    pass


class RoundUpConfigurationError(BankingError):
    pass


class InsufficientFundsError(BankingError):

    def __init__(self, account_id: int, available: Decimal, requested: Decimal):
        self.account_id = account_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds in account {account_id}: "
            f"available={available}, requested={requested}"
        )


class AuditWriteFailedError(Exception):
    """The audit row could not be written; the whole unit is rolled back."""


class StoreUnavailableError(Exception):
    """
    Transient store failure.

    Safe to retry with the same idempotency key.
    """


class IntegrityViolationError(Exception):
    """A ledger or balance invariant was about to be broken."""
