"""
Pydantic schemas for money movement and ledger history.

These define the API contract — what data comes in,
what data goes out.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from cayden_core.models.enums import TransactionType


# --- Request Schemas ---

class DepositRequest(BaseModel):
    account_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str = Field(default="Direct Deposit", max_length=255)
    idempotency_key: str = Field(min_length=1, max_length=100)


class PurchaseRequest(BaseModel):
    account_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    merchant_name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=255)
    idempotency_key: str = Field(min_length=1, max_length=100)


class TransferRequest(BaseModel):
    source_account_id: int
    destination_account_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str = Field(default="Transfer", max_length=255)
    idempotency_key: str = Field(min_length=1, max_length=100)


# --- Response Schemas ---

class TransactionResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    idempotency_key: str
    transaction_type: TransactionType
    source_account_id: int | None
    destination_account_id: int | None
    amount: Decimal
    round_up_amount: Decimal | None
    currency: str
    description: str
    merchant_name: str | None
    reference_transaction_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class LedgerEntryResponse(BaseModel):
    """Single entry in an account's history."""
    id: int
    account_id: int
    transaction_id: int
    amount: Decimal
    balance_after: Decimal
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}
