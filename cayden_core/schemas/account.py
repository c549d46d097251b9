"""
Pydantic schemas for user and account operations.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from cayden_core.models.enums import AccountType, AccountStatus, AuditAction


# --- User Schemas ---

class UserCreate(BaseModel):
    email: str = Field(min_length=5, max_length=255)
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class UserResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogResponse(BaseModel):
    id: int
    user_id: int | None
    action: AuditAction
    details: dict
    ip_address: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Account Schemas ---

class AccountOpen(BaseModel):
    """Request to open a new account."""
    user_id: int
    account_type: AccountType


class AccountResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    user_id: int | None
    account_type: AccountType
    account_number: str
    routing_number: str
    balance: Decimal
    currency: str
    status: AccountStatus
    round_up_enabled: bool
    linked_account_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountStatusUpdate(BaseModel):
    """Request to change account status."""
    new_status: AccountStatus


class RoundUpEnable(BaseModel):
    """Link a savings account to the checking account it rounds up."""
    checking_account_id: int


class AccountBalanceResponse(BaseModel):
    account_id: int
    account_type: AccountType
    status: AccountStatus
    balance: Decimal
    currency: str
