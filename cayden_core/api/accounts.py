"""
Account API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from cayden_core.errors import AccountNotFoundError, UserNotFoundError
from cayden_core.models.base import get_db
from cayden_core.services.account_service import AccountService
from cayden_core.schemas.account import (
    AccountOpen,
    AccountResponse,
    AccountStatusUpdate,
    AccountBalanceResponse,
    RoundUpEnable,
)
from cayden_core.schemas.ledger import TransactionResponse

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def open_account(
    request: AccountOpen,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Open a new, active account for an existing user."""
    service = AccountService(db)
    ip = http_request.client.host if http_request.client else None
    try:
        account = service.open_account(
            request.user_id, request.account_type, ip_address=ip
        )
        db.commit()
        return account
    except UserNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Get account details."""
    service = AccountService(db)
    try:
        return service.get_account(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: int,
    db: Session = Depends(get_db),
):
    service = AccountService(db)
    try:
        account = service.get_account(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return AccountBalanceResponse(
        account_id=account.id,
        account_type=account.account_type,
        status=account.status,
        balance=account.balance,
        currency=account.currency,
    )


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionResponse],
)
def list_account_transactions(
    account_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """Transactions touching this account, newest first."""
    service = AccountService(db)
    try:
        return service.list_transactions(account_id, limit=limit, offset=offset)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{account_id}/status", response_model=AccountResponse)
def change_account_status(
    account_id: int,
    request: AccountStatusUpdate,
    db: Session = Depends(get_db),
):
    """
    Change account status.

    Enforces the state machine — only valid transitions
    are allowed.
    """
    service = AccountService(db)
    try:
        account = service.change_status(account_id, request.new_status)
        db.commit()
        return account
    except AccountNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{account_id}/round-up", response_model=AccountResponse)
def enable_round_up(
    account_id: int,
    request: RoundUpEnable,
    db: Session = Depends(get_db),
):
    """Round up debits on the given checking account into this savings account."""
    service = AccountService(db)
    try:
        account = service.enable_round_up(account_id, request.checking_account_id)
        db.commit()
        return account
    except AccountNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{account_id}/round-up", response_model=AccountResponse)
def disable_round_up(
    account_id: int,
    db: Session = Depends(get_db),
):
    service = AccountService(db)
    try:
        account = service.disable_round_up(account_id)
        db.commit()
        return account
    except AccountNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
