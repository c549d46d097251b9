"""
Transaction API endpoints.

The service commits or rolls back each movement itself, so
these handlers only translate outcomes to HTTP.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cayden_core.errors import AccountNotFoundError, TransactionNotFoundError
from cayden_core.models.base import get_db
from cayden_core.services.account_service import AccountService
from cayden_core.schemas.ledger import (
    DepositRequest,
    PurchaseRequest,
    TransferRequest,
    TransactionResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/deposit", response_model=TransactionResponse, status_code=201)
def deposit(
    request: DepositRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Deposit money into an account."""
    service = AccountService(db)
    try:
        return service.deposit(
            request.account_id,
            request.amount,
            request.idempotency_key,
            description=request.description,
            ip_address=_client_ip(http_request),
        )
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/purchase", response_model=TransactionResponse, status_code=201)
def purchase(
    request: PurchaseRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Pay a merchant from an account; round-ups apply."""
    service = AccountService(db)
    try:
        return service.purchase(
            request.account_id,
            request.amount,
            request.merchant_name,
            request.idempotency_key,
            description=request.description,
            ip_address=_client_ip(http_request),
        )
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/transfer", response_model=TransactionResponse, status_code=201)
def transfer(
    request: TransferRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Transfer money between two accounts."""
    service = AccountService(db)
    try:
        return service.transfer(
            request.source_account_id,
            request.destination_account_id,
            request.amount,
            request.idempotency_key,
            description=request.description,
            ip_address=_client_ip(http_request),
        )
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/{transaction_id}/reverse",
    response_model=TransactionResponse,
    status_code=201,
)
def reverse_transaction(
    transaction_id: int,
    idempotency_key: str,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Reverse a committed transaction with offsetting entries."""
    service = AccountService(db)
    try:
        return service.reverse(
            transaction_id,
            idempotency_key,
            ip_address=_client_ip(http_request),
        )
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
):
    """Get transaction details."""
    service = AccountService(db)
    try:
        return service.get_transaction(transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
