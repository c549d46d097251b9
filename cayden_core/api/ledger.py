"""
Ledger API endpoints.

Read-only: balances change only through the transaction
endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cayden_core.errors import AccountNotFoundError
from cayden_core.models.base import get_db
from cayden_core.services.ledger_service import LedgerService
from cayden_core.schemas.ledger import LedgerEntryResponse

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get(
    "/accounts/{account_id}/entries",
    response_model=list[LedgerEntryResponse],
)
def get_account_entries(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Get all ledger entries for an account, oldest first."""
    service = LedgerService(db)
    try:
        return service.history(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/accounts/{account_id}/verify")
def verify_account_balance(
    account_id: int,
    db: Session = Depends(get_db),
):
    """
    Replay the ledger and compare it with the stored balance.

    A mismatch surfaces as a 500 through the integrity
    violation handler.
    """
    service = LedgerService(db)
    try:
        replayed = service.verify_balance(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"account_id": account_id, "balance": str(replayed), "consistent": True}
