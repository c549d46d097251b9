"""
User API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cayden_core.errors import UserNotFoundError
from cayden_core.models.base import get_db
from cayden_core.services.account_service import AccountService
from cayden_core.services.audit_service import AuditService
from cayden_core.services.user_service import UserService
from cayden_core.schemas.account import (
    UserCreate,
    UserResponse,
    AccountResponse,
    AuditLogResponse,
)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=201)
def register(
    request: UserCreate,
    http_request: Request,
    db: Session = Depends(get_db),
):
    """Register a user; a checking account is opened with it."""
    service = UserService(db)
    ip = http_request.client.host if http_request.client else None
    try:
        user = service.register(
            request.email,
            request.password,
            request.first_name,
            request.last_name,
            ip_address=ip,
        )
        db.commit()
        return user
    except IntegrityError:
        # A concurrent registration took the email after our check
        db.rollback()
        raise HTTPException(
            status_code=400,
            detail=f"Email '{request.email}' is already registered",
        )
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    try:
        return UserService(db).get_user(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    """Delete a user with no accounts. Their audit trail is kept."""
    service = UserService(db)
    try:
        service.delete_user(user_id)
        db.commit()
    except UserNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{user_id}/accounts", response_model=list[AccountResponse])
def get_user_accounts(
    user_id: int,
    db: Session = Depends(get_db),
):
    return AccountService(db).get_user_accounts(user_id)


@router.get("/{user_id}/audit-logs", response_model=list[AuditLogResponse])
def get_audit_logs(
    user_id: int,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    """Get a user's audit trail, newest first."""
    return AuditService(db).get_user_logs(user_id, limit=limit)
