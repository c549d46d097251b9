"""
Login endpoint.

Outcome mapping: ALLOWED -> 200, REJECTED -> 401,
LOCKED -> 423 with a Retry-After header. Issuing tokens or
sessions is left to the gateway in front of this service.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from cayden_core.models.base import get_db
from cayden_core.services.auth_service import AuthService, LoginOutcome
from cayden_core.schemas.auth import LoginRequest, LoginResponse

router = APIRouter(prefix="/auth", tags=["Auth"])

STATUS_BY_OUTCOME = {
    LoginOutcome.ALLOWED: 200,
    LoginOutcome.REJECTED: 401,
    LoginOutcome.LOCKED: 423,
}


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    http_request: Request,
    db: Session = Depends(get_db),
):
    ip = http_request.client.host if http_request.client else None
    result = AuthService(db).login(request.email, request.password, ip)

    body = LoginResponse(outcome=result.outcome, user_id=result.user_id)
    headers = {}
    if result.outcome == LoginOutcome.LOCKED:
        retry_after = result.retry_after_seconds(datetime.utcnow())
        body.locked_until = result.locked_until
        body.retry_after_seconds = retry_after
        headers["Retry-After"] = str(retry_after)

    return JSONResponse(
        status_code=STATUS_BY_OUTCOME[result.outcome],
        content=body.model_dump(mode="json"),
        headers=headers,
    )
