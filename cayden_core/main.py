"""
Cayden Core — FastAPI Application.

This is the entry point for the application.
All routers and error handlers are registered here.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cayden_core.config import get_settings
from cayden_core.errors import (
    AuditWriteFailedError,
    IntegrityViolationError,
    StoreUnavailableError,
)
from cayden_core.logging_config import setup_logging
from cayden_core.api.health import router as health_router
from cayden_core.api.users import router as users_router
from cayden_core.api.auth import router as auth_router
from cayden_core.api.accounts import router as accounts_router
from cayden_core.api.transactions import router as transactions_router
from cayden_core.api.ledger import router as ledger_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Consumer banking core: ledger, round-ups, login lockout, audit trail",
)


@app.exception_handler(StoreUnavailableError)
def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
        headers={"Retry-After": "1"},
    )


@app.exception_handler(AuditWriteFailedError)
@app.exception_handler(IntegrityViolationError)
def consistency_failure_handler(request: Request, exc: Exception):
    logger.error("request failed and was rolled back: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Operation failed and was rolled back"},
    )


# Register routers
app.include_router(health_router)
app.include_router(users_router)
app.include_router(auth_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(ledger_router)
