"""
Pydantic schemas for login.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from cayden_core.services.auth_service import LoginOutcome


class LoginRequest(BaseModel):
    email: str = Field(min_length=5, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    outcome: LoginOutcome
    user_id: int | None = None
    locked_until: datetime | None = None
    retry_after_seconds: int | None = None
