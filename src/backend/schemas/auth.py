"""
Authentication-related Pydantic schemas.

Voters sign in with email and password; the gateway answers with a bearer
token that identifies the session for every later call.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, repr=False)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class Session(BaseModel):
    """
    The authenticated voter session.

    Created on login and torn down on logout. Flows receive it explicitly
    instead of reading a stored email.
    """

    email: str
    token_id: str
    issued_at: datetime
    expires_at: datetime
