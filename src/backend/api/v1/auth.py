"""
Authentication endpoints.

Login opens a session and returns its bearer token; logout revokes it.
"""

import structlog
from fastapi import APIRouter, Depends

from api.deps import CurrentSession
from schemas.auth import LoginRequest, TokenResponse
from services.session_service import SessionService, get_session_service

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    sessions: SessionService = Depends(get_session_service),
) -> TokenResponse:
    """
    Sign in with email and password.

    The returned token identifies the voter on every other endpoint.
    """
    session, token = await sessions.login(credentials.email, credentials.password)
    return TokenResponse(access_token=token, expires_at=session.expires_at)


@router.post("/logout")
async def logout(
    session: CurrentSession,
    sessions: SessionService = Depends(get_session_service),
) -> dict[str, str]:
    """End the session. The token is rejected from now on."""
    sessions.logout(session)
    return {"message": "Successfully logged out"}
