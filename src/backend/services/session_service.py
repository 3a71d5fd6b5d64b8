"""
Session Service

Owns the lifecycle of the authenticated voter session:
- login: check email/password, then issue a bearer token
- resolve: turn a bearer token back into a Session
- logout: revoke the token so it cannot be used again

Credentials are checked against Firebase Authentication
(``accounts:signInWithPassword``). When no Firebase API key is configured
(local development) the voter record's password is used instead.
"""

from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from core.config import settings
from core.exceptions import AuthenticationError, ConnectivityError
from core.security import create_access_token, decode_token, verify_plaintext_password
from repositories.provider import VoterRepositoryProtocol, get_voter_repository
from schemas.auth import Session

logger = structlog.get_logger(__name__)

# Firebase Auth error codes that mean "wrong credentials"
INVALID_CREDENTIAL_CODES = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
}


class FirebaseIdentityProvider:
    """Email/password sign-in through the Firebase Auth REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def sign_in(self, email: str, password: str) -> None:
        """
        Verify credentials.

        Raises:
            AuthenticationError: credentials rejected
            ConnectivityError: the identity service could not be reached
        """
        try:
            response = await self._client.post(
                "/accounts:signInWithPassword",
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
            )
        except httpx.HTTPError as e:
            logger.error("identity_request_failed", error=str(e))
            raise ConnectivityError("Could not reach the identity service") from e

        if response.status_code == 200:
            return

        try:
            code = response.json().get("error", {}).get("message", "")
        except (ValueError, AttributeError):
            code = ""

        # Codes can carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
        code = code.split(" ")[0]
        if response.status_code == 400 and code in INVALID_CREDENTIAL_CODES:
            logger.info("login_rejected", reason=code)
            raise AuthenticationError("Invalid email or password")
        if response.status_code == 400 and code:
            logger.warning("login_refused", reason=code)
            raise AuthenticationError(code.replace("_", " ").capitalize())

        logger.error("identity_request_rejected", status_code=response.status_code)
        raise ConnectivityError(f"Identity service answered {response.status_code}")

    async def close(self) -> None:
        await self._client.aclose()


class SessionService:
    """
    Issues, resolves and revokes voter sessions.

    Revoked token ids are held in memory until their tokens would have
    expired anyway.
    """

    def __init__(
        self,
        voters: VoterRepositoryProtocol,
        identity: Optional[FirebaseIdentityProvider] = None,
    ):
        self.voters = voters
        self.identity = identity
        self._revoked: dict[str, datetime] = {}

    async def login(self, email: str, password: str) -> tuple[Session, str]:
        """
        Authenticate and open a session.

        The email must also belong to a voter record, since every flow resolves
        the acting voter from it.

        Returns:
            (session, bearer token)
        """
        email = email.strip()

        if self.identity is not None:
            await self.identity.sign_in(email, password)
            voter = await self.voters.get_by_email(email)
        else:
            voter = await self.voters.get_by_email(email)
            if voter is None or not verify_plaintext_password(password, voter.password):
                logger.info("login_rejected", reason="voter_password_mismatch")
                raise AuthenticationError("Invalid email or password")

        if voter is None:
            logger.warning("login_without_voter_record")
            raise AuthenticationError("No voter is registered with this email")

        token = create_access_token(voter.email)
        session = self.resolve(token)
        logger.info("session_started", voter_id=voter.voter_id, token_id=session.token_id[:8])
        return session, token

    def resolve(self, token: str) -> Session:
        """
        Turn a bearer token into a Session.

        Raises:
            AuthenticationError: token invalid, expired or revoked
        """
        payload = decode_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        self._purge_expired()
        if payload["jti"] in self._revoked:
            logger.warning("revoked_token_used", token_id=payload["jti"][:8])
            raise AuthenticationError("Token has been revoked")

        return Session(
            email=payload["sub"],
            token_id=payload["jti"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def logout(self, session: Session) -> None:
        """Revoke the session's token."""
        self._revoked[session.token_id] = session.expires_at
        logger.info("session_ended", token_id=session.token_id[:8])

    def _purge_expired(self) -> None:
        now = datetime.now(timezone.utc)
        for token_id in [tid for tid, expires_at in self._revoked.items() if expires_at <= now]:
            del self._revoked[token_id]


# Global service instance (lazy-initialized)
_session_service: SessionService | None = None


def get_session_service() -> SessionService:
    """Get or create the process-wide session service."""
    global _session_service

    if _session_service is None:
        identity = None
        if settings.FIREBASE_API_KEY:
            identity = FirebaseIdentityProvider(
                api_key=settings.FIREBASE_API_KEY,
                base_url=settings.FIREBASE_AUTH_URL,
            )
        else:
            logger.warning("firebase_auth_not_configured", fallback="voter_record_password")
        _session_service = SessionService(get_voter_repository(), identity)

    return _session_service


async def close_session_service() -> None:
    """Close the identity client. Called during application shutdown."""
    global _session_service

    if _session_service is not None:
        if _session_service.identity is not None:
            await _session_service.identity.close()
        _session_service = None
