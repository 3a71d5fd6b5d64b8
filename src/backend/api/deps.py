"""
Shared dependencies for API endpoints.

Includes:
- Session resolution from the bearer token
- The acting voter, re-read from the realtime database on every request
- Process-wide clients (ledger, eligibility gate, aggregator)
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.exceptions import AuthenticationError
from db.realtime import RealtimeDatabase, get_realtime_database
from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.provider import (
    get_candidate_repository,
    get_election_repository,
    get_voter_repository,
)
from repositories.voter_repository import VoterRepository
from schemas.auth import Session
from schemas.election import Voter
from services.aggregator import CandidateAggregator
from services.eligibility import EligibilityGate, get_eligibility_gate
from services.ledger_client import LedgerClient, get_ledger_client
from services.session_service import SessionService, get_session_service

# auto_error=False so a missing token goes through the same 401 path as a bad one
security = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    sessions: SessionService = Depends(get_session_service),
) -> Session:
    """
    Resolve the session from the bearer token.

    Raises:
        AuthenticationError: token missing, invalid, expired or revoked
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return sessions.resolve(credentials.credentials)


async def get_current_voter(
    session: Annotated[Session, Depends(get_current_session)],
    voters: VoterRepository = Depends(get_voter_repository),
) -> Voter:
    """
    The voter record behind the session.

    Raises:
        VoterNotFoundError: the record was removed since login
    """
    return await voters.require_by_email(session.email)


def get_aggregator(
    candidates: CandidateRepository = Depends(get_candidate_repository),
    ledger: LedgerClient = Depends(get_ledger_client),
    database: RealtimeDatabase = Depends(get_realtime_database),
) -> CandidateAggregator:
    return CandidateAggregator(candidates, ledger, database)


CurrentSession = Annotated[Session, Depends(get_current_session)]
CurrentVoter = Annotated[Voter, Depends(get_current_voter)]
Ledger = Annotated[LedgerClient, Depends(get_ledger_client)]
Gate = Annotated[EligibilityGate, Depends(get_eligibility_gate)]
Voters = Annotated[VoterRepository, Depends(get_voter_repository)]
Elections = Annotated[ElectionRepository, Depends(get_election_repository)]
Candidates = Annotated[CandidateRepository, Depends(get_candidate_repository)]
Aggregator = Annotated[CandidateAggregator, Depends(get_aggregator)]
