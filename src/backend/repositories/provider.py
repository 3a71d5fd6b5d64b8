"""
Repository provider for dependency injection.

This module provides a unified interface for accessing repositories backed
by the realtime database.

Usage:
    from repositories.provider import get_voter_repository

    # In FastAPI dependencies:
    async def some_endpoint(
        voters: VoterRepositoryProtocol = Depends(get_voter_repository),
    ):
        voter = await voters.get_by_email(email)
"""

from typing import Optional, Protocol, runtime_checkable

from db.realtime import get_realtime_database
from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.voter_repository import VoterRepository
from schemas.election import Candidate, Election, Voter

# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class VoterRepositoryProtocol(Protocol):
    """Protocol defining voter repository operations."""

    async def get_by_email(self, email: str) -> Optional[Voter]: ...
    async def require_by_email(self, email: str) -> Voter: ...


@runtime_checkable
class CandidateRepositoryProtocol(Protocol):
    """Protocol defining candidate repository operations."""

    async def list_for_election(self, election_id: str) -> list[Candidate]: ...


@runtime_checkable
class ElectionRepositoryProtocol(Protocol):
    """Protocol defining election repository operations."""

    async def list_for_voter(self, voter: Voter) -> list[Election]: ...
    async def get_by_id(self, election_id: str) -> Optional[Election]: ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


def get_voter_repository() -> VoterRepository:
    return VoterRepository(get_realtime_database())


def get_candidate_repository() -> CandidateRepository:
    return CandidateRepository(get_realtime_database())


def get_election_repository() -> ElectionRepository:
    return ElectionRepository(get_realtime_database())
