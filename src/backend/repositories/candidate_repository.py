"""
Candidate repository over the ``candidates`` collection.
"""

from typing import Any

from db.realtime import CANDIDATES_PATH
from repositories.base import RealtimeRepository, parse_collection
from schemas.election import Candidate


def candidates_for_election(data: Any, election_id: str) -> list[Candidate]:
    """Candidates of a collection snapshot that run in ``election_id``."""
    return [
        candidate
        for candidate in parse_collection(data, Candidate, CANDIDATES_PATH)
        if candidate.runs_in(election_id)
    ]


class CandidateRepository(RealtimeRepository):
    """Read access to candidate records."""

    async def list_all(self) -> list[Candidate]:
        data = await self.database.read(CANDIDATES_PATH)
        return parse_collection(data, Candidate, CANDIDATES_PATH)

    async def list_for_election(self, election_id: str) -> list[Candidate]:
        data = await self.database.read(CANDIDATES_PATH)
        return candidates_for_election(data, election_id)
