"""
Election repository over the ``elections`` collection.
"""

from typing import Optional

from db.realtime import ELECTIONS_PATH
from repositories.base import RealtimeRepository, parse_collection
from schemas.converters import canonical_id
from schemas.election import Election, Voter


class ElectionRepository(RealtimeRepository):
    """Read access to election records."""

    async def list_all(self) -> list[Election]:
        data = await self.database.read(ELECTIONS_PATH)
        return parse_collection(data, Election, ELECTIONS_PATH)

    async def list_for_voter(self, voter: Voter) -> list[Election]:
        """Elections the voter is enrolled in."""
        return [election for election in await self.list_all() if voter.is_enrolled(election.election_id)]

    async def get_by_id(self, election_id: str) -> Optional[Election]:
        wanted = canonical_id(election_id)
        for election in await self.list_all():
            if election.election_id == wanted:
                return election
        return None
