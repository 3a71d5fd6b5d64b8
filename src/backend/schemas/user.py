"""
Voter profile schemas.
"""

from pydantic import BaseModel

from schemas.election import Voter


class VoterProfile(BaseModel):
    """Public-safe view of the acting voter (no password)."""

    voter_id: str
    email: str
    name: str
    elections: list[str] = []

    @classmethod
    def from_voter(cls, voter: Voter) -> "VoterProfile":
        return cls(
            voter_id=voter.voter_id,
            email=voter.email,
            name=voter.name,
            elections=list(voter.elections),
        )
