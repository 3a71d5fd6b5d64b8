"""
Voter profile endpoint.
"""

from fastapi import APIRouter

from api.deps import CurrentVoter
from schemas.user import VoterProfile

router = APIRouter()


@router.get("/me", response_model=VoterProfile)
async def get_profile(voter: CurrentVoter) -> VoterProfile:
    """Profile of the acting voter."""
    return VoterProfile.from_voter(voter)
