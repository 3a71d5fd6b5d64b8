"""
Vote endpoints.

Casting runs the full submission flow: password re-check, ledger write and
read-back confirmation. The status endpoint is the eligibility gate.
"""

from fastapi import APIRouter, status

from api.deps import Candidates, CurrentSession, CurrentVoter, Gate, Ledger, Voters
from core.exceptions import ElectionNotFoundError
from schemas.vote import VoteCreate, VoteResponse, VoteStatus
from services.vote_submission import VoteSubmissionFlow

router = APIRouter()


@router.post("", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    vote_data: VoteCreate,
    session: CurrentSession,
    voters: Voters,
    candidates: Candidates,
    ledger: Ledger,
    gate: Gate,
) -> VoteResponse:
    """
    Cast a vote in an election.

    Requirements:
    - User must be authenticated (enforced by dependency)
    - The voter must be enrolled in the election and the candidate running in it
    - The re-entered password must match the voter record
    - The voter must not have voted in this election yet

    A vote accepted by the ledger but not yet visible in its history answers
    202 with error_type VoteNotConfirmedError.
    """
    flow = VoteSubmissionFlow(session, vote_data.election_id, voters, candidates, ledger, gate)
    outcome = await flow.cast_vote(vote_data.candidate_id, vote_data.password)

    return VoteResponse(
        success=True,
        state=outcome.state,
        message=outcome.message,
        record=outcome.record,
    )


@router.get("/status/{election_id}", response_model=VoteStatus)
async def check_vote_status(
    election_id: str,
    voter: CurrentVoter,
    gate: Gate,
) -> VoteStatus:
    """Check if the current voter has voted in the election."""
    if not voter.is_enrolled(election_id):
        raise ElectionNotFoundError()
    has_voted = await gate.check(election_id, voter)
    return VoteStatus(election_id=election_id, has_voted=has_voted)
