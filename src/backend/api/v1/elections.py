"""
Election endpoints: the voter's elections, their candidates and results.

Results can be fetched once or followed as a server-sent event stream that
pushes a fresh tally every time the candidate collection changes. The stream
holds one realtime subscription, released when the client disconnects.
"""

from typing import AsyncIterator

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from api.deps import Aggregator, Candidates, CurrentVoter, Elections
from core.exceptions import ElectionNotFoundError, VotingError
from schemas.election import Candidate, Election, ElectionResults

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _require_enrolled(elections: Elections, voter: CurrentVoter, election_id: str) -> Election:
    election = await elections.get_by_id(election_id)
    if election is None or not voter.is_enrolled(election.election_id):
        raise ElectionNotFoundError()
    return election


@router.get("", response_model=list[Election])
async def list_elections(voter: CurrentVoter, elections: Elections) -> list[Election]:
    """Elections the acting voter is enrolled in."""
    return await elections.list_for_voter(voter)


@router.get("/{election_id}", response_model=Election)
async def get_election(election_id: str, voter: CurrentVoter, elections: Elections) -> Election:
    return await _require_enrolled(elections, voter, election_id)


@router.get("/{election_id}/candidates", response_model=list[Candidate])
async def list_candidates(
    election_id: str,
    voter: CurrentVoter,
    elections: Elections,
    candidates: Candidates,
) -> list[Candidate]:
    """Candidates running in the election, without vote counts."""
    await _require_enrolled(elections, voter, election_id)
    return await candidates.list_for_election(election_id)


@router.get("/{election_id}/results", response_model=ElectionResults)
async def get_results(
    election_id: str,
    voter: CurrentVoter,
    elections: Elections,
    aggregator: Aggregator,
) -> ElectionResults:
    """Vote counts, percentages and the chart dataset."""
    await _require_enrolled(elections, voter, election_id)
    return await aggregator.aggregate(election_id)


@router.get("/{election_id}/results/stream")
async def stream_results(
    election_id: str,
    request: Request,
    voter: CurrentVoter,
    elections: Elections,
    aggregator: Aggregator,
) -> StreamingResponse:
    """Server-sent ``results`` events; an ``error`` event ends the stream."""
    await _require_enrolled(elections, voter, election_id)

    async def event_stream() -> AsyncIterator[str]:
        results = aggregator.watch(election_id)
        try:
            async for snapshot in results:
                if await request.is_disconnected():
                    break
                yield f"event: results\ndata: {snapshot.model_dump_json()}\n\n"
        except VotingError as e:
            logger.warning("results_stream_failed", election_id=election_id, error=e.message)
            yield f"event: error\ndata: {e.message}\n\n"
        finally:
            await results.aclose()
            logger.info("results_stream_closed", election_id=election_id)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
