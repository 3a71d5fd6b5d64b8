"""
Candidate Aggregator

Builds the results view of an election:
1. candidates restricted to the election
2. one vote-count lookup per candidate against the ledger, run concurrently
3. sort ascending by candidate id
4. percentage of the total per candidate (0 when nobody has voted)

The lookups are joined all-or-nothing: if one fails, the aggregation fails,
because dropping a candidate would skew every other percentage. The list and
the chart dataset are built from the same snapshot of counts.
"""

import asyncio
from typing import Any, AsyncIterator

import structlog

from core.exceptions import AggregationError, VotingError
from db.realtime import CANDIDATES_PATH, RealtimeDatabase
from repositories.candidate_repository import candidates_for_election
from repositories.provider import CandidateRepositoryProtocol
from schemas.converters import canonical_id
from schemas.election import Candidate, CandidateTally, ChartSlice, ElectionResults
from services.ledger_client import LedgerClient

logger = structlog.get_logger(__name__)


def candidate_sort_key(candidate_id: str) -> tuple[int, Any]:
    """Numeric ids sort by value and before any non-numeric id."""
    if candidate_id.isascii() and candidate_id.isdigit():
        return (0, int(candidate_id))
    return (1, candidate_id)


def build_results(election_id: str, counts: list[tuple[Candidate, int]]) -> ElectionResults:
    """
    Turn (candidate, vote count) pairs into sorted tallies and a chart dataset.

    Pure function of its input, so both views share one snapshot.
    """
    ordered = sorted(counts, key=lambda pair: candidate_sort_key(pair[0].candidate_id))
    total_votes = sum(count for _, count in ordered)

    tallies = [
        CandidateTally(
            **candidate.model_dump(),
            vote_count=count,
            percentage=(count / total_votes * 100) if total_votes > 0 else 0.0,
        )
        for candidate, count in ordered
    ]
    chart = [
        ChartSlice(
            name=f"% {tally.name}",
            population=tally.percentage,
            key=f"chart-{tally.name}-{index}",
        )
        for index, tally in enumerate(tallies)
    ]

    return ElectionResults(
        election_id=canonical_id(election_id),
        total_votes=total_votes,
        candidates=tallies,
        chart=chart,
    )


class CandidateAggregator:
    """
    Per-election vote aggregation.

    Usage:
        aggregator = CandidateAggregator(candidates, ledger, database)
        results = await aggregator.aggregate("3")

        async for results in aggregator.watch("3"):
            ...  # a fresh snapshot on every candidate change
    """

    def __init__(
        self,
        candidates: CandidateRepositoryProtocol,
        ledger: LedgerClient,
        database: RealtimeDatabase,
    ):
        self.candidates = candidates
        self.ledger = ledger
        self.database = database

    async def aggregate(self, election_id: str) -> ElectionResults:
        """Aggregate the current results of an election."""
        candidates = await self.candidates.list_for_election(election_id)
        return await self.tally(election_id, candidates)

    async def tally(self, election_id: str, candidates: list[Candidate]) -> ElectionResults:
        """
        Fetch vote counts for ``candidates`` and build the results.

        Raises:
            AggregationError: any count lookup failed; the cause is chained
        """

        async def fetch(candidate: Candidate) -> tuple[Candidate, int]:
            count = await self.ledger.get_candidate_vote_count(election_id, candidate.candidate_id)
            return candidate, count

        try:
            counts = await asyncio.gather(*(fetch(candidate) for candidate in candidates))
        except VotingError as e:
            logger.error(
                "vote_count_aggregation_failed",
                election_id=election_id,
                error=e.message,
                error_type=type(e).__name__,
            )
            raise AggregationError(f"Could not aggregate vote counts: {e.message}") from e

        results = build_results(election_id, list(counts))
        logger.info(
            "election_results_aggregated",
            election_id=results.election_id,
            candidates=len(results.candidates),
            total_votes=results.total_votes,
        )
        return results

    async def watch(self, election_id: str) -> AsyncIterator[ElectionResults]:
        """
        Yield fresh results each time the candidate collection changes.

        The subscription lives exactly as long as the iteration; closing the
        iterator (or leaving the ``async for``) unsubscribes. Snapshots that
        arrive while a tally is running are coalesced into the latest one.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue()

        async with self.database.subscription(CANDIDATES_PATH, queue.put_nowait, queue.put_nowait):
            while True:
                item = await queue.get()
                while not queue.empty():
                    item = queue.get_nowait()

                if isinstance(item, Exception):
                    raise item

                candidates = candidates_for_election(item, election_id)
                yield await self.tally(election_id, candidates)
