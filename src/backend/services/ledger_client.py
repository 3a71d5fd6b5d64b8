"""
Vote ledger HTTP client.

The ledger is the external, append-only store of vote records and the only
authority on "who voted for whom". Endpoints:
- GET  /getCandidateVoteCount/{election_id}/{candidate_id}
- GET  /hasVotedInElection/{election_id}/{voter}
- POST /addVote
- GET  /getAllVotes

Failed connections are retried by the transport (LEDGER_MAX_RETRIES); every
other failure is raised as a typed error and never turned into a default.
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from core.config import settings
from core.exceptions import (
    ConnectivityError,
    MalformedLedgerRecordError,
    VoteRejectedError,
)
from schemas.converters import decode_hex_quantity, decode_vote_history
from schemas.vote import VoteRecord

logger = structlog.get_logger(__name__)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class LedgerClient:
    """Async client for the vote ledger API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport or httpx.AsyncHTTPTransport(retries=max_retries),
            headers={"Accept": "application/json"},
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("ledger_request_failed", method=method, url=url, error=str(e))
            raise ConnectivityError("Could not reach the vote ledger") from e

    async def _get_json(self, url: str) -> Any:
        response = await self._request("GET", url)
        if not response.is_success:
            logger.error("ledger_request_rejected", url=url, status_code=response.status_code)
            raise ConnectivityError(f"Vote ledger answered {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise MalformedLedgerRecordError(f"Vote ledger returned invalid JSON for {url}") from e

    async def get_candidate_vote_count(self, election_id: str, candidate_id: str) -> int:
        """
        Current tally for a candidate in an election.

        Raises:
            ConnectivityError: request failed
            HexDecodeError: count is not a valid hex quantity
            MalformedLedgerRecordError: body lacks ``voteCount``
        """
        url = f"/getCandidateVoteCount/{_segment(election_id)}/{_segment(candidate_id)}"
        payload = await self._get_json(url)

        if not isinstance(payload, dict) or "voteCount" not in payload:
            raise MalformedLedgerRecordError(f"Vote count missing for candidate {candidate_id}")
        return decode_hex_quantity(payload["voteCount"])

    async def has_voted_in_election(self, election_id: str, voter: str) -> bool:
        """Whether ``voter`` (voter id or email) already voted in ``election_id``."""
        url = f"/hasVotedInElection/{_segment(election_id)}/{_segment(voter)}"
        payload = await self._get_json(url)

        has_voted = payload.get("hasVoted") if isinstance(payload, dict) else None
        if not isinstance(has_voted, bool):
            raise MalformedLedgerRecordError("hasVoted flag missing from ledger response")
        return has_voted

    async def add_vote(self, election_id: str, candidate_id: str, voter_id: str) -> dict[str, Any]:
        """
        Record a vote.

        Returns:
            The ledger's response body

        Raises:
            ConnectivityError: request failed
            VoteRejectedError: non-2xx status or unusable body; carries the
                ledger's ``message`` verbatim when one is present
        """
        response = await self._request(
            "POST",
            "/addVote",
            json={
                "election_id": election_id,
                "candidate_id": candidate_id,
                "voter_id": voter_id,
            },
        )
        logger.info("ledger_add_vote_response", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            body = None

        message = body.get("message") if isinstance(body, dict) else None

        if not response.is_success:
            logger.warning("ledger_vote_rejected", status_code=response.status_code, message=message)
            raise VoteRejectedError(message if isinstance(message, str) and message else None)

        if not isinstance(body, dict):
            logger.warning("ledger_vote_malformed_response", status_code=response.status_code)
            raise VoteRejectedError()

        return body

    async def get_all_votes(self) -> list[VoteRecord]:
        """Full vote history, decoded."""
        payload = await self._get_json("/getAllVotes")
        return decode_vote_history(payload)

    async def close(self) -> None:
        await self._client.aclose()


# Global client instance (lazy-initialized)
_ledger_client: LedgerClient | None = None


def get_ledger_client() -> LedgerClient:
    """Get or create the ledger client."""
    global _ledger_client

    if _ledger_client is None:
        _ledger_client = LedgerClient(
            base_url=settings.LEDGER_API_URL,
            timeout=settings.LEDGER_TIMEOUT_SECONDS,
            max_retries=settings.LEDGER_MAX_RETRIES,
        )
        logger.info("ledger_client_initialized", url=settings.LEDGER_API_URL)

    return _ledger_client


async def close_ledger_client() -> None:
    """Close the ledger client. Called during application shutdown."""
    global _ledger_client

    if _ledger_client is not None:
        await _ledger_client.close()
        _ledger_client = None
        logger.info("ledger_client_closed")
