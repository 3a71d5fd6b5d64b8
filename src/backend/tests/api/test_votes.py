"""
Tests for vote endpoints.
"""

import pytest
from httpx import AsyncClient


def _vote(candidate_id: str = "2", password: str = "correct-horse", election_id: str = "3") -> dict[str, str]:
    return {"election_id": election_id, "candidate_id": candidate_id, "password": password}


@pytest.mark.unit
class TestCastVote:
    """Test POST /votes."""

    async def test_requires_auth(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/votes", json=_vote())
        assert response.status_code == 401

    async def test_validation(self, client: AsyncClient, auth_headers: dict[str, str]) -> None:
        response = await client.post("/api/v1/votes", json={"election_id": "3"}, headers=auth_headers)
        assert response.status_code == 422

    async def test_successful_vote(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        response = await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["state"] == "succeeded"
        assert data["message"] == "Vote submitted successfully"
        assert data["record"]["candidate_id"] == "2"
        assert fake_ledger.records_for(3, 2, 7) == 1

    async def test_second_vote_refused(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        response = await client.post("/api/v1/votes", json=_vote("10"), headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "You have already voted."
        assert len(fake_ledger.add_vote_requests) == 1

    async def test_wrong_password(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        response = await client.post("/api/v1/votes", json=_vote(password="wrong"), headers=auth_headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect password"
        assert fake_ledger.add_vote_requests == []

    async def test_ledger_rejection(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        fake_ledger.reject_message = "Election is closed"

        response = await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        assert response.status_code == 422
        assert response.json() == {"detail": "Election is closed", "error_type": "VoteRejectedError"}

    async def test_unconfirmed_vote(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        fake_ledger.record_writes = False

        response = await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        assert response.status_code == 202
        assert response.json()["error_type"] == "VoteNotConfirmedError"

    async def test_candidate_not_in_election(
        self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger
    ) -> None:
        response = await client.post("/api/v1/votes", json=_vote("5"), headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error_type"] == "CandidateNotRunningError"
        assert fake_ledger.votes == []

    async def test_not_enrolled_in_election(
        self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger
    ) -> None:
        response = await client.post("/api/v1/votes", json=_vote(election_id="9"), headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_type"] == "ElectionNotFoundError"
        assert fake_ledger.votes == []

    async def test_ledger_outage(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        fake_ledger.failing_prefixes.add("/hasVotedInElection")

        response = await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        assert response.status_code == 503
        assert fake_ledger.add_vote_requests == []


@pytest.mark.unit
class TestVoteStatus:
    """Test GET /votes/status/{election_id}."""

    async def test_not_voted(self, client: AsyncClient, auth_headers: dict[str, str]) -> None:
        response = await client.get("/api/v1/votes/status/3", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"election_id": "3", "has_voted": False}

    async def test_not_enrolled(self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger) -> None:
        response = await client.get("/api/v1/votes/status/9", headers=auth_headers)

        assert response.status_code == 404
        assert fake_ledger.requests == []

    async def test_after_voting(self, client: AsyncClient, auth_headers: dict[str, str]) -> None:
        await client.post("/api/v1/votes", json=_vote(), headers=auth_headers)

        response = await client.get("/api/v1/votes/status/3", headers=auth_headers)

        assert response.json()["has_voted"] is True

    async def test_ledger_outage_is_not_reported_as_eligible(
        self, client: AsyncClient, auth_headers: dict[str, str], fake_ledger
    ) -> None:
        fake_ledger.failing_prefixes.add("/hasVotedInElection")

        response = await client.get("/api/v1/votes/status/3", headers=auth_headers)

        assert response.status_code == 503
        assert "has_voted" not in response.json()
