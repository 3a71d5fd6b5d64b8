"""
Pytest fixtures for E-Vote Gateway tests.

External collaborators are replaced by in-memory fakes:
- FakeRealtimeDatabase stands in for the Firebase Realtime Database
- FakeLedger answers the ledger endpoints through httpx.MockTransport
"""

import copy
import json
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("FIREBASE_API_KEY", "")


SAMPLE_VOTERS = {
    "-Nv1": {
        "voter_id": 7,
        "email": "v1@example.com",
        "name": "Voter One",
        "password": "correct-horse",
        "elections": ["3", "4"],
    },
    "-Nv2": {
        "voter_id": "8",
        "email": "v2@example.com",
        "name": "Voter Two",
        "password": "battery-staple",
        "elections": ["3"],
    },
}

SAMPLE_CANDIDATES = {
    "-Nc1": {"candidate_id": 2, "name": "Beta", "vision": "Open books", "mission": "Publish budgets", "elections": "3"},
    "-Nc2": {"candidate_id": "10", "name": "Gamma", "vision": "Green campus", "mission": "Solar roofs", "elections": ["3", "4"]},
    "-Nc3": {"candidate_id": 1, "name": "Alpha", "vision": "Quiet library", "mission": "Longer hours", "elections": ["3"]},
    "-Nc4": {"candidate_id": 5, "name": "Delta", "vision": "Better food", "mission": "New canteen", "elections": ["4"]},
}

SAMPLE_ELECTIONS = {
    "-Ne3": {"election_id": 3, "name": "Student Council", "description": "Annual council vote", "date": "2024-05-01", "status": "open"},
    "-Ne4": {"election_id": 4, "name": "Sports Captain", "description": "Pick the captain", "date": "2024-06-01", "status": "open"},
    "-Ne9": {"election_id": 9, "name": "Staff Board", "description": "Staff only", "date": "2024-07-01", "status": "open"},
}


class FakeRealtimeDatabase:
    """In-memory stand-in for RealtimeDatabase."""

    def __init__(self, data: dict[str, Any]):
        self.data = copy.deepcopy(data)
        self.fail_reads = False
        self.reads: list[str] = []
        self.subscribers: dict[str, list[tuple[Any, Any]]] = {}

    async def read(self, path: str) -> Any:
        from core.exceptions import ConnectivityError

        self.reads.append(path)
        if self.fail_reads:
            raise ConnectivityError(f"Could not read {path}")
        return copy.deepcopy(self.data.get(path))

    @asynccontextmanager
    async def subscription(self, path, on_change, on_error=None):
        entry = (on_change, on_error)
        self.subscribers.setdefault(path, []).append(entry)
        on_change(copy.deepcopy(self.data.get(path)))
        try:
            yield entry
        finally:
            self.subscribers[path].remove(entry)

    def push(self, path: str, snapshot: Any) -> None:
        self.data[path] = copy.deepcopy(snapshot)
        for on_change, _ in list(self.subscribers.get(path, [])):
            on_change(copy.deepcopy(snapshot))

    def fail_subscription(self, path: str, error: Exception) -> None:
        for _, on_error in list(self.subscribers.get(path, [])):
            on_error(error)


def _quantity(value: int) -> dict[str, str]:
    return {"type": "BigNumber", "hex": hex(value)}


class FakeLedger:
    """
    In-memory vote ledger served through httpx.MockTransport.

    Enforces one vote per (election, voter) like the real ledger.
    """

    def __init__(self):
        self.votes: list[tuple[int, int, int]] = []
        self.count_overrides: dict[tuple[str, str], Any] = {}
        self.add_vote_requests: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.reject_message: str | None = None
        self.record_writes = True
        self.failing_prefixes: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        for prefix in self.failing_prefixes:
            if path.startswith(prefix):
                raise httpx.ConnectError("connection refused", request=request)

        parts = path.strip("/").split("/")
        endpoint = parts[0]

        if endpoint == "getCandidateVoteCount":
            election_id, candidate_id = parts[1], parts[2]
            if (election_id, candidate_id) in self.count_overrides:
                return httpx.Response(200, json={"voteCount": {"hex": self.count_overrides[(election_id, candidate_id)]}})
            count = sum(1 for e, c, _ in self.votes if (str(e), str(c)) == (election_id, candidate_id))
            return httpx.Response(200, json={"voteCount": _quantity(count)})

        if endpoint == "hasVotedInElection":
            election_id, voter = parts[1], parts[2]
            has_voted = any((str(e), str(v)) == (election_id, voter) for e, _, v in self.votes)
            return httpx.Response(200, json={"hasVoted": has_voted})

        if endpoint == "addVote":
            body = json.loads(request.content)
            self.add_vote_requests.append(body)
            if self.reject_message is not None:
                return httpx.Response(400, json={"message": self.reject_message})

            vote = (int(body["election_id"]), int(body["candidate_id"]), int(body["voter_id"]))
            if any((e, v) == (vote[0], vote[2]) for e, _, v in self.votes):
                return httpx.Response(409, json={"message": "Voter has already voted in this election"})
            if self.record_writes:
                self.votes.append(vote)
            return httpx.Response(200, json={"message": "Vote added successfully"})

        if endpoint == "getAllVotes":
            history = [
                [
                    _quantity(e),
                    _quantity(c),
                    _quantity(v),
                    _quantity(1),
                    _quantity(1_700_000_000 + index),
                    f"0x{index + 1:064x}",
                    _quantity(100 + index),
                ]
                for index, (e, c, v) in enumerate(self.votes)
            ]
            return httpx.Response(200, json=history)

        return httpx.Response(404, json={"message": "Not found"})

    def records_for(self, election_id: int, candidate_id: int, voter_id: int) -> int:
        return self.votes.count((election_id, candidate_id, voter_id))


@pytest.fixture
def fake_db() -> FakeRealtimeDatabase:
    """Realtime database preloaded with voters, candidates and elections."""
    return FakeRealtimeDatabase(
        {
            "voters": SAMPLE_VOTERS,
            "candidates": SAMPLE_CANDIDATES,
            "elections": SAMPLE_ELECTIONS,
        }
    )


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
async def ledger_client(fake_ledger: FakeLedger) -> AsyncGenerator[Any, None]:
    """LedgerClient wired to the fake ledger."""
    from services.ledger_client import LedgerClient

    client = LedgerClient("http://ledger.test", transport=httpx.MockTransport(fake_ledger.handler))
    yield client
    await client.close()


@pytest.fixture
def voter_repository(fake_db: FakeRealtimeDatabase) -> Any:
    from repositories.voter_repository import VoterRepository

    return VoterRepository(fake_db)  # type: ignore[arg-type]


@pytest.fixture
def gate(ledger_client: Any) -> Any:
    from services.eligibility import EligibilityGate

    return EligibilityGate(ledger_client)


@pytest.fixture
def session() -> Any:
    """Session of voter v1 (voter_id 7)."""
    from schemas.auth import Session

    now = datetime.now(timezone.utc)
    return Session(
        email="v1@example.com",
        token_id="test-token-id",
        issued_at=now,
        expires_at=now + timedelta(hours=1),
    )


@pytest.fixture
async def app(fake_db: FakeRealtimeDatabase, ledger_client: Any, gate: Any) -> AsyncGenerator[Any, None]:
    """FastAPI application with external services replaced by fakes."""
    from db.realtime import get_realtime_database
    from main import app as fastapi_app
    from repositories.candidate_repository import CandidateRepository
    from repositories.election_repository import ElectionRepository
    from repositories.provider import (
        get_candidate_repository,
        get_election_repository,
        get_voter_repository,
    )
    from repositories.voter_repository import VoterRepository
    from services.eligibility import get_eligibility_gate
    from services.ledger_client import get_ledger_client
    from services.session_service import SessionService, get_session_service

    sessions = SessionService(VoterRepository(fake_db))  # type: ignore[arg-type]
    overrides = {
        get_realtime_database: lambda: fake_db,
        get_voter_repository: lambda: VoterRepository(fake_db),  # type: ignore[arg-type]
        get_candidate_repository: lambda: CandidateRepository(fake_db),  # type: ignore[arg-type]
        get_election_repository: lambda: ElectionRepository(fake_db),  # type: ignore[arg-type]
        get_ledger_client: lambda: ledger_client,
        get_eligibility_gate: lambda: gate,
        get_session_service: lambda: sessions,
    }
    fastapi_app.dependency_overrides.update(overrides)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer token for voter v1."""
    from core.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token('v1@example.com')}"}
