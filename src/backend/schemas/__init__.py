"""Schemas module initialization."""

from schemas.auth import LoginRequest, Session, TokenResponse
from schemas.election import (
    Candidate,
    CandidateTally,
    ChartSlice,
    Election,
    ElectionResults,
    Voter,
)
from schemas.user import VoterProfile
from schemas.vote import (
    VoteCreate,
    VoteOutcome,
    VoteRecord,
    VoteResponse,
    VoteState,
    VoteStatus,
)

__all__ = [
    "LoginRequest",
    "Session",
    "TokenResponse",
    "Voter",
    "VoterProfile",
    "Candidate",
    "CandidateTally",
    "ChartSlice",
    "Election",
    "ElectionResults",
    "VoteCreate",
    "VoteOutcome",
    "VoteRecord",
    "VoteResponse",
    "VoteState",
    "VoteStatus",
]
