"""
Vote-related Pydantic schemas.

These schemas cover casting a vote through the ledger and reading it back.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class VoteState(str, Enum):
    """States of the vote submission flow."""

    IDLE = "idle"
    CANDIDATE_SELECTED = "candidate_selected"
    PASSWORD_PROMPT = "password_prompt"
    VERIFYING = "verifying"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    UNCONFIRMED = "unconfirmed"  # Accepted by the ledger, not found in its history


class VoteRecord(BaseModel):
    """
    One entry of the append-only vote ledger.

    Ids are decimal strings decoded from the ledger's hex quantities.
    """

    election_id: str
    candidate_id: str
    voter_id: str
    vote_count: Optional[int] = None
    timestamp: Optional[int] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    election_id: str = Field(..., min_length=1)
    candidate_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, repr=False)


class VoteOutcome(BaseModel):
    """Terminal result of a vote submission flow."""

    state: VoteState
    message: str
    record: Optional[VoteRecord] = None


class VoteResponse(BaseModel):
    """Response after casting a vote."""

    success: bool
    state: VoteState
    message: str
    record: Optional[VoteRecord] = None


class VoteStatus(BaseModel):
    """Check if the voter has voted in an election."""

    election_id: str
    has_voted: bool
