"""
Election, candidate and voter schemas.

Records come from the realtime database, where ids may be stored as numbers
or strings and membership lists in several shapes; validators normalise both.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.converters import canonical_id, normalize_membership


class RealtimeRecord(BaseModel):
    """Base for records read from the realtime database."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _text(v: Any) -> str:
    # Numbers and booleans stored in Firebase become text
    return "" if v is None else str(v)


class Voter(RealtimeRecord):
    """Voter record from the ``voters`` collection."""

    voter_id: str
    email: str
    name: str = ""
    # Stored in plaintext by the data source; never serialised back out
    password: str = Field(default="", repr=False, exclude=True)
    elections: list[str] = Field(default_factory=list)

    @field_validator("voter_id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return canonical_id(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> str:
        return str(v).strip()

    @field_validator("name", "password", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _text(v)

    @field_validator("elections", mode="before")
    @classmethod
    def normalize_elections(cls, v: Any) -> list[str]:
        return normalize_membership(v)

    def is_enrolled(self, election_id: Any) -> bool:
        return canonical_id(election_id) in self.elections


class Candidate(RealtimeRecord):
    """Candidate record from the ``candidates`` collection."""

    candidate_id: str
    name: str = ""
    vision: str = ""
    mission: str = ""
    elections: list[str] = Field(default_factory=list)

    @field_validator("candidate_id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return canonical_id(v)

    @field_validator("name", "vision", "mission", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _text(v)

    @field_validator("elections", mode="before")
    @classmethod
    def normalize_elections(cls, v: Any) -> list[str]:
        return normalize_membership(v)

    def runs_in(self, election_id: Any) -> bool:
        return canonical_id(election_id) in self.elections


class Election(RealtimeRecord):
    """Election record from the ``elections`` collection."""

    election_id: str
    name: str = ""
    description: str = ""
    date: Optional[str] = None
    status: Optional[str] = None

    @field_validator("election_id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> str:
        return canonical_id(v)

    @field_validator("date", "status", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class CandidateTally(Candidate):
    """Candidate annotated with its ledger vote count."""

    vote_count: int
    percentage: float


class ChartSlice(BaseModel):
    """One slice of the results pie chart dataset."""

    name: str
    population: float
    key: str


class ElectionResults(BaseModel):
    """
    Aggregated results of an election.

    ``candidates`` and ``chart`` are always built from the same snapshot of
    vote counts.
    """

    election_id: str
    total_votes: int
    candidates: list[CandidateTally]
    chart: list[ChartSlice]
