"""Repository modules for realtime database access."""

from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.voter_repository import VoterRepository

__all__ = [
    "CandidateRepository",
    "ElectionRepository",
    "VoterRepository",
]
