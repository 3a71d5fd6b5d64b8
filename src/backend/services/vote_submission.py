"""
Vote Submission Flow

Casts exactly one vote for the selected candidate on behalf of the session's
voter and confirms it reached the ledger.

    IDLE -> CANDIDATE_SELECTED -> PASSWORD_PROMPT -> VERIFYING -> SUBMITTING
         -> CONFIRMING -> SUCCEEDED | REJECTED | UNCONFIRMED

Steps are strictly sequential: verify the password, write the vote, then
re-read the vote history and look for the exact (election, candidate, voter)
triple. A wrong password never reaches the ledger. A vote the ledger accepted
but does not yet list ends in UNCONFIRMED, kept apart from REJECTED.

The eligibility check before selection is racy by nature; the ledger's own
uniqueness constraint is the source of truth and rejects a second vote.
"""

from typing import Optional

import structlog

from core.exceptions import (
    AlreadyVotedError,
    BusinessRuleError,
    CandidateNotRunningError,
    ElectionNotFoundError,
    IncorrectPasswordError,
    VoteNotConfirmedError,
    VotingError,
)
from core.security import verify_plaintext_password
from repositories.provider import CandidateRepositoryProtocol, VoterRepositoryProtocol
from schemas.auth import Session
from schemas.converters import canonical_id
from schemas.election import Voter
from schemas.vote import VoteOutcome, VoteRecord, VoteState
from services.eligibility import EligibilityGate
from services.ledger_client import LedgerClient

logger = structlog.get_logger(__name__)

SUCCESS_MESSAGE = "Vote submitted successfully"

# States from which a candidate may be (re)selected
_SELECTABLE = (VoteState.IDLE, VoteState.PASSWORD_PROMPT, VoteState.REJECTED)


def find_vote(
    records: list[VoteRecord],
    election_id: str,
    candidate_id: str,
    voter_id: str,
) -> Optional[VoteRecord]:
    """First record matching the exact (election, candidate, voter) triple."""
    wanted = (canonical_id(election_id), canonical_id(candidate_id), canonical_id(voter_id))
    for record in records:
        if (record.election_id, record.candidate_id, record.voter_id) == wanted:
            return record
    return None


class VoteSubmissionFlow:
    """
    One voter casting one vote in one election.

    A flow instance is single-use: once SUCCEEDED or UNCONFIRMED it refuses
    further input. After REJECTED a candidate may be selected again.
    """

    def __init__(
        self,
        session: Session,
        election_id: str,
        voters: VoterRepositoryProtocol,
        candidates: CandidateRepositoryProtocol,
        ledger: LedgerClient,
        gate: EligibilityGate,
    ):
        self.session = session
        self.election_id = canonical_id(election_id)
        self.voters = voters
        self.candidates = candidates
        self.ledger = ledger
        self.gate = gate

        self.state = VoteState.IDLE
        self.candidate_id: Optional[str] = None
        self.outcome: Optional[VoteOutcome] = None
        self._log = logger.bind(election_id=self.election_id)

    def _transition(self, state: VoteState) -> None:
        self._log.debug("vote_flow_transition", source=self.state.value, target=state.value)
        self.state = state

    def _finish(self, state: VoteState, message: str, record: Optional[VoteRecord] = None) -> VoteOutcome:
        self._transition(state)
        self.outcome = VoteOutcome(state=state, message=message, record=record)
        return self.outcome

    def _ensure_open(self) -> None:
        if self.state in (VoteState.SUCCEEDED, VoteState.UNCONFIRMED):
            raise AlreadyVotedError()

    async def select_candidate(self, candidate_id: str) -> None:
        """
        Pick a candidate and move to the password prompt.

        Raises:
            ElectionNotFoundError: the voter is not enrolled in the election
            CandidateNotRunningError: the candidate does not run in the election
            AlreadyVotedError: this flow already voted or the gate is closed
        """
        self._ensure_open()
        if self.state not in _SELECTABLE:
            raise BusinessRuleError(f"Cannot select a candidate while {self.state.value}")

        voter = await self.voters.require_by_email(self.session.email)
        if not voter.is_enrolled(self.election_id):
            self._log.info("vote_refused_not_enrolled", voter_id=voter.voter_id)
            raise ElectionNotFoundError()

        wanted = canonical_id(candidate_id)
        running = await self.candidates.list_for_election(self.election_id)
        if not any(candidate.candidate_id == wanted for candidate in running):
            self._log.info("vote_refused_unknown_candidate", voter_id=voter.voter_id, candidate_id=wanted)
            raise CandidateNotRunningError()

        if await self.gate.check(self.election_id, voter):
            self._log.info("vote_refused_already_voted", voter_id=voter.voter_id)
            raise AlreadyVotedError()

        self.candidate_id = wanted
        self._transition(VoteState.CANDIDATE_SELECTED)
        self._transition(VoteState.PASSWORD_PROMPT)

    async def submit_password(self, password: str) -> VoteOutcome:
        """
        Verify the re-entered password, write the vote and confirm it.

        Returns:
            The SUCCEEDED outcome

        Raises:
            IncorrectPasswordError / VoterNotFoundError: verification failed,
                nothing was written
            VoteRejectedError: the ledger refused the vote
            VoteNotConfirmedError: the ledger accepted the vote but its
                history does not show it yet
            ConnectivityError: the ledger or database could not be reached
        """
        self._ensure_open()
        if self.state != VoteState.PASSWORD_PROMPT or self.candidate_id is None:
            raise BusinessRuleError("Select a candidate before confirming your password")

        self._transition(VoteState.VERIFYING)
        try:
            voter = await self._verify(password)
        except VotingError as e:
            self._finish(VoteState.REJECTED, e.message)
            raise

        self._transition(VoteState.SUBMITTING)
        try:
            await self.ledger.add_vote(self.election_id, self.candidate_id, voter.voter_id)
        except VotingError as e:
            self._log.warning("vote_submission_failed", voter_id=voter.voter_id, error=e.message)
            self._finish(VoteState.REJECTED, e.message)
            raise

        self._transition(VoteState.CONFIRMING)
        return await self._confirm(voter, self.candidate_id)

    async def cast_vote(self, candidate_id: str, password: str) -> VoteOutcome:
        """Select ``candidate_id`` and submit ``password`` in one go."""
        await self.select_candidate(candidate_id)
        return await self.submit_password(password)

    async def _verify(self, password: str) -> Voter:
        # Re-resolve the voter so a stale record is never trusted
        voter = await self.voters.require_by_email(self.session.email)
        if not verify_plaintext_password(password, voter.password):
            self._log.info("vote_password_mismatch", voter_id=voter.voter_id)
            raise IncorrectPasswordError()
        return voter

    async def _confirm(self, voter: Voter, candidate_id: str) -> VoteOutcome:
        try:
            records = await self.ledger.get_all_votes()
        except VotingError as e:
            # The write went through; only the read-back failed
            self._log.warning("vote_confirmation_unavailable", voter_id=voter.voter_id, error=e.message)
            self._finish(VoteState.UNCONFIRMED, VoteNotConfirmedError.default_message)
            raise VoteNotConfirmedError() from e

        record = find_vote(records, self.election_id, candidate_id, voter.voter_id)
        if record is None:
            self._log.warning(
                "vote_not_confirmed",
                voter_id=voter.voter_id,
                candidate_id=candidate_id,
                history_size=len(records),
            )
            self._finish(VoteState.UNCONFIRMED, VoteNotConfirmedError.default_message)
            raise VoteNotConfirmedError()

        self.gate.mark_voted(self.election_id, voter.voter_id)
        self._log.info(
            "vote_confirmed",
            voter_id=voter.voter_id,
            candidate_id=candidate_id,
            transaction_hash=record.transaction_hash,
        )
        return self._finish(VoteState.SUCCEEDED, SUCCESS_MESSAGE, record)

