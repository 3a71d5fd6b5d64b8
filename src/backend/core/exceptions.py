"""
Error taxonomy for the voting flows.

Three families, kept apart so callers can tell them from each other:
- ConnectivityError: a request or subscription could not complete
- DataIntegrityError: an expected record is absent or a payload is malformed
- BusinessRuleError: the request was understood and refused

Every error carries a user-facing ``message`` and the HTTP status the API
boundary answers with.
"""

from typing import Optional


class VotingError(Exception):
    """Base exception for all voting gateway failures."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConnectivityError(VotingError):
    """Ledger, realtime database or identity provider unreachable."""

    status_code = 503
    default_message = "Service temporarily unavailable"


class DataIntegrityError(VotingError):
    """Expected record absent or payload malformed."""

    status_code = 502
    default_message = "Received malformed data from an upstream service"


class VoterNotFoundError(DataIntegrityError):
    """No voter record matches the session email."""

    status_code = 404
    default_message = "User not found"


class HexDecodeError(DataIntegrityError):
    """A hex-encoded quantity could not be decoded."""

    default_message = "Malformed hex-encoded quantity"


class MalformedLedgerRecordError(DataIntegrityError):
    """A ledger response did not have the expected shape."""

    default_message = "Malformed ledger response"


class AggregationError(VotingError):
    """At least one vote-count lookup failed, so no tally is produced."""

    status_code = 502
    default_message = "Could not aggregate vote counts"


class BusinessRuleError(VotingError):
    """The request was well-formed but refused."""

    status_code = 400
    default_message = "Request refused"


class AuthenticationError(BusinessRuleError):
    """Login failed or the session is missing, expired or revoked."""

    status_code = 401
    default_message = "Invalid credentials"


class IncorrectPasswordError(AuthenticationError):
    """Password re-entered at vote time does not match the voter record."""

    default_message = "Incorrect password"


class ElectionNotFoundError(BusinessRuleError):
    """Unknown election or one the voter is not enrolled in."""

    status_code = 404
    default_message = "Election not found"


class CandidateNotRunningError(BusinessRuleError):
    """The selected candidate does not run in the election."""

    status_code = 422
    default_message = "Candidate is not running in this election"


class AlreadyVotedError(BusinessRuleError):
    """The voter has already voted in the election."""

    status_code = 409
    default_message = "You have already voted."


class VoteRejectedError(BusinessRuleError):
    """The ledger refused the vote or answered with an unusable body."""

    status_code = 422
    default_message = "Failed to vote"


class VoteNotConfirmedError(BusinessRuleError):
    """The ledger accepted the vote but it is not yet visible in the vote history."""

    status_code = 202
    default_message = "Vote accepted but not yet confirmed"
