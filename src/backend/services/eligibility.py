"""
Eligibility Gate

Answers "has this voter already voted in this election?" with one read of the
ledger. The last known answer per (election, voter) is kept so a view can
keep showing it when a later check fails; a failed check is never reported as
"has not voted".

Votes are append-only, so once a voter is known to have voted the gate stays
closed even if a later read lags behind.

This is a UX gate only. The check-then-vote sequence is not atomic against
the ledger; uniqueness of one vote per voter per election is enforced by the
ledger itself.
"""

from collections import OrderedDict
from typing import Literal, Optional

import structlog

from core.config import settings
from core.exceptions import ConnectivityError, DataIntegrityError
from schemas.converters import canonical_id
from schemas.election import Voter
from services.ledger_client import LedgerClient, get_ledger_client

logger = structlog.get_logger(__name__)


class EligibilityGate:
    """
    Per-process eligibility state backed by the ledger.

    At most ``max_entries`` (election, voter) states are remembered, least
    recently used dropped first. A dropped state is simply read again from
    the ledger on the next check.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        lookup_key: Literal["voter_id", "email"] = "voter_id",
        max_entries: int = 10_000,
    ):
        self.ledger = ledger
        self.lookup_key = lookup_key
        self.max_entries = max_entries
        self._known: OrderedDict[tuple[str, str], bool] = OrderedDict()

    @staticmethod
    def _key(election_id: str, voter_id: str) -> tuple[str, str]:
        return canonical_id(election_id), canonical_id(voter_id)

    def last_known(self, election_id: str, voter_id: str) -> Optional[bool]:
        """Last successfully read state, or None if never read."""
        return self._known.get(self._key(election_id, voter_id))

    async def check(self, election_id: str, voter: Voter) -> bool:
        """
        Read the voter's status from the ledger.

        Raises:
            ConnectivityError / DataIntegrityError: the read failed; the last
                known state is left untouched
        """
        key = self._key(election_id, voter.voter_id)
        lookup = voter.email if self.lookup_key == "email" else voter.voter_id

        try:
            has_voted = await self.ledger.has_voted_in_election(key[0], lookup)
        except (ConnectivityError, DataIntegrityError) as e:
            logger.warning(
                "eligibility_check_failed",
                election_id=key[0],
                voter_id=key[1],
                last_known=self._known.get(key),
                error=e.message,
            )
            raise

        state = self._known.get(key, False) or has_voted
        self._remember(key, state)
        logger.debug("eligibility_checked", election_id=key[0], voter_id=key[1], has_voted=state)
        return state

    def mark_voted(self, election_id: str, voter_id: str) -> None:
        """Close the gate after a confirmed vote."""
        self._remember(self._key(election_id, voter_id), True)

    def _remember(self, key: tuple[str, str], state: bool) -> None:
        self._known[key] = state
        self._known.move_to_end(key)
        while len(self._known) > self.max_entries:
            self._known.popitem(last=False)


# Global gate instance (lazy-initialized)
_gate: EligibilityGate | None = None


def get_eligibility_gate() -> EligibilityGate:
    """Get or create the process-wide eligibility gate."""
    global _gate

    if _gate is None:
        _gate = EligibilityGate(
            get_ledger_client(),
            lookup_key=settings.ELIGIBILITY_LOOKUP_KEY,
            max_entries=settings.ELIGIBILITY_CACHE_SIZE,
        )

    return _gate


def reset_eligibility_gate() -> None:
    """Forget all known states. Called during application shutdown."""
    global _gate
    _gate = None
