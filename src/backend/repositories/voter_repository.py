"""
Voter repository over the ``voters`` collection.
"""

from typing import Optional

import structlog

from core.exceptions import DataIntegrityError, VoterNotFoundError
from db.realtime import VOTERS_PATH
from repositories.base import RealtimeRepository, parse_collection
from schemas.election import Voter

logger = structlog.get_logger(__name__)


class VoterRepository(RealtimeRepository):
    """
    Read access to voter records. Every call re-reads the collection.

    Malformed voter records are skipped and logged; only lookups of that
    voter are affected.
    """

    async def list_all(self) -> list[Voter]:
        data = await self.database.read(VOTERS_PATH)
        return parse_collection(data, Voter, VOTERS_PATH, skip_invalid=True)

    async def get_by_email(self, email: str) -> Optional[Voter]:
        """
        Find the voter with the given email (case-insensitive).

        Raises:
            DataIntegrityError: more than one voter shares the email
        """
        wanted = email.strip().lower()
        matches = [voter for voter in await self.list_all() if voter.email.lower() == wanted]

        if len(matches) > 1:
            logger.error("duplicate_voter_email", matches=len(matches))
            raise DataIntegrityError("More than one voter record matches this email")
        return matches[0] if matches else None

    async def require_by_email(self, email: str) -> Voter:
        """Same as get_by_email, raising VoterNotFoundError when absent."""
        voter = await self.get_by_email(email)
        if voter is None:
            logger.warning("voter_not_found")
            raise VoterNotFoundError()
        return voter
