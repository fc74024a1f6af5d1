"""
Ballot issuer.

Mints the single-use ballot token once a voter's one-time code has been
confirmed. This is the only write in which a voter and a ballot appear
together; every later voting read goes through the token alone.
"""

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import generate_ballot_token, token_fingerprint
from models.ballot import Ballot
from models.verification import Verification, VerificationState
from models.voter import EligibleVoter
from repositories.ballot_repository import BallotRepository
from repositories.verification_repository import VerificationRepository
from services.exceptions import InvalidStateError

logger = structlog.get_logger(__name__)


class BallotIssuer:
    """Creates ballots inside the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ballots = BallotRepository(db)
        self.verifications = VerificationRepository(db)

    async def issue(self, voter: EligibleVoter, verification: Verification, now: datetime) -> Ballot:
        """
        Issue a ballot for a VERIFIED verification and link it.

        Any ACTIVE ballot the voter still holds is superseded so that only
        one ballot per voter is usable at a time. The caller commits.

        Raises:
            InvalidStateError: if the verification was linked concurrently.
        """
        superseded = await self.ballots.supersede_active(voter.id)

        token = generate_ballot_token()
        ballot = await self.ballots.create(voter_id=voter.id, token=token, issued_at=now)

        linked = await self.verifications.advance(
            verification.id,
            VerificationState.VERIFIED,
            VerificationState.LINKED,
            now,
            ballot_token=token,
        )
        if not linked:
            raise InvalidStateError("No valid OTP found", hint="Request a new OTP")

        logger.info(
            "ballot_issued",
            reg_no=voter.reg_no,
            ballot_id=ballot.id,
            token=token_fingerprint(token),
            superseded=superseded,
        )
        return ballot
