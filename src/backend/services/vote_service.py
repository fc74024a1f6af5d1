"""
Ballot contents and vote casting.

A cast is validated completely before anything is written, then committed
as one transaction: the ballot is consumed with a conditional update (only
one concurrent submission can win, and a unique index refuses a second
consumed ballot for the same voter) and one vote row is inserted per
selection. Any failure after validation leaves the ballot ACTIVE and no
votes behind.
"""

from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock
from core.security import token_fingerprint
from models.audit_log import AuditAction
from models.ballot import Ballot, BallotStatus
from repositories.ballot_repository import BallotRepository
from repositories.candidate_repository import CandidateRepository
from repositories.position_repository import PositionRepository
from repositories.vote_repository import VoteRepository
from schemas.vote import (
    BallotCandidate,
    BallotContentsResponse,
    BallotInfo,
    BallotPosition,
    CastVoteResponse,
    VoteSelection,
)
from services.audit_service import ActorType, AuditTrail
from services.exceptions import (
    InvalidStateError,
    NotFoundError,
    VotingError,
    VotingInternalError,
)
from services.voting_window import VotingWindowResolver, voting_window_resolver

logger = structlog.get_logger(__name__)

ALREADY_VOTED_FOR_POSITIONS = "You have already voted for some of these positions"
BALLOT_ALREADY_USED = "This ballot has already been used"


class VoteService:
    """Reads ballot contents and casts votes with a ballot token."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        audit_trail: AuditTrail,
        resolver: Optional[VotingWindowResolver] = None,
    ):
        self.db = db
        self.clock = clock
        self.audit_trail = audit_trail
        self.resolver = resolver or voting_window_resolver
        self.ballots = BallotRepository(db)
        self.positions = PositionRepository(db)
        self.candidates = CandidateRepository(db)
        self.votes = VoteRepository(db)

    async def _get_active_ballot(self, token: Optional[str]) -> Ballot:
        if not token:
            raise InvalidStateError("Ballot token is required")

        ballot = await self.ballots.get_by_token(token)
        if ballot is None:
            raise NotFoundError("Invalid ballot token")

        if ballot.status == BallotStatus.CONSUMED.value:
            raise InvalidStateError(BALLOT_ALREADY_USED, hint="You can only vote once")
        if ballot.status == BallotStatus.SUPERSEDED.value:
            raise InvalidStateError(
                "This ballot is no longer valid",
                hint="A newer ballot was issued; use the most recent ballot token",
            )
        return ballot

    async def get_ballot_contents(self, token: Optional[str]) -> BallotContentsResponse:
        """Open positions and their approved candidates. No side effects."""
        ballot = await self._get_active_ballot(token)
        now = self.clock.now()

        positions = await self.positions.list_open_for_voting(self.resolver.voting_open_clause(now))
        candidates = await self.candidates.list_approved_for_positions([p.id for p in positions])

        return BallotContentsResponse(
            ballot=BallotInfo.model_validate(ballot),
            positions=[BallotPosition.model_validate(p) for p in positions],
            candidates=[BallotCandidate.model_validate(c) for c in candidates],
        )

    async def cast_votes(self, token: Optional[str], selections: list[VoteSelection]) -> CastVoteResponse:
        """
        Validate and commit a batch of selections, consuming the ballot.

        Raises:
            NotFoundError: unknown token
            InvalidStateError: any validation failure or lost race
            VotingInternalError: persistence failed after validation
        """
        if not selections:
            raise InvalidStateError("At least one vote is required")

        ballot = await self._get_active_ballot(token)
        now = self.clock.now()

        position_ids = [s.position_id for s in selections]
        unique_position_ids = list(dict.fromkeys(position_ids))

        # Every position exists and is inside its voting window
        positions = await self.positions.get_many(unique_position_ids)
        unknown = [pid for pid in unique_position_ids if pid not in positions]
        closed = [
            position
            for position in positions.values()
            if not self.resolver.is_voting_open(position, now)
        ]
        if unknown or closed:
            raise InvalidStateError(
                "Some positions are not open for voting",
                hint="Voting is only accepted while a position's voting window is open",
                extra={
                    "closedPositions": [
                        {
                            "id": p.id,
                            "name": p.name,
                            "votingOpens": p.voting_opens_at,
                            "votingCloses": p.voting_closes_at,
                        }
                        for p in closed
                    ],
                    "unknownPositions": unknown,
                },
            )

        # Every candidate exists, is approved and stands for the selected position
        candidates = await self.candidates.get_many(list({s.candidate_id for s in selections}))
        invalid = []
        for selection in selections:
            candidate = candidates.get(selection.candidate_id)
            if candidate is None or not candidate.is_approved or candidate.position_id != selection.position_id:
                invalid.append(selection.candidate_id)
        if invalid:
            raise InvalidStateError(
                "Some selections reference an invalid or unapproved candidate",
                extra={"invalidCandidates": invalid},
            )

        if len(unique_position_ids) != len(position_ids):
            raise InvalidStateError("Cannot cast multiple votes for same position")

        if await self.votes.exists_for_ballot_positions(ballot.id, unique_position_ids):
            raise InvalidStateError(ALREADY_VOTED_FOR_POSITIONS)

        ballot_id = ballot.id
        voter_id = ballot.voter_id
        pairs = [(s.position_id, s.candidate_id) for s in selections]

        consumed = False
        try:
            consumed = await self.ballots.consume(ballot_id, now)
            if not consumed:
                raise InvalidStateError(BALLOT_ALREADY_USED, hint="You can only vote once")
            await self.votes.add_many(ballot_id, pairs, cast_at=now)
            await self.db.commit()
        except VotingError:
            await self.db.rollback()
            raise
        except IntegrityError:
            await self.db.rollback()
            if not consumed:
                # Another ballot of this voter was consumed first
                logger.warning("vote_cast_voter_already_voted", ballot_id=ballot_id)
                raise InvalidStateError(BALLOT_ALREADY_USED, hint="You can only vote once")
            raise InvalidStateError(ALREADY_VOTED_FOR_POSITIONS)
        except Exception as e:
            await self.db.rollback()
            logger.exception("vote_cast_failed", ballot_id=ballot_id)
            await self.audit_trail.record(
                actor_type=ActorType.VOTER,
                actor_id=voter_id,
                action=AuditAction.CAST_VOTE_FAILED,
                entity="Ballot",
                entity_id=ballot_id,
                payload={"error": type(e).__name__},
            )
            raise VotingInternalError("Failed to cast vote")

        logger.info("vote_cast", token=token_fingerprint(token or ""), votes=len(pairs))

        # Positions only: the audit trail never records who was chosen
        await self.audit_trail.record(
            actor_type=ActorType.VOTER,
            actor_id=voter_id,
            action=AuditAction.CAST_VOTE,
            entity="Vote",
            payload={"positions": unique_position_ids, "votes": len(pairs)},
        )

        return CastVoteResponse(message="Votes cast successfully", votes=len(pairs))
