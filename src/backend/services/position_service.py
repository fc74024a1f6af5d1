"""
Position and nomination management.

Positions carry a nomination window followed by a voting window:

    nomination_opens_at < nomination_closes_at <= voting_opens_at < voting_closes_at

Nominations are accepted only while the nomination window is open and
only approved nominations appear on ballots.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, ensure_utc
from models.audit_log import AuditAction
from models.position import Candidate, CandidateStatus, Position
from repositories.candidate_repository import CandidateRepository
from repositories.position_repository import PositionRepository
from repositories.user_repository import UserRepository
from repositories.vote_repository import VoteRepository
from schemas.admin import NominationCreate, NominationReview, PositionCreate, PositionExtendRequest
from services.audit_service import ActorType, AuditTrail
from services.exceptions import InvalidStateError, NotFoundError
from services.voting_window import VotingWindowResolver, voting_window_resolver

logger = structlog.get_logger(__name__)


def validate_windows(
    nomination_opens_at: datetime,
    nomination_closes_at: datetime,
    voting_opens_at: datetime,
    voting_closes_at: datetime,
) -> None:
    """Raise InvalidStateError unless the windows are ordered correctly."""
    if nomination_opens_at >= nomination_closes_at:
        raise InvalidStateError("Nomination close date must be after open date")
    if voting_opens_at >= voting_closes_at:
        raise InvalidStateError("Voting close date must be after open date")
    if nomination_closes_at > voting_opens_at:
        raise InvalidStateError("Voting period must start after nomination period ends")


class PositionService:
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
        self.positions = PositionRepository(db)
        self.candidates = CandidateRepository(db)

    async def _get_position(self, position_id: str) -> Position:
        position = await self.positions.get_by_id(position_id)
        if position is None:
            raise NotFoundError("Position not found")
        return position

    async def create_position(self, data: PositionCreate) -> Position:
        windows = {
            "nomination_opens_at": ensure_utc(data.nomination_opens_at),
            "nomination_closes_at": ensure_utc(data.nomination_closes_at),
            "voting_opens_at": ensure_utc(data.voting_opens_at),
            "voting_closes_at": ensure_utc(data.voting_closes_at),
        }
        validate_windows(**windows)

        position = await self.positions.create(name=data.name.strip(), seats=data.seats, **windows)
        await self.db.commit()

        logger.info("position_created", position_id=position.id, name=position.name)
        await self.audit_trail.record(
            actor_type=ActorType.ADMIN,
            action=AuditAction.CREATE_POSITION,
            entity="Position",
            entity_id=position.id,
            payload={"name": position.name, **windows},
        )
        return position

    async def extend_position(self, position_id: str, data: PositionExtendRequest) -> Position:
        """Push the nomination and/or voting close forward by a number of hours."""
        if data.extend_nomination_hours is None and data.extend_voting_hours is None:
            raise InvalidStateError(
                "At least one extension value is required (extendNominationHours or extendVotingHours)"
            )

        position = await self._get_position(position_id)
        nomination_closes_at = position.nomination_closes_at
        voting_closes_at = position.voting_closes_at

        if data.extend_nomination_hours is not None:
            if data.extend_nomination_hours <= 0:
                raise InvalidStateError("extendNominationHours must be a positive number")
            nomination_closes_at = nomination_closes_at + timedelta(hours=data.extend_nomination_hours)

        if data.extend_voting_hours is not None:
            if data.extend_voting_hours <= 0:
                raise InvalidStateError("extendVotingHours must be a positive number")
            voting_closes_at = voting_closes_at + timedelta(hours=data.extend_voting_hours)

        if nomination_closes_at > position.voting_opens_at:
            raise InvalidStateError(
                "Nomination period cannot extend beyond voting start date",
                hint="Extend the voting window as well",
            )

        previous = {
            "nominationCloses": position.nomination_closes_at,
            "votingCloses": position.voting_closes_at,
        }
        await self.positions.update_windows(
            position,
            nomination_closes_at=nomination_closes_at,
            voting_closes_at=voting_closes_at,
        )
        await self.db.commit()

        await self.audit_trail.record(
            actor_type=ActorType.ADMIN,
            action=AuditAction.EXTEND_POSITION_TIME,
            entity="Position",
            entity_id=position.id,
            payload={
                "previous": previous,
                "extendNominationHours": data.extend_nomination_hours,
                "extendVotingHours": data.extend_voting_hours,
            },
        )
        return position

    async def delete_position(self, position_id: str) -> None:
        """Delete a position that nothing references yet."""
        position = await self._get_position(position_id)

        if await self.positions.has_candidates(position.id):
            raise InvalidStateError("Cannot delete position with existing candidates")
        if await VoteRepository(self.db).count_by_position(position.id) > 0:
            raise InvalidStateError("Cannot delete position with existing votes")

        name = position.name
        await self.positions.delete(position)
        await self.db.commit()

        await self.audit_trail.record(
            actor_type=ActorType.ADMIN,
            action=AuditAction.DELETE_POSITION,
            entity="Position",
            entity_id=position_id,
            payload={"name": name},
        )

    async def submit_nomination(self, data: NominationCreate) -> Candidate:
        """
        Submit a nomination for a user.

        The candidate's display name and program come from the user account.
        """
        user = await UserRepository(self.db).get_by_id(data.user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User account not found")

        position = await self._get_position(data.position_id)
        now = self.clock.now()
        if not self.resolver.is_nomination_open(position, now):
            raise InvalidStateError(
                "Nomination window is closed",
                extra={
                    "nominationOpens": position.nomination_opens_at,
                    "nominationCloses": position.nomination_closes_at,
                },
            )

        if await self.candidates.get_by_position_and_user(position.id, user.id) is not None:
            raise InvalidStateError("You have already submitted a nomination for this position")

        try:
            candidate = await self.candidates.create(
                position_id=position.id,
                user_id=user.id,
                name=user.name,
                program=user.program or "",
                manifesto_url=data.manifesto_url,
                photo_url=data.photo_url,
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise InvalidStateError("You have already submitted a nomination for this position")

        await self.audit_trail.record(
            actor_type=ActorType.CANDIDATE,
            actor_id=data.user_id,
            action=AuditAction.SUBMIT_NOMINATION,
            entity="Candidate",
            entity_id=candidate.id,
            payload={"positionId": data.position_id},
        )
        return candidate

    async def review_nomination(self, candidate_id: str, review: NominationReview) -> Candidate:
        """Approve or reject a nomination. Rejection needs a reason."""
        candidate = await self.candidates.get_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError("Nomination not found")

        if review.decision == "approve":
            if candidate.status == CandidateStatus.APPROVED.value:
                raise InvalidStateError("Nomination is already approved")
            status, reason, action = CandidateStatus.APPROVED, None, AuditAction.APPROVE_NOMINATION
        else:
            reason = (review.reason or "").strip()
            if not reason:
                raise InvalidStateError("Rejection reason is required")
            if candidate.status == CandidateStatus.REJECTED.value:
                raise InvalidStateError("Nomination is already rejected")
            status, action = CandidateStatus.REJECTED, AuditAction.REJECT_NOMINATION

        await self.candidates.set_status(candidate, status, reason)
        await self.db.commit()

        logger.info("nomination_reviewed", candidate_id=candidate.id, status=status.value)
        await self.audit_trail.record(
            actor_type=ActorType.OFFICER,
            action=action,
            entity="Candidate",
            entity_id=candidate.id,
            payload={"positionId": candidate.position_id, "reason": reason},
        )
        return candidate
