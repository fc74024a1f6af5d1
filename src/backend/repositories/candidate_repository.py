"""
Candidate (nomination) repository for database operations.
"""

from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.position import Candidate, CandidateStatus


class CandidateRepository:
    """Repository for candidate database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        """Get a candidate by ID."""
        result = await self.db.execute(select(Candidate).where(Candidate.id == candidate_id))
        return result.scalar_one_or_none()

    async def get_many(self, candidate_ids: list[str]) -> dict[str, Candidate]:
        """Load several candidates at once, keyed by ID. Unknown IDs are absent."""
        if not candidate_ids:
            return {}
        result = await self.db.execute(select(Candidate).where(Candidate.id.in_(candidate_ids)))
        return {candidate.id: candidate for candidate in result.scalars().all()}

    async def get_by_position_and_user(self, position_id: str, user_id: str) -> Optional[Candidate]:
        """Get a user's nomination for a position, if any."""
        result = await self.db.execute(
            select(Candidate).where(
                and_(
                    Candidate.position_id == position_id,
                    Candidate.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_approved_for_positions(self, position_ids: list[str]) -> list[Candidate]:
        """APPROVED candidates standing for any of the given positions, ordered by name."""
        if not position_ids:
            return []
        result = await self.db.execute(
            select(Candidate)
            .where(
                and_(
                    Candidate.position_id.in_(position_ids),
                    Candidate.status == CandidateStatus.APPROVED.value,
                )
            )
            .order_by(Candidate.name)
        )
        return list(result.scalars().all())

    async def create(
        self,
        position_id: str,
        user_id: str,
        name: str,
        program: str,
        manifesto_url: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Candidate:
        """Create a SUBMITTED nomination."""
        candidate = Candidate(
            position_id=position_id,
            user_id=user_id,
            name=name,
            program=program,
            manifesto_url=manifesto_url,
            photo_url=photo_url,
            status=CandidateStatus.SUBMITTED.value,
        )

        self.db.add(candidate)
        await self.db.flush()

        return candidate

    async def set_status(
        self,
        candidate: Candidate,
        status: CandidateStatus,
        reason: Optional[str] = None,
    ) -> Candidate:
        """Record a review decision."""
        candidate.status = status.value
        candidate.reason = reason
        await self.db.flush()
        return candidate
