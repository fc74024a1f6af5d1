"""
Ballot repository for database operations.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.ballot import Ballot, BallotStatus


class BallotRepository:
    """Repository for ballot database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_token(self, token: str) -> Optional[Ballot]:
        """Get a ballot by its token."""
        result = await self.db.execute(select(Ballot).where(Ballot.token == token))
        return result.scalar_one_or_none()

    async def has_consumed_ballot(self, voter_id: str) -> bool:
        """Check whether the voter has already voted."""
        result = await self.db.execute(
            select(func.count(Ballot.id)).where(
                and_(
                    Ballot.voter_id == voter_id,
                    Ballot.status == BallotStatus.CONSUMED.value,
                )
            )
        )
        count = result.scalar() or 0
        return count > 0

    async def supersede_active(self, voter_id: str) -> int:
        """Retire every ACTIVE ballot the voter holds. Returns rows changed."""
        result = await self.db.execute(
            update(Ballot)
            .where(
                and_(
                    Ballot.voter_id == voter_id,
                    Ballot.status == BallotStatus.ACTIVE.value,
                )
            )
            .values(status=BallotStatus.SUPERSEDED.value)
        )
        return self._get_rowcount(result)

    async def create(self, voter_id: str, token: str, issued_at: datetime) -> Ballot:
        """Create an ACTIVE ballot."""
        ballot = Ballot(
            voter_id=voter_id,
            token=token,
            status=BallotStatus.ACTIVE.value,
            issued_at=issued_at,
        )

        self.db.add(ballot)
        await self.db.flush()

        return ballot

    async def consume(self, ballot_id: str, at: datetime) -> bool:
        """
        Mark a ballot CONSUMED if and only if it is still ACTIVE.

        Of several concurrent submissions on one ballot exactly one sees True.

        Raises:
            IntegrityError: the voter already has a CONSUMED ballot.
        """
        result = await self.db.execute(
            update(Ballot)
            .where(
                and_(
                    Ballot.id == ballot_id,
                    Ballot.status == BallotStatus.ACTIVE.value,
                )
            )
            .values(status=BallotStatus.CONSUMED.value, consumed_at=at)
        )
        return self._get_rowcount(result) == 1

    async def count_issued(self) -> int:
        """Total ballots ever issued."""
        result = await self.db.execute(select(func.count(Ballot.id)))
        return result.scalar() or 0

    async def count_consumed(self) -> int:
        """Ballots that were used to vote."""
        result = await self.db.execute(
            select(func.count(Ballot.id)).where(Ballot.status == BallotStatus.CONSUMED.value)
        )
        return result.scalar() or 0
