"""
Vote repository for database operations.

Implements secret-ballot vote storage: votes are keyed by ballot, and no
query here ever joins through the ballot to a voter.
"""

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.vote import Vote


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_many(
        self,
        ballot_id: str,
        selections: list[tuple[str, str]],
        cast_at: datetime,
    ) -> list[Vote]:
        """
        Stage one vote per (position_id, candidate_id) selection.

        NOTE: the caller owns the transaction; a unique violation on
        (ballot_id, position_id) surfaces at flush.
        """
        votes = [
            Vote(
                ballot_id=ballot_id,
                position_id=position_id,
                candidate_id=candidate_id,
                cast_at=cast_at,
            )
            for position_id, candidate_id in selections
        ]

        self.db.add_all(votes)
        await self.db.flush()

        return votes

    async def exists_for_ballot_positions(self, ballot_id: str, position_ids: list[str]) -> bool:
        """Check whether the ballot already holds a vote for any of the positions."""
        result = await self.db.execute(
            select(func.count(Vote.id)).where(
                and_(
                    Vote.ballot_id == ballot_id,
                    Vote.position_id.in_(position_ids),
                )
            )
        )
        count = result.scalar() or 0
        return count > 0

    async def count_by_position(self, position_id: str) -> int:
        """Get total vote count for a position."""
        result = await self.db.execute(select(func.count(Vote.id)).where(Vote.position_id == position_id))
        return result.scalar() or 0

    async def tally(self) -> dict[str, dict[str, int]]:
        """
        Vote counts per candidate, grouped by position.

        Returns: {"position_id": {"candidate_id": 12, ...}, ...}
        """
        result = await self.db.execute(
            select(
                Vote.position_id,
                Vote.candidate_id,
                func.count(Vote.id).label("count"),
            ).group_by(Vote.position_id, Vote.candidate_id)
        )

        tallies: dict[str, dict[str, int]] = {}
        for row in result.all():
            count_val: int = row[2]
            tallies.setdefault(str(row.position_id), {})[str(row.candidate_id)] = count_val

        return tallies
