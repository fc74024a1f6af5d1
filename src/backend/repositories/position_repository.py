"""
Position repository for database operations.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.position import Candidate, Position


class PositionRepository:
    """Repository for position database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, position_id: str) -> Optional[Position]:
        """Get a position by ID."""
        result = await self.db.execute(select(Position).where(Position.id == position_id))
        return result.scalar_one_or_none()

    async def get_many(self, position_ids: list[str]) -> dict[str, Position]:
        """Load several positions at once, keyed by ID. Unknown IDs are absent."""
        if not position_ids:
            return {}
        result = await self.db.execute(select(Position).where(Position.id.in_(position_ids)))
        return {position.id: position for position in result.scalars().all()}

    async def list_all(self) -> list[Position]:
        """All positions ordered by voting start, then name."""
        result = await self.db.execute(select(Position).order_by(Position.voting_opens_at, Position.name))
        return list(result.scalars().all())

    async def list_open_for_voting(self, open_clause: ColumnElement[bool]) -> list[Position]:
        """
        Positions matching a voting-window predicate, ordered by name.

        The predicate comes from the voting window resolver so that listing
        and cast-time checks share one definition of "open".
        """
        result = await self.db.execute(select(Position).where(open_clause).order_by(Position.name))
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        seats: int,
        nomination_opens_at: datetime,
        nomination_closes_at: datetime,
        voting_opens_at: datetime,
        voting_closes_at: datetime,
    ) -> Position:
        """Create a position."""
        position = Position(
            name=name,
            seats=seats,
            nomination_opens_at=nomination_opens_at,
            nomination_closes_at=nomination_closes_at,
            voting_opens_at=voting_opens_at,
            voting_closes_at=voting_closes_at,
        )

        self.db.add(position)
        await self.db.flush()

        return position

    async def update_windows(self, position: Position, **windows: Any) -> Position:
        """Apply new window bounds to a loaded position."""
        for key, value in windows.items():
            setattr(position, key, value)
        await self.db.flush()
        return position

    async def has_candidates(self, position_id: str) -> bool:
        """Check whether any nomination references the position."""
        result = await self.db.execute(
            select(func.count(Candidate.id)).where(Candidate.position_id == position_id)
        )
        count = result.scalar() or 0
        return count > 0

    async def delete(self, position: Position) -> None:
        """Delete a position."""
        await self.db.delete(position)
        await self.db.flush()
