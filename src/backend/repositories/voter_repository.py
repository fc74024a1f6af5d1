"""
Voter roll repository for database operations.
"""

from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.voter import EligibleVoter, VoterStatus, normalize_reg_no


class VoterRepository:
    """Repository for eligible voter database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_reg_no(self, reg_no: str) -> Optional[EligibleVoter]:
        """Get a voter by registration number (normalized before lookup)."""
        result = await self.db.execute(
            select(EligibleVoter).where(EligibleVoter.reg_no == normalize_reg_no(reg_no))
        )
        return result.scalar_one_or_none()

    async def upsert(self, rows: list[dict[str, Any]]) -> tuple[int, int]:
        """
        Insert or update voters keyed by registration number.

        The registration number itself is never rewritten; every other
        attribute in a row replaces the stored value.

        Returns:
            (created, updated)
        """
        created = 0
        updated = 0

        for row in rows:
            reg_no = normalize_reg_no(row["reg_no"])
            attrs = {key: value for key, value in row.items() if key != "reg_no"}

            voter = await self.get_by_reg_no(reg_no)
            if voter is None:
                self.db.add(EligibleVoter(reg_no=reg_no, **attrs))
                created += 1
            else:
                for key, value in attrs.items():
                    setattr(voter, key, value)
                updated += 1

        await self.db.flush()
        return created, updated

    async def count_eligible(self) -> int:
        """Count voters currently holding the franchise."""
        result = await self.db.execute(
            select(func.count(EligibleVoter.id)).where(EligibleVoter.status == VoterStatus.ELIGIBLE.value)
        )
        return result.scalar() or 0
