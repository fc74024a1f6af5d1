"""
Verification repository for database operations.

Every state change goes through `models.verification.transition` and is
written as a conditional update on the current state, so two concurrent
requests can never both move the same record.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.verification import DeliveryMethod, Verification, VerificationState, transition


class VerificationRepository:
    """Repository for OTP verification records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def create(
        self,
        voter_id: str,
        method: DeliveryMethod,
        otp_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> Verification:
        """Create an ISSUED verification record."""
        verification = Verification(
            voter_id=voter_id,
            method=method.value,
            otp_hash=otp_hash,
            state=VerificationState.ISSUED.value,
            issued_at=issued_at,
            expires_at=expires_at,
        )

        self.db.add(verification)
        await self.db.flush()

        return verification

    async def get_recent_pending(self, voter_id: str, since: datetime) -> Optional[Verification]:
        """Most recent ISSUED record for a voter issued after `since` (resend cooldown)."""
        result = await self.db.execute(
            select(Verification)
            .where(
                and_(
                    Verification.voter_id == voter_id,
                    Verification.state == VerificationState.ISSUED.value,
                    Verification.issued_at > since,
                )
            )
            .order_by(Verification.issued_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_latest_actionable(self, voter_id: str, now: datetime) -> Optional[Verification]:
        """Most recent ISSUED record that has not expired as of `now`."""
        result = await self.db.execute(
            select(Verification)
            .where(
                and_(
                    Verification.voter_id == voter_id,
                    Verification.state == VerificationState.ISSUED.value,
                    Verification.expires_at >= now,
                )
            )
            .order_by(Verification.issued_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def advance(
        self,
        verification_id: str,
        current: VerificationState,
        target: VerificationState,
        at: datetime,
        **extra: Any,
    ) -> bool:
        """
        Move one record from `current` to `target`.

        Returns False when the record was no longer in `current` (another
        request got there first).

        Raises:
            InvalidTransitionError: if the edge does not exist.
        """
        values = transition(current, target, at)
        values.update(extra)

        result = await self.db.execute(
            update(Verification)
            .where(
                and_(
                    Verification.id == verification_id,
                    Verification.state == current.value,
                )
            )
            .values(**values)
        )
        return self._get_rowcount(result) == 1

    async def expire_stale(self, now: datetime) -> int:
        """Persist ISSUED -> EXPIRED for every record past its expiry. Returns rows changed."""
        values = transition(VerificationState.ISSUED, VerificationState.EXPIRED, now)

        result = await self.db.execute(
            update(Verification)
            .where(
                and_(
                    Verification.state == VerificationState.ISSUED.value,
                    Verification.expires_at < now,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self._get_rowcount(result)

    async def count_verified_voters(self) -> int:
        """Distinct voters with at least one confirmed code."""
        result = await self.db.execute(
            select(func.count(func.distinct(Verification.voter_id))).where(
                Verification.verified_at.isnot(None)
            )
        )
        return result.scalar() or 0
