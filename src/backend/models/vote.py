"""
Vote model.

Secret-ballot vote storage. A vote references the ballot it was cast with,
never the voter. The only path from a vote to a person runs through
ballots.voter_id, which result queries never follow.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime


class Vote(Base):
    """
    One vote for one position.

    PRIVACY DESIGN:
    - No voter id, registration number or contact detail is stored
    - (ballot_id, position_id) is unique: one vote per position per ballot
    """

    __tablename__ = "votes"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    ballot_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ballots.id", ondelete="CASCADE"),
        index=True,
    )
    position_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("positions.id", ondelete="RESTRICT"),
        index=True,
    )
    candidate_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("candidates.id", ondelete="RESTRICT"),
        index=True,
    )

    cast_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("ballot_id", "position_id", name="uq_votes_ballot_position"),
        # Tally queries
        Index("ix_votes_position_candidate", "position_id", "candidate_id"),
    )
