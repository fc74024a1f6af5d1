"""
Position and candidate models.

A position is an electable seat with a nomination window followed by a
voting window. Candidates are nominations against a position; only approved
candidates appear on ballots.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base
from db.types import UTCDateTime


class CandidateStatus(str, Enum):
    """Nomination review status."""

    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Position(Base):
    """
    Electable seat.

    Window invariants (enforced by the position service):
    nomination_opens_at < nomination_closes_at <= voting_opens_at < voting_closes_at
    """

    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    name: Mapped[str] = mapped_column(String(255), index=True)
    seats: Mapped[int] = mapped_column(Integer, default=1)

    # Scheduling
    nomination_opens_at: Mapped[datetime] = mapped_column(UTCDateTime())
    nomination_closes_at: Mapped[datetime] = mapped_column(UTCDateTime())
    voting_opens_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)
    voting_closes_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    candidates = relationship("Candidate", back_populates="position")

    def __repr__(self) -> str:
        return f"<Position(name={self.name}, voting={self.voting_opens_at}..{self.voting_closes_at})>"


class Candidate(Base):
    """A nomination for a position, submitted by a user account."""

    __tablename__ = "candidates"

    __table_args__ = (
        # One nomination per user per position
        UniqueConstraint("position_id", "user_id", name="uq_candidates_position_user"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    position_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("positions.id", ondelete="RESTRICT"),
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255))
    program: Mapped[str] = mapped_column(String(255))
    manifesto_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CandidateStatus.SUBMITTED.value,
        index=True,
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    position = relationship("Position", back_populates="candidates")

    @property
    def is_approved(self) -> bool:
        return self.status == CandidateStatus.APPROVED.value
