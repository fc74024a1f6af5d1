"""
Ballot model: the anonymizing boundary between a voter and their votes.

The voter reference exists only to enforce one ballot per voter and for the
audit trail. Vote queries never join through it; the token is the only
credential the casting flow accepts.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime


class BallotStatus(str, Enum):
    """Ballot lifecycle status."""

    ACTIVE = "ACTIVE"  # Issued, may be used to vote once
    CONSUMED = "CONSUMED"  # Votes committed, terminal
    SUPERSEDED = "SUPERSEDED"  # Replaced by a newer ballot for the same voter, terminal


class Ballot(Base):
    """Single-use voting credential."""

    __tablename__ = "ballots"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    voter_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("eligible_voters.id", ondelete="CASCADE"),
        index=True,
    )

    token: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(16), default=BallotStatus.ACTIVE.value)

    issued_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
    consumed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # At most one ACTIVE and one CONSUMED ballot per voter
    __table_args__ = (
        Index("ix_ballots_voter_status", "voter_id", "status"),
        Index(
            "uq_ballots_voter_consumed",
            "voter_id",
            unique=True,
            postgresql_where=text("status = 'CONSUMED'"),
            sqlite_where=text("status = 'CONSUMED'"),
        ),
        Index(
            "uq_ballots_voter_active",
            "voter_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    def __repr__(self) -> str:
        # Never include the token
        return f"<Ballot(id={self.id}, status={self.status})>"
