"""
Eligible voter model (the voter roll).

A voter is identified by a registration number. Contact details are PII and
are encrypted at rest; they are only read to deliver one-time codes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import EncryptedString, UTCDateTime


class VoterStatus(str, Enum):
    """Franchise status of a voter."""

    ELIGIBLE = "ELIGIBLE"
    INELIGIBLE = "INELIGIBLE"


def normalize_reg_no(reg_no: str) -> str:
    """Canonical form of a registration number (trimmed, upper case)."""
    return reg_no.strip().upper()


class EligibleVoter(Base):
    """
    Identity anchor for the franchise.

    The registration number is unique and never changes after import.
    Re-imports update the other attributes in place.
    """

    __tablename__ = "eligible_voters"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    reg_no: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))

    # PII - encrypted at rest
    email: Mapped[Optional[str]] = mapped_column(EncryptedString(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(EncryptedString(32), nullable=True)

    program: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=VoterStatus.ELIGIBLE.value)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_eligible(self) -> bool:
        return self.status == VoterStatus.ELIGIBLE.value

    def __repr__(self) -> str:
        return f"<EligibleVoter(reg_no={self.reg_no}, status={self.status})>"
