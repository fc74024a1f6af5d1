"""
Verification model: one OTP issuance attempt for a voter.

State machine:

    ISSUED --(expires)--> EXPIRED
    ISSUED --(code confirmed)--> VERIFIED --(ballot issued)--> LINKED

EXPIRED and LINKED are terminal and no transition is reversible.
`transition()` is the only place that decides which columns change for a
given move; both ORM writes and conditional bulk updates go through it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime


class VerificationState(str, Enum):
    """Lifecycle state of an OTP issuance."""

    ISSUED = "ISSUED"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"
    LINKED = "LINKED"


class DeliveryMethod(str, Enum):
    """Channels a code was sent through."""

    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"


class InvalidTransitionError(ValueError):
    """Raised when a verification is moved along an edge that does not exist."""

    pass


_ALLOWED_TRANSITIONS: dict[VerificationState, frozenset[VerificationState]] = {
    VerificationState.ISSUED: frozenset({VerificationState.VERIFIED, VerificationState.EXPIRED}),
    VerificationState.VERIFIED: frozenset({VerificationState.LINKED}),
    VerificationState.EXPIRED: frozenset(),
    VerificationState.LINKED: frozenset(),
}


def transition(
    current: VerificationState,
    target: VerificationState,
    at: datetime,
) -> dict[str, Any]:
    """
    Validate a state change and return the column values it implies.

    Raises:
        InvalidTransitionError: if target is not reachable from current.
    """
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move verification from {current.value} to {target.value}")

    values: dict[str, Any] = {"state": target.value}
    if target is VerificationState.VERIFIED:
        values["verified_at"] = at
    elif target is VerificationState.LINKED:
        values["consumed_at"] = at
    return values


class Verification(Base):
    """
    One OTP issuance attempt.

    Only a keyed hash of the code is stored, never the code itself.
    """

    __tablename__ = "verifications"

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

    method: Mapped[str] = mapped_column(String(10))
    otp_hash: Mapped[str] = mapped_column(String(128))
    state: Mapped[str] = mapped_column(String(16), default=VerificationState.ISSUED.value)

    issued_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime())
    verified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # Traceability back to the ballot minted from this verification
    ballot_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        # Rate-limit and confirmation lookups: latest record per voter by state
        Index("ix_verifications_voter_state_issued", "voter_id", "state", "issued_at"),
    )

    def effective_state(self, now: datetime) -> VerificationState:
        """State as of `now`; an ISSUED record past expiry is EXPIRED even before the sweep persists it."""
        state = VerificationState(self.state)
        if state is VerificationState.ISSUED and now > self.expires_at:
            return VerificationState.EXPIRED
        return state

    def __repr__(self) -> str:
        return f"<Verification(id={self.id}, voter_id={self.voter_id}, state={self.state})>"
