"""
User model for staff and candidate accounts.

Voters are not users: they are identified through the voter roll and prove
control of a contact channel with a one-time code.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime


class UserRole(str, Enum):
    """Account role."""

    ADMIN = "ADMIN"
    OFFICER = "OFFICER"
    CANDIDATE = "CANDIDATE"


class User(Base):
    """Staff or candidate account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.CANDIDATE.value)

    # Candidate accounts are usually students on the roll as well
    reg_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    program: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
    )
