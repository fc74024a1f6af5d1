"""
Audit log model.

Append-only record of security-relevant events. Rows are never updated or
deleted by the application.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.types import UTCDateTime


class AuditAction:
    """Action codes written to the audit trail."""

    OTP_REQUESTED = "OTP_REQUESTED"
    OTP_EMAIL_FAILED = "OTP_EMAIL_FAILED"
    OTP_SMS_FAILED = "OTP_SMS_FAILED"
    OTP_VERIFICATION_FAILED = "OTP_VERIFICATION_FAILED"
    OTP_VERIFIED_BALLOT_ISSUED = "OTP_VERIFIED_BALLOT_ISSUED"
    CAST_VOTE = "CAST_VOTE"
    CAST_VOTE_FAILED = "CAST_VOTE_FAILED"
    IMPORT_VOTERS = "IMPORT_VOTERS"
    CREATE_POSITION = "CREATE_POSITION"
    EXTEND_POSITION_TIME = "EXTEND_POSITION_TIME"
    DELETE_POSITION = "DELETE_POSITION"
    SUBMIT_NOMINATION = "SUBMIT_NOMINATION"
    APPROVE_NOMINATION = "APPROVE_NOMINATION"
    REJECT_NOMINATION = "REJECT_NOMINATION"


class AuditLog(Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    actor_type: Mapped[str] = mapped_column(String(20))  # admin, officer, candidate, voter, system
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    action: Mapped[str] = mapped_column(String(64), index=True)
    entity: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # JSONB on PostgreSQL, plain JSON elsewhere
    payload: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    __table_args__ = (Index("ix_audit_logs_actor_type_created", "actor_type", "created_at"),)
