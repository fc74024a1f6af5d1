"""
Election administration schemas.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from models.user import UserRole
from models.voter import VoterStatus, normalize_reg_no
from schemas.base import CamelModel


# Voter roll


class VoterImportRow(CamelModel):
    """One voter from an already-parsed roll."""

    reg_no: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    program: Optional[str] = Field(None, max_length=255)
    status: VoterStatus = VoterStatus.ELIGIBLE

    @field_validator("reg_no")
    @classmethod
    def normalize(cls, v: str) -> str:
        v = normalize_reg_no(v)
        if not v:
            raise ValueError("reg_no must not be blank")
        return v

    @field_validator("email", "phone", "program")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class VoterImportRequest(CamelModel):
    voters: list[VoterImportRow] = Field(..., min_length=1)


class VoterImportResponse(CamelModel):
    created: int
    updated: int
    total: int


# Users


class UserCreate(CamelModel):
    """Staff or candidate account."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.CANDIDATE
    reg_no: Optional[str] = Field(None, max_length=64)
    program: Optional[str] = Field(None, max_length=255)


class UserResponse(CamelModel):
    id: str
    email: str
    name: str
    role: str
    reg_no: Optional[str] = None
    program: Optional[str] = None
    is_active: bool


# Positions


class PositionCreate(CamelModel):
    """
    Window bounds must satisfy
    nomination_opens_at < nomination_closes_at <= voting_opens_at < voting_closes_at
    """

    name: str = Field(..., min_length=1, max_length=255)
    seats: int = Field(1, ge=1)
    nomination_opens_at: datetime
    nomination_closes_at: datetime
    voting_opens_at: datetime
    voting_closes_at: datetime


class PositionExtendRequest(CamelModel):
    extend_nomination_hours: Optional[float] = None
    extend_voting_hours: Optional[float] = None


class PositionResponse(CamelModel):
    id: str
    name: str
    seats: int
    nomination_opens_at: datetime
    nomination_closes_at: datetime
    voting_opens_at: datetime
    voting_closes_at: datetime


# Nominations


class NominationCreate(CamelModel):
    """Nomination submitted on behalf of a user account."""

    position_id: str
    user_id: str
    manifesto_url: Optional[str] = Field(None, max_length=500)
    photo_url: Optional[str] = Field(None, max_length=500)


class NominationReview(CamelModel):
    decision: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=500)


class CandidateResponse(CamelModel):
    id: str
    position_id: str
    user_id: str
    name: str
    program: str
    manifesto_url: Optional[str] = None
    photo_url: Optional[str] = None
    status: str
    reason: Optional[str] = None


# Reports


class TurnoutBreakdown(CamelModel):
    voted: int
    not_voted: int
    verified: int
    not_verified: int


class TurnoutReport(CamelModel):
    total_voters: int
    verified_voters: int
    ballots_issued: int
    votes_cast: int
    non_voters: int
    turnout: float
    verification_rate: float
    ballot_usage_rate: float
    non_voter_percentage: float
    breakdown: TurnoutBreakdown


class CandidateTally(CamelModel):
    candidate_id: str
    name: str
    votes: int


class PositionResult(CamelModel):
    position_id: str
    name: str
    seats: int
    total_votes: int
    candidates: list[CandidateTally]


class ResultsReport(CamelModel):
    positions: list[PositionResult]


# Audit log


class AuditLogEntry(CamelModel):
    id: str
    actor_type: str
    actor_id: Optional[str] = None
    action: str
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    payload: Optional[dict[str, Any]] = None
    created_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., serialization_alias="totalPages")


class AuditLogPage(CamelModel):
    logs: list[AuditLogEntry]
    pagination: Pagination
