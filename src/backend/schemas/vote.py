"""
Ballot and vote-casting schemas.

These schemas never carry voter identity: the ballot token is the only
credential and responses reference ballots, positions and candidates only.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.base import CamelModel


class BallotInfo(CamelModel):
    id: str
    status: str
    issued_at: datetime


class BallotPosition(CamelModel):
    id: str
    name: str
    seats: int
    voting_opens_at: datetime = Field(..., serialization_alias="votingOpens")
    voting_closes_at: datetime = Field(..., serialization_alias="votingCloses")


class BallotCandidate(CamelModel):
    id: str
    position_id: str
    name: str
    program: str
    manifesto_url: Optional[str] = None
    photo_url: Optional[str] = None


class BallotContentsResponse(CamelModel):
    """Open positions and approved candidates for an active ballot."""

    ballot: BallotInfo
    positions: list[BallotPosition]
    candidates: list[BallotCandidate]


class VoteSelection(CamelModel):
    """One (position, candidate) choice."""

    position_id: str = Field(..., min_length=1)
    candidate_id: str = Field(..., min_length=1)


class CastVoteRequest(CamelModel):
    """Schema for casting votes with a ballot token."""

    token: str = Field(..., min_length=1)
    votes: list[VoteSelection] = Field(..., min_length=1)


class CastVoteResponse(CamelModel):
    message: str
    votes: int
