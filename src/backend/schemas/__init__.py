"""Schemas module initialization."""

from schemas.admin import (
    AuditLogPage,
    PositionCreate,
    PositionResponse,
    ResultsReport,
    TurnoutReport,
    VoterImportRequest,
    VoterImportResponse,
)
from schemas.verification import ConfirmOtpRequest, ConfirmOtpResponse, RequestOtpRequest, RequestOtpResponse
from schemas.vote import BallotContentsResponse, CastVoteRequest, CastVoteResponse, VoteSelection

__all__ = [
    "AuditLogPage",
    "PositionCreate",
    "PositionResponse",
    "ResultsReport",
    "TurnoutReport",
    "VoterImportRequest",
    "VoterImportResponse",
    "RequestOtpRequest",
    "RequestOtpResponse",
    "ConfirmOtpRequest",
    "ConfirmOtpResponse",
    "BallotContentsResponse",
    "CastVoteRequest",
    "CastVoteResponse",
    "VoteSelection",
]
