"""Database models module."""

from models.audit_log import AuditAction, AuditLog
from models.ballot import Ballot, BallotStatus
from models.position import Candidate, CandidateStatus, Position
from models.user import User, UserRole
from models.verification import DeliveryMethod, Verification, VerificationState
from models.vote import Vote
from models.voter import EligibleVoter, VoterStatus, normalize_reg_no

__all__ = [
    "AuditAction",
    "AuditLog",
    "Ballot",
    "BallotStatus",
    "Candidate",
    "CandidateStatus",
    "Position",
    "User",
    "UserRole",
    "DeliveryMethod",
    "Verification",
    "VerificationState",
    "Vote",
    "EligibleVoter",
    "VoterStatus",
    "normalize_reg_no",
]
