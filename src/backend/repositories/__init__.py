"""Repository modules for database access."""

from repositories.audit_log_repository import AuditLogRepository
from repositories.ballot_repository import BallotRepository
from repositories.candidate_repository import CandidateRepository
from repositories.position_repository import PositionRepository
from repositories.user_repository import UserRepository
from repositories.verification_repository import VerificationRepository
from repositories.vote_repository import VoteRepository
from repositories.voter_repository import VoterRepository

__all__ = [
    "AuditLogRepository",
    "BallotRepository",
    "CandidateRepository",
    "PositionRepository",
    "UserRepository",
    "VerificationRepository",
    "VoteRepository",
    "VoterRepository",
]
