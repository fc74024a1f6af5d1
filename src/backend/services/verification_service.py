"""
Voter verification service.

Turns a registration number into a ballot token in two steps:

1. request_otp: issue a one-time code (rate limited) and deliver it out-of-band
2. confirm_otp: check the code, then issue a ballot in the same transaction

Only a keyed hash of each code is stored. Codes never appear in responses
or logs.
"""

import math
from datetime import timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock
from core.config import settings
from core.security import generate_otp, hash_otp, token_fingerprint, verify_otp
from models.audit_log import AuditAction
from models.verification import VerificationState
from models.voter import EligibleVoter
from repositories.ballot_repository import BallotRepository
from repositories.verification_repository import VerificationRepository
from repositories.voter_repository import VoterRepository
from schemas.verification import ConfirmOtpResponse, RequestOtpResponse
from services.audit_service import ActorType, AuditTrail
from services.ballot_service import BallotIssuer
from services.exceptions import (
    InvalidStateError,
    NotFoundError,
    OtpMismatchError,
    RateLimitedError,
    VotingError,
    VotingInternalError,
)
from services.notification_service import NotificationDispatcher

logger = structlog.get_logger(__name__)


class VerificationService:
    """OTP issuance and confirmation for voters."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        audit_trail: AuditTrail,
        dispatcher: NotificationDispatcher,
    ):
        self.db = db
        self.clock = clock
        self.audit_trail = audit_trail
        self.dispatcher = dispatcher
        self.voters = VoterRepository(db)
        self.ballots = BallotRepository(db)
        self.verifications = VerificationRepository(db)

    async def _get_voter(self, reg_no: str) -> EligibleVoter:
        voter = await self.voters.get_by_reg_no(reg_no)
        if voter is None:
            raise NotFoundError("Voter not found", hint="Check your registration number")
        return voter

    def _ensure_eligible(self, voter: EligibleVoter) -> None:
        if not voter.is_eligible:
            raise InvalidStateError(
                "Voter is not eligible to vote",
                hint="Contact the electoral commission",
            )

    async def _ensure_not_voted(self, voter_id: str) -> None:
        if await self.ballots.has_consumed_ballot(voter_id):
            raise InvalidStateError(
                "You have already voted. Ballot already used.",
                hint="Each voter can only vote once",
            )

    async def request_otp(self, reg_no: str) -> RequestOtpResponse:
        """
        Issue a one-time code and hand it to the dispatcher.

        Raises:
            NotFoundError: unknown registration number
            InvalidStateError: ineligible, already voted, or no contact details
            RateLimitedError: a code was issued within the resend cooldown
        """
        now = self.clock.now()
        voter = await self._get_voter(reg_no)
        self._ensure_eligible(voter)

        await self._ensure_not_voted(voter.id)

        routes = self.dispatcher.routes_for(voter)
        if not routes:
            raise InvalidStateError(
                "No email or phone number on file for this voter",
                hint="Contact the electoral commission to update your contact details",
            )

        cooldown = settings.OTP_RESEND_COOLDOWN_SECONDS
        recent = await self.verifications.get_recent_pending(voter.id, since=now - timedelta(seconds=cooldown))
        if recent is not None:
            elapsed = (now - recent.issued_at).total_seconds()
            retry_after = max(1, math.ceil(cooldown - elapsed))
            logger.info("otp_rate_limited", reg_no=voter.reg_no, retry_after=retry_after)
            raise RateLimitedError(
                "Please wait before requesting a new OTP",
                retry_after=retry_after,
                hint=f"You can request a new OTP in {retry_after} seconds",
            )

        code = generate_otp()
        method = self.dispatcher.method_for(routes)
        verification = await self.verifications.create(
            voter_id=voter.id,
            method=method,
            otp_hash=hash_otp(code),
            issued_at=now,
            expires_at=now + timedelta(seconds=settings.OTP_EXPIRY_SECONDS),
        )
        await self.db.commit()

        sent_via = [channel.label for channel, _ in routes]
        self.dispatcher.dispatch(
            voter,
            routes,
            code,
            {"reg_no": voter.reg_no, "expires_minutes": settings.OTP_EXPIRY_SECONDS // 60},
        )

        logger.info("otp_requested", reg_no=voter.reg_no, method=method.value)
        await self.audit_trail.record(
            actor_type=ActorType.VOTER,
            actor_id=voter.id,
            action=AuditAction.OTP_REQUESTED,
            entity="Verification",
            entity_id=verification.id,
            payload={"regNo": voter.reg_no, "method": method.value, "sentVia": sent_via},
        )

        return RequestOtpResponse(
            message="OTP sent successfully",
            expires_in=settings.OTP_EXPIRY_SECONDS,
            sent_via=sent_via,
        )

    async def confirm_otp(self, reg_no: str, otp: str) -> ConfirmOtpResponse:
        """
        Confirm a code and issue a ballot.

        Raises:
            NotFoundError: unknown registration number
            InvalidStateError: ineligible, no actionable code, already voted,
                or another ballot was issued concurrently
            OtpMismatchError: the code does not match
        """
        now = self.clock.now()
        voter = await self._get_voter(reg_no)
        self._ensure_eligible(voter)

        verification = await self.verifications.get_latest_actionable(voter.id, now)
        if verification is None:
            raise InvalidStateError("No valid OTP found", hint="Request a new OTP")

        # Rollback expires loaded instances
        voter_id, voter_reg_no, verification_id = voter.id, voter.reg_no, verification.id

        if not verify_otp(otp, verification.otp_hash):
            await self.db.rollback()
            logger.warning("otp_verification_failed", reg_no=voter_reg_no)
            await self.audit_trail.record(
                actor_type=ActorType.VOTER,
                actor_id=voter_id,
                action=AuditAction.OTP_VERIFICATION_FAILED,
                entity="Verification",
                entity_id=verification_id,
                payload={"regNo": voter_reg_no},
            )
            raise OtpMismatchError("Invalid OTP")

        await self._ensure_not_voted(voter_id)

        try:
            verified = await self.verifications.advance(
                verification_id,
                VerificationState.ISSUED,
                VerificationState.VERIFIED,
                now,
            )
            if not verified:
                raise InvalidStateError("No valid OTP found", hint="Request a new OTP")

            ballot = await BallotIssuer(self.db).issue(voter, verification, now)
            # A cast on an older ballot may have committed since the first check
            await self._ensure_not_voted(voter_id)
            await self.db.commit()
        except VotingError:
            await self.db.rollback()
            raise
        except IntegrityError:
            await self.db.rollback()
            logger.warning("ballot_issue_conflict", reg_no=voter_reg_no)
            raise InvalidStateError(
                "A ballot was issued to this voter at the same time",
                hint="Use the ballot token you already received, or request a new OTP",
            )
        except Exception:
            await self.db.rollback()
            logger.exception("ballot_issue_failed", reg_no=voter_reg_no)
            raise VotingInternalError("Failed to verify OTP")

        await self.audit_trail.record(
            actor_type=ActorType.VOTER,
            actor_id=voter_id,
            action=AuditAction.OTP_VERIFIED_BALLOT_ISSUED,
            entity="Ballot",
            entity_id=ballot.id,
            payload={"regNo": voter_reg_no, "ballotToken": token_fingerprint(ballot.token)},
        )

        return ConfirmOtpResponse(
            message="OTP verified successfully. Ballot issued.",
            ballot_token=ballot.token,
            expires_at=ballot.issued_at,
        )
