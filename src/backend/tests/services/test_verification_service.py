"""
Tests for OTP issuance and confirmation.

Runs against the in-memory election from conftest with a frozen clock and
fake delivery channels.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, update


@pytest.fixture
def service(db_session, clock, audit_trail, dispatcher):
    from services.verification_service import VerificationService

    return VerificationService(db_session, clock, audit_trail, dispatcher)


async def _verifications(session_factory, reg_no="REG001"):
    from models.verification import Verification
    from models.voter import EligibleVoter

    async with session_factory() as session:
        result = await session.execute(
            select(Verification)
            .join(EligibleVoter, EligibleVoter.id == Verification.voter_id)
            .where(EligibleVoter.reg_no == reg_no)
            .order_by(Verification.issued_at)
        )
        return list(result.scalars().all())


async def _ballots(session_factory):
    from models.ballot import Ballot

    async with session_factory() as session:
        result = await session.execute(select(Ballot).order_by(Ballot.issued_at))
        return list(result.scalars().all())


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


@pytest.mark.unit
class TestRequestOtp:
    async def test_sends_same_code_on_every_channel(self, service, dispatcher, election, email_channel, sms_channel):
        response = await service.request_otp("REG001")
        await dispatcher.drain()

        assert response.sent_via == ["Email", "SMS"]
        assert response.expires_in == 300
        assert email_channel.sent[0][0] == "amina@example.com"
        assert sms_channel.sent[0][0] == "0701234567"
        assert email_channel.last_code == sms_channel.last_code
        assert len(email_channel.last_code) == 6
        assert email_channel.sent[0][2]["reg_no"] == "REG001"

    async def test_stores_only_a_hash(self, service, dispatcher, election, email_channel, session_factory):
        await service.request_otp("REG001")
        await dispatcher.drain()

        [verification] = await _verifications(session_factory)
        assert verification.state == "ISSUED"
        assert verification.method == "both"
        assert verification.otp_hash.startswith("v1$")
        assert verification.otp_hash != email_channel.last_code

    async def test_email_only_voter(self, service, dispatcher, election, sms_channel, session_factory):
        response = await service.request_otp("REG002")
        await dispatcher.drain()

        assert response.sent_via == ["Email"]
        assert sms_channel.sent == []
        [verification] = await _verifications(session_factory, "REG002")
        assert verification.method == "email"

    async def test_records_audit_entry(self, service, dispatcher, election, audit_entries):
        await service.request_otp("REG001")
        await dispatcher.drain()

        [entry] = await audit_entries("OTP_REQUESTED")
        assert entry.actor_type == "voter"
        assert entry.payload["regNo"] == "REG001"
        assert entry.payload["sentVia"] == ["Email", "SMS"]

    async def test_unknown_voter(self, service, election):
        from services.exceptions import NotFoundError

        with pytest.raises(NotFoundError, match="Voter not found"):
            await service.request_otp("NOPE")

    async def test_ineligible_voter(self, service, election):
        from services.exceptions import InvalidStateError

        with pytest.raises(InvalidStateError, match="not eligible"):
            await service.request_otp("REG003")

    async def test_voter_without_contact_details(self, service, election, session_factory):
        from services.exceptions import InvalidStateError

        with pytest.raises(InvalidStateError, match="No email or phone number"):
            await service.request_otp("REG004")
        assert await _verifications(session_factory, "REG004") == []

    async def test_resend_cooldown(self, service, dispatcher, clock, election):
        from services.exceptions import RateLimitedError

        await service.request_otp("REG001")
        await dispatcher.drain()

        clock.advance(seconds=10)
        with pytest.raises(RateLimitedError) as exc_info:
            await service.request_otp("REG001")
        assert exc_info.value.retry_after == 50
        assert exc_info.value.to_dict()["retryAfter"] == 50

        clock.advance(seconds=51)
        response = await service.request_otp("REG001")
        await dispatcher.drain()
        assert response.message == "OTP sent successfully"

    async def test_failed_channel_is_audited_but_request_succeeds(
        self, service, dispatcher, election, email_channel, sms_channel, audit_entries
    ):
        sms_channel.succeed = False
        email_channel.error = RuntimeError("smtp unreachable")

        response = await service.request_otp("REG001")
        await dispatcher.drain()

        assert response.sent_via == ["Email", "SMS"]
        [email_failure] = await audit_entries("OTP_EMAIL_FAILED")
        [sms_failure] = await audit_entries("OTP_SMS_FAILED")
        assert email_failure.payload["error"] == "smtp unreachable"
        assert sms_failure.payload["channel"] == "sms"


@pytest.mark.unit
class TestConfirmOtp:
    async def _request(self, service, dispatcher, email_channel, reg_no="REG001") -> str:
        await service.request_otp(reg_no)
        await dispatcher.drain()
        return email_channel.last_code

    async def test_issues_ballot_and_links_verification(
        self, service, dispatcher, election, email_channel, session_factory, clock
    ):
        code = await self._request(service, dispatcher, email_channel)

        response = await service.confirm_otp("REG001", code)

        assert response.message == "OTP verified successfully. Ballot issued."
        assert len(response.ballot_token) == 64
        assert response.expires_at == clock.now()
        [verification] = await _verifications(session_factory)
        assert verification.state == "LINKED"
        assert verification.ballot_token == response.ballot_token
        assert verification.verified_at == clock.now()
        [ballot] = await _ballots(session_factory)
        assert ballot.status == "ACTIVE"
        assert ballot.token == response.ballot_token

    async def test_code_with_surrounding_whitespace(self, service, dispatcher, election, email_channel):
        code = await self._request(service, dispatcher, email_channel)

        response = await service.confirm_otp("REG001", f"  {code} ")

        assert response.ballot_token

    async def test_wrong_code_is_rejected_and_audited(
        self, service, dispatcher, election, email_channel, audit_entries, session_factory
    ):
        from services.exceptions import OtpMismatchError

        code = await self._request(service, dispatcher, email_channel)

        with pytest.raises(OtpMismatchError, match="Invalid OTP"):
            await service.confirm_otp("REG001", _wrong(code))

        [entry] = await audit_entries("OTP_VERIFICATION_FAILED")
        assert entry.payload == {"regNo": "REG001"}
        [verification] = await _verifications(session_factory)
        assert verification.state == "ISSUED"

        # The right code still works afterwards
        response = await service.confirm_otp("REG001", code)
        assert response.ballot_token

    async def test_code_cannot_be_used_twice(self, service, dispatcher, election, email_channel):
        from services.exceptions import InvalidStateError

        code = await self._request(service, dispatcher, email_channel)
        await service.confirm_otp("REG001", code)

        with pytest.raises(InvalidStateError, match="No valid OTP found"):
            await service.confirm_otp("REG001", code)

    async def test_expired_code(self, service, dispatcher, election, email_channel, clock):
        from services.exceptions import InvalidStateError

        code = await self._request(service, dispatcher, email_channel)
        clock.advance(seconds=301)

        with pytest.raises(InvalidStateError, match="No valid OTP found"):
            await service.confirm_otp("REG001", code)

    async def test_code_valid_at_exact_expiry(self, service, dispatcher, election, email_channel, clock):
        code = await self._request(service, dispatcher, email_channel)
        clock.advance(seconds=300)

        response = await service.confirm_otp("REG001", code)

        assert response.ballot_token

    async def test_without_request(self, service, election):
        from services.exceptions import InvalidStateError

        with pytest.raises(InvalidStateError, match="No valid OTP found"):
            await service.confirm_otp("REG001", "123456")

    async def test_new_ballot_supersedes_unused_one(
        self, service, dispatcher, election, email_channel, clock, session_factory
    ):
        first = await service.confirm_otp("REG001", await self._request(service, dispatcher, email_channel))
        clock.advance(seconds=61)
        second = await service.confirm_otp("REG001", await self._request(service, dispatcher, email_channel))

        statuses = {b.token: b.status for b in await _ballots(session_factory)}
        assert statuses == {first.ballot_token: "SUPERSEDED", second.ballot_token: "ACTIVE"}

    async def test_voter_who_already_voted_is_turned_away(
        self, service, dispatcher, election, email_channel, db_session, clock
    ):
        from repositories.ballot_repository import BallotRepository
        from services.exceptions import InvalidStateError

        response = await service.confirm_otp("REG001", await self._request(service, dispatcher, email_channel))
        ballots = BallotRepository(db_session)
        ballot = await ballots.get_by_token(response.ballot_token)
        await ballots.consume(ballot.id, clock.now())
        await db_session.commit()

        clock.advance(seconds=61)
        with pytest.raises(InvalidStateError, match="already voted"):
            await service.request_otp("REG001")

    async def test_voter_made_ineligible_after_request(
        self, service, dispatcher, election, email_channel, db_session, session_factory
    ):
        from models.voter import EligibleVoter, VoterStatus
        from services.exceptions import InvalidStateError

        code = await self._request(service, dispatcher, email_channel)
        await db_session.execute(
            update(EligibleVoter)
            .where(EligibleVoter.reg_no == "REG001")
            .values(status=VoterStatus.INELIGIBLE.value)
        )
        await db_session.commit()
        db_session.expire_all()

        with pytest.raises(InvalidStateError, match="not eligible"):
            await service.confirm_otp("REG001", code)

        assert await _ballots(session_factory) == []

    async def test_cast_committed_during_confirm_blocks_new_ballot(
        self, service, dispatcher, election, email_channel, clock, session_factory, audit_trail
    ):
        from schemas.vote import VoteSelection
        from services.ballot_service import BallotIssuer
        from services.exceptions import InvalidStateError
        from services.vote_service import VoteService

        first = await service.confirm_otp("REG001", await self._request(service, dispatcher, email_channel))
        clock.advance(seconds=61)
        code = await self._request(service, dispatcher, email_channel)

        real_issue = BallotIssuer.issue

        async def cast_then_issue(issuer, voter, verification, now):
            # The old ballot is used after the "already voted" check has passed
            async with session_factory() as other:
                await VoteService(other, clock, audit_trail).cast_votes(
                    first.ballot_token,
                    [VoteSelection(position_id=election.p1, candidate_id=election.c1)],
                )
            return await real_issue(issuer, voter, verification, now)

        with patch.object(BallotIssuer, "issue", cast_then_issue):
            with pytest.raises(InvalidStateError, match="already voted"):
                await service.confirm_otp("REG001", code)

        ballots = await _ballots(session_factory)
        assert [(b.token, b.status) for b in ballots] == [(first.ballot_token, "CONSUMED")]

    async def test_overlapping_confirms_leave_one_active_ballot(
        self, service, dispatcher, election, email_channel, clock, session_factory
    ):
        from repositories.ballot_repository import BallotRepository
        from services.exceptions import InvalidStateError

        first = await service.confirm_otp("REG001", await self._request(service, dispatcher, email_channel))
        clock.advance(seconds=61)
        code = await self._request(service, dispatcher, email_channel)

        # The other confirm's ballot is not visible yet, so nothing is superseded
        with patch.object(BallotRepository, "supersede_active", AsyncMock(return_value=0)):
            with pytest.raises(InvalidStateError, match="issued to this voter at the same time"):
                await service.confirm_otp("REG001", code)

        statuses = {b.token: b.status for b in await _ballots(session_factory)}
        assert statuses == {first.ballot_token: "ACTIVE"}
        [_, pending] = await _verifications(session_factory)
        assert pending.state == "ISSUED"

        # Retrying once the other transaction is done succeeds
        second = await service.confirm_otp("REG001", code)
        statuses = {b.token: b.status for b in await _ballots(session_factory)}
        assert statuses == {first.ballot_token: "SUPERSEDED", second.ballot_token: "ACTIVE"}
