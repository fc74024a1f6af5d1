"""
Tests for the verification state machine and the voting window resolver.
"""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestTransitions:
    def test_issued_to_verified_sets_verified_at(self):
        from models.verification import VerificationState, transition

        values = transition(VerificationState.ISSUED, VerificationState.VERIFIED, NOW)

        assert values == {"state": "VERIFIED", "verified_at": NOW}

    def test_verified_to_linked_sets_consumed_at(self):
        from models.verification import VerificationState, transition

        values = transition(VerificationState.VERIFIED, VerificationState.LINKED, NOW)

        assert values == {"state": "LINKED", "consumed_at": NOW}

    def test_issued_to_expired(self):
        from models.verification import VerificationState, transition

        assert transition(VerificationState.ISSUED, VerificationState.EXPIRED, NOW) == {"state": "EXPIRED"}

    @pytest.mark.parametrize(
        "current,target",
        [
            ("ISSUED", "LINKED"),
            ("VERIFIED", "ISSUED"),
            ("VERIFIED", "EXPIRED"),
            ("EXPIRED", "ISSUED"),
            ("EXPIRED", "VERIFIED"),
            ("LINKED", "VERIFIED"),
            ("LINKED", "LINKED"),
        ],
    )
    def test_illegal_edges_are_rejected(self, current, target):
        from models.verification import InvalidTransitionError, VerificationState, transition

        with pytest.raises(InvalidTransitionError):
            transition(VerificationState(current), VerificationState(target), NOW)

    def test_issued_record_past_expiry_is_effectively_expired(self):
        from models.verification import Verification, VerificationState

        record = Verification(state="ISSUED", issued_at=NOW, expires_at=NOW + timedelta(minutes=5))

        assert record.effective_state(NOW + timedelta(minutes=5)) is VerificationState.ISSUED
        assert record.effective_state(NOW + timedelta(minutes=5, seconds=1)) is VerificationState.EXPIRED

    def test_linked_record_stays_linked(self):
        from models.verification import Verification, VerificationState

        record = Verification(state="LINKED", issued_at=NOW, expires_at=NOW)

        assert record.effective_state(NOW + timedelta(days=1)) is VerificationState.LINKED


@pytest.mark.unit
class TestVotingWindowResolver:
    @pytest.fixture
    def position(self):
        from models.position import Position

        return Position(
            name="Guild President",
            seats=1,
            nomination_opens_at=NOW - timedelta(days=5),
            nomination_closes_at=NOW - timedelta(days=1),
            voting_opens_at=NOW,
            voting_closes_at=NOW + timedelta(hours=4),
        )

    def test_bounds_are_inclusive(self, position):
        from services.voting_window import VotingWindowResolver

        resolver = VotingWindowResolver()

        assert resolver.is_voting_open(position, NOW) is True
        assert resolver.is_voting_open(position, NOW + timedelta(hours=4)) is True

    def test_outside_window_is_closed(self, position):
        from services.voting_window import VotingWindowResolver

        resolver = VotingWindowResolver()

        assert resolver.is_voting_open(position, NOW - timedelta(seconds=1)) is False
        assert resolver.is_voting_open(position, NOW + timedelta(hours=4, seconds=1)) is False

    def test_nomination_window(self, position):
        from services.voting_window import VotingWindowResolver

        resolver = VotingWindowResolver()

        assert resolver.is_nomination_open(position, NOW - timedelta(days=3)) is True
        assert resolver.is_nomination_open(position, NOW) is False
