"""
Tests for turnout and results reports.
"""

import pytest


async def _cast(db_session, reg_no, token, pairs, at):
    from repositories.ballot_repository import BallotRepository
    from repositories.vote_repository import VoteRepository
    from repositories.voter_repository import VoterRepository

    voter = await VoterRepository(db_session).get_by_reg_no(reg_no)
    ballots = BallotRepository(db_session)
    ballot = await ballots.create(voter.id, token, at)
    if pairs:
        await ballots.consume(ballot.id, at)
        await VoteRepository(db_session).add_many(ballot.id, pairs, at)
    await db_session.commit()


@pytest.mark.unit
class TestReportService:
    async def test_turnout_with_no_activity(self, db_session, election):
        from services.report_service import ReportService

        report = await ReportService(db_session).turnout()

        assert report.total_voters == 3
        assert report.votes_cast == 0
        assert report.turnout == 0.0
        assert report.ballot_usage_rate == 0.0
        assert report.non_voters == 3

    async def test_turnout_counts(self, db_session, election, t0):
        from services.report_service import ReportService

        await _cast(db_session, "REG001", "1" * 64, [(election.p1, election.c1)], t0)
        await _cast(db_session, "REG002", "2" * 64, [], t0)

        report = await ReportService(db_session).turnout()

        assert report.ballots_issued == 2
        assert report.votes_cast == 1
        assert report.turnout == 33.33
        assert report.ballot_usage_rate == 50.0
        assert report.breakdown.voted == 1
        assert report.breakdown.not_voted == 2

    async def test_results_sorted_by_votes(self, db_session, election, t0):
        from services.report_service import ReportService

        await _cast(db_session, "REG001", "1" * 64, [(election.p1, election.c3), (election.p2, election.c4)], t0)
        await _cast(db_session, "REG002", "2" * 64, [(election.p1, election.c3)], t0)

        report = await ReportService(db_session).results()
        by_position = {p.position_id: p for p in report.positions}

        president = by_position[election.p1]
        assert president.total_votes == 2
        assert [(c.candidate_id, c.votes) for c in president.candidates] == [(election.c3, 2), (election.c1, 0)]
        assert by_position[election.p3].total_votes == 0
        # Rejected nominations never appear in results
        assert election.c2 not in {c.candidate_id for p in report.positions for c in p.candidates}

    async def test_report_serializes_camel_case(self, db_session, election):
        from services.report_service import ReportService

        dumped = (await ReportService(db_session).turnout()).model_dump(by_alias=True)

        assert "totalVoters" in dumped
        assert "ballotUsageRate" in dumped
