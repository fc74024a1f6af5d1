"""
Turnout and results reports.

Results are counted from vote rows alone; no report query joins votes to
ballots or voters.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from repositories.ballot_repository import BallotRepository
from repositories.candidate_repository import CandidateRepository
from repositories.position_repository import PositionRepository
from repositories.verification_repository import VerificationRepository
from repositories.vote_repository import VoteRepository
from repositories.voter_repository import VoterRepository
from schemas.admin import (
    CandidateTally,
    PositionResult,
    ResultsReport,
    TurnoutBreakdown,
    TurnoutReport,
)


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def turnout(self) -> TurnoutReport:
        total_voters = await VoterRepository(self.db).count_eligible()
        verified_voters = await VerificationRepository(self.db).count_verified_voters()
        ballots = BallotRepository(self.db)
        ballots_issued = await ballots.count_issued()
        votes_cast = await ballots.count_consumed()
        non_voters = max(total_voters - votes_cast, 0)

        return TurnoutReport(
            total_voters=total_voters,
            verified_voters=verified_voters,
            ballots_issued=ballots_issued,
            votes_cast=votes_cast,
            non_voters=non_voters,
            turnout=_percentage(votes_cast, total_voters),
            verification_rate=_percentage(verified_voters, total_voters),
            ballot_usage_rate=_percentage(votes_cast, ballots_issued),
            non_voter_percentage=_percentage(non_voters, total_voters),
            breakdown=TurnoutBreakdown(
                voted=votes_cast,
                not_voted=non_voters,
                verified=verified_voters,
                not_verified=max(total_voters - verified_voters, 0),
            ),
        )

    async def results(self) -> ResultsReport:
        """Votes per approved candidate for every position, highest first."""
        positions = await PositionRepository(self.db).list_all()
        candidates = await CandidateRepository(self.db).list_approved_for_positions([p.id for p in positions])
        tallies = await VoteRepository(self.db).tally()

        results = []
        for position in positions:
            counts = tallies.get(position.id, {})
            rows = [
                CandidateTally(candidate_id=c.id, name=c.name, votes=counts.get(c.id, 0))
                for c in candidates
                if c.position_id == position.id
            ]
            rows.sort(key=lambda row: (-row.votes, row.name))
            results.append(
                PositionResult(
                    position_id=position.id,
                    name=position.name,
                    seats=position.seats,
                    total_votes=sum(counts.values()),
                    candidates=rows,
                )
            )

        return ResultsReport(positions=results)
